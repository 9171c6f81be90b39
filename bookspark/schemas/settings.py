"""Settings-related Pydantic schemas."""

import re
from zoneinfo import ZoneInfo

from pydantic import BaseModel, field_validator

DIGEST_TIME_PATTERN = re.compile(r"^([0-1]?[0-9]|2[0-3]):[0-5][0-9]:[0-5][0-9]$")
EMAIL_PATTERN = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")


class SettingsUpdate(BaseModel):
    digest_enabled: bool | None = None
    digest_time: str | None = None
    timezone: str | None = None
    email: str | None = None

    @field_validator("digest_time")
    @classmethod
    def validate_digest_time(cls, v: str | None) -> str | None:
        if v is None:
            return v
        if not DIGEST_TIME_PATTERN.match(v):
            raise ValueError("Invalid time format, expected HH:MM:SS")
        # Store zero-padded so the hour always parses the same way
        hour, minute, second = v.split(":")
        return f"{int(hour):02d}:{minute}:{second}"

    @field_validator("timezone")
    @classmethod
    def validate_timezone(cls, v: str | None) -> str | None:
        if v is None:
            return v
        try:
            ZoneInfo(v)
        except (KeyError, ValueError):
            raise ValueError(f"Invalid timezone: {v}")
        return v

    @field_validator("email")
    @classmethod
    def validate_email(cls, v: str | None) -> str | None:
        if v is None or v == "":
            return None
        v = v.strip()
        if not EMAIL_PATTERN.match(v):
            raise ValueError("Invalid email address")
        return v


class UserSettingsOut(BaseModel):
    digest_enabled: bool
    digest_time: str
    timezone: str
    email: str | None = None
