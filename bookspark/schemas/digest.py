"""Digest-related Pydantic schemas."""

from pydantic import BaseModel, ConfigDict, Field, field_validator

from bookspark.schemas.settings import EMAIL_PATTERN


class DigestSendRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    user_id: int | None = Field(None, alias="userId")
    send_to_all: bool = Field(False, alias="sendToAll")


class SampleDigestRequest(BaseModel):
    email: str | None = None
    name: str | None = None

    @field_validator("email")
    @classmethod
    def validate_email(cls, v: str | None) -> str | None:
        if not v:
            return None
        v = v.strip()
        if not EMAIL_PATTERN.match(v):
            raise ValueError("Invalid email address")
        return v
