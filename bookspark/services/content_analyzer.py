"""LLM content analysis: summary, category, topics and suggested actions for one post."""

import json
import logging
import re
from dataclasses import dataclass, field
from typing import Any

import httpx

from bookspark.config import Settings, get_settings
from bookspark.constants import (
    ANTHROPIC_API_URL,
    ANTHROPIC_API_VERSION,
    FALLBACK_ACTIONS,
    FALLBACK_CONTENT_TYPE,
    FALLBACK_SUMMARY_CHARS,
    LMSTUDIO_PLACEHOLDER_KEY,
    MAX_SUGGESTED_ACTIONS,
    MAX_TOPICS,
    SUMMARY_MAX_CHARS,
)
from bookspark.errors import FormatError, UpstreamError
from bookspark.http_client import get_http_client
from bookspark.prompts import (
    ANALYSIS_SYSTEM_PROMPT,
    FALLBACK_ACTIONS_BY_TYPE,
    build_actions_prompt,
    build_analysis_prompt,
)
from bookspark.utils import truncate

logger = logging.getLogger(__name__)

_CODE_FENCE = re.compile(r"^```(?:json)?\s*(.*?)\s*```$", re.DOTALL)


@dataclass
class AnalysisResult:
    summary: str
    content_type: str
    topics: list[str] = field(default_factory=list)
    suggested_actions: list[str] = field(default_factory=list)
    # True when the result is the stand-in rather than a model reply
    fallback: bool = False


def fallback_analysis(content: str) -> AnalysisResult:
    """Deterministic stand-in used whenever analysis fails."""
    return AnalysisResult(
        summary=truncate(content, FALLBACK_SUMMARY_CHARS),
        content_type=FALLBACK_CONTENT_TYPE,
        topics=[],
        suggested_actions=list(FALLBACK_ACTIONS),
        fallback=True,
    )


def _load_json(text: str) -> Any:
    text = text.strip()
    match = _CODE_FENCE.match(text)
    if match:
        text = match.group(1)
    try:
        return json.loads(text)
    except json.JSONDecodeError as e:
        raise FormatError(f"Invalid AI response format: {e}") from e


def parse_analysis(text: str) -> AnalysisResult:
    """Parse and validate the model's JSON reply.

    Raises FormatError unless summary and contentType are non-empty strings
    and topics and suggestedActions are lists.
    """
    data = _load_json(text)
    if not isinstance(data, dict):
        raise FormatError("Invalid AI response structure: expected an object")

    summary = data.get("summary")
    content_type = data.get("contentType")
    topics = data.get("topics")
    actions = data.get("suggestedActions")
    if (
        not isinstance(summary, str) or not summary
        or not isinstance(content_type, str) or not content_type
        or not isinstance(topics, list)
        or not isinstance(actions, list)
    ):
        raise FormatError("Invalid AI response structure")

    return AnalysisResult(
        summary=summary[:SUMMARY_MAX_CHARS],
        content_type=content_type.lower(),
        topics=[str(t) for t in topics[:MAX_TOPICS]],
        suggested_actions=[str(a) for a in actions[:MAX_SUGGESTED_ACTIONS]],
    )


def _openai_text(data: Any) -> str:
    """Pull the reply text out of a chat completions body; content-filtered replies have no message."""
    choices = data.get("choices") if isinstance(data, dict) else None
    first = choices[0] if isinstance(choices, list) and choices else None
    message = first.get("message") if isinstance(first, dict) else None
    content = message.get("content") if isinstance(message, dict) else None
    if not isinstance(content, str) or not content:
        raise UpstreamError("LLM returned empty response")
    return content


def _anthropic_text(data: Any) -> str:
    blocks = data.get("content") if isinstance(data, dict) else None
    first = blocks[0] if isinstance(blocks, list) and blocks else None
    text = first.get("text") if isinstance(first, dict) else None
    if not isinstance(text, str) or not text:
        raise UpstreamError("Anthropic returned empty response")
    return text


class ContentAnalyzer:
    """Calls the configured LLM provider. All providers speak the OpenAI chat
    format except Anthropic, which gets a thin adapter."""

    def __init__(
        self,
        settings: Settings | None = None,
        client: httpx.AsyncClient | None = None,
        provider: str | None = None,
        model: str | None = None,
    ):
        self.settings = settings or get_settings()
        self.client = client
        self.provider = provider or self.settings.default_llm_provider
        self.model = model

    async def analyze(self, content: str, url: str | None = None) -> AnalysisResult:
        """Analyze one post. Raises UpstreamError or FormatError on failure."""
        text = await self.complete(ANALYSIS_SYSTEM_PROMPT, build_analysis_prompt(content, url))
        return parse_analysis(text)

    async def analyze_or_fallback(self, content: str, url: str | None = None) -> AnalysisResult:
        """Analyze one post; any failure yields ``fallback_analysis(content)``."""
        try:
            return await self.analyze(content, url)
        except (UpstreamError, FormatError) as e:
            logger.warning("AI analysis failed, using fallback: %s", e)
        except Exception as e:
            logger.error("Unexpected error during AI analysis, using fallback: %s", e, exc_info=True)
        return fallback_analysis(content)

    async def suggest_actions(self, content: str, content_type: str) -> list[str]:
        """Ask for 3-5 follow-up actions; falls back to a per-category list."""
        try:
            text = await self.complete(ANALYSIS_SYSTEM_PROMPT, build_actions_prompt(content, content_type))
            actions = _load_json(text)
            if not isinstance(actions, list):
                raise FormatError("Invalid response format")
            return [str(a) for a in actions[:MAX_SUGGESTED_ACTIONS]]
        except Exception as e:
            logger.warning("Action suggestion failed for %s content: %s", content_type, e)
            return list(FALLBACK_ACTIONS_BY_TYPE.get(content_type, FALLBACK_ACTIONS_BY_TYPE["default"]))

    async def complete(self, system_prompt: str, user_prompt: str) -> str:
        settings = self.settings
        if self.provider in ("openai", "lmstudio"):
            is_openai = self.provider == "openai"
            if is_openai and not settings.openai_api_key:
                raise UpstreamError("OpenAI API key not configured")
            return await self._call_openai_compatible(
                system_prompt=system_prompt,
                user_prompt=user_prompt,
                base_url=settings.openai_base_url if is_openai else settings.lmstudio_url,
                api_key=settings.openai_api_key if is_openai else LMSTUDIO_PLACEHOLDER_KEY,
                model=self.model or (settings.openai_model if is_openai else None),
            )
        elif self.provider == "anthropic":
            if not settings.anthropic_api_key:
                raise UpstreamError("Anthropic API key not configured")
            return await self._call_anthropic(
                system_prompt=system_prompt,
                user_prompt=user_prompt,
                api_key=settings.anthropic_api_key,
                model=self.model or settings.anthropic_model,
            )
        else:
            raise UpstreamError(f"Unknown LLM provider: {self.provider}")

    async def _call_openai_compatible(
        self,
        system_prompt: str,
        user_prompt: str,
        base_url: str,
        api_key: str,
        model: str | None = None,
    ) -> str:
        """Call an OpenAI-compatible chat completions endpoint (OpenAI, LM Studio)."""
        settings = self.settings
        url = f"{base_url.rstrip('/')}/v1/chat/completions"
        # base_url may already include /v1
        if "/v1/v1/" in url:
            url = f"{base_url.rstrip('/')}/chat/completions"

        payload: dict[str, Any] = {
            "messages": [
                {"role": "system", "content": system_prompt},
                {"role": "user", "content": user_prompt},
            ],
            "temperature": settings.llm_temperature,
            "max_tokens": settings.llm_max_tokens,
            "stream": False,
        }
        if model:
            payload["model"] = model

        headers = {"Content-Type": "application/json"}
        if api_key and api_key != LMSTUDIO_PLACEHOLDER_KEY:
            headers["Authorization"] = f"Bearer {api_key}"

        try:
            client = self.client or get_http_client()
            resp = await client.post(url, json=payload, headers=headers, timeout=settings.llm_timeout)
            resp.raise_for_status()
            data = resp.json()
        except httpx.HTTPStatusError as e:
            logger.error("LLM HTTP error: %s - %s", e.response.status_code, e.response.text[:500])
            raise UpstreamError(f"LLM error: HTTP {e.response.status_code}") from e
        except (httpx.HTTPError, ValueError) as e:
            logger.error("LLM error: %s", e)
            raise UpstreamError(f"Error analyzing content: {e}") from e

        return _openai_text(data)

    async def _call_anthropic(
        self,
        system_prompt: str,
        user_prompt: str,
        api_key: str,
        model: str,
    ) -> str:
        """Call the Anthropic Messages API."""
        settings = self.settings
        payload = {
            "model": model,
            "max_tokens": settings.llm_max_tokens,
            "temperature": settings.llm_temperature,
            "system": system_prompt,
            "messages": [{"role": "user", "content": user_prompt}],
        }
        headers = {
            "x-api-key": api_key,
            "anthropic-version": ANTHROPIC_API_VERSION,
            "Content-Type": "application/json",
        }

        try:
            client = self.client or get_http_client()
            resp = await client.post(ANTHROPIC_API_URL, json=payload, headers=headers, timeout=settings.llm_timeout)
            resp.raise_for_status()
            data = resp.json()
        except httpx.HTTPStatusError as e:
            logger.error("Anthropic HTTP error: %s - %s", e.response.status_code, e.response.text[:500])
            raise UpstreamError(f"Anthropic error: HTTP {e.response.status_code}") from e
        except (httpx.HTTPError, ValueError) as e:
            logger.error("Anthropic error: %s", e)
            raise UpstreamError(f"Error analyzing content: {e}") from e

        return _anthropic_text(data)
