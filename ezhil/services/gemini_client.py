"""Gemini client for waste classification and chat, with rate-limit retry."""

import asyncio
import base64
import json
import logging
from collections.abc import Awaitable, Callable, Sequence
from typing import Any, TypeVar

import httpx
from pydantic import ValidationError

from ezhil.config import get_settings
from ezhil.schemas.report import Classification

logger = logging.getLogger(__name__)
settings = get_settings()

T = TypeVar("T")

RetryObserver = Callable[[float, int], None]

CLASSIFICATION_PROMPT = (
    "Classify this waste image into one of: Wet, Dry, Hazardous, Mixed.\n"
    "Return ONLY valid JSON, no markdown:\n"
    '{"type": "Wet | Dry | Hazardous | Mixed", "confidence": 0-100, '
    '"severity": 1-5, "reasoning": "brief explanation"}'
)


class GeminiClientError(Exception):
    """Base exception for Gemini client errors."""

    pass


class GeminiRateLimitError(GeminiClientError):
    """The service answered with HTTP 429 / RESOURCE_EXHAUSTED."""

    pass


class ClassificationParseError(GeminiClientError):
    """The model answered, but not with a usable classification."""

    pass


async def retry_on_rate_limit(
    call: Callable[[], Awaitable[T]],
    max_retries: int = 3,
    delays: Sequence[float] = (3.0, 6.0, 10.0),
    on_retry: RetryObserver | None = None,
    sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
) -> T:
    """
    Run ``call``, retrying only when it is rate limited.

    The first attempt is followed by at most ``max_retries`` retries. The wait
    before retry ``n`` (0-based) is ``delays[n]``, reusing the last delay once
    the schedule runs out. Any error other than ``GeminiRateLimitError``
    propagates immediately; when retries are exhausted the last rate-limit
    error is raised.

    ``on_retry(wait_seconds, attempt)`` is called before each wait with a
    1-based attempt number. It is for status reporting only.
    """
    attempt = 0
    while True:
        try:
            return await call()
        except GeminiRateLimitError:
            if attempt >= max_retries:
                logger.error(f"Still rate limited after {max_retries} retries")
                raise

            wait_time = delays[min(attempt, len(delays) - 1)] if delays else 0.0
            attempt += 1
            logger.warning(
                f"Rate limited, retrying in {wait_time}s (attempt {attempt}/{max_retries})"
            )
            if on_retry is not None:
                on_retry(wait_time, attempt)
            await sleep(wait_time)


def parse_classification(text: str | None) -> Classification:
    """Parse the model's JSON answer, tolerating a markdown code fence."""
    if not text:
        raise ClassificationParseError("Empty response from model")

    cleaned = text.strip()
    if cleaned.startswith("```"):
        cleaned = cleaned.strip("`")
        if cleaned.lower().startswith("json"):
            cleaned = cleaned[4:]

    try:
        return Classification.model_validate(json.loads(cleaned))
    except (json.JSONDecodeError, ValidationError) as e:
        raise ClassificationParseError(f"Unusable classification: {e}") from e


class GeminiClient:
    """
    Client for the Gemini ``generateContent`` REST endpoint.

    Features:
    - Inline base64 image classification with a fixed prompt
    - Multi-turn chat with a system instruction
    - Bounded retry on rate limiting (3s, 6s, 10s)
    """

    def __init__(
        self,
        api_key: str = settings.gemini_api_key,
        model: str = settings.gemini_model,
        base_url: str = settings.gemini_base_url,
        max_retries: int = settings.classification_max_retries,
        retry_delays: Sequence[float] = tuple(settings.classification_retry_delays),
        timeout: float = settings.gemini_timeout,
    ):
        self.api_key = api_key
        self.model = model
        self.base_url = base_url
        self.max_retries = max_retries
        self.retry_delays = tuple(retry_delays)
        self.timeout = timeout

        self.headers: dict[str, str] = {"Content-Type": "application/json"}

    @property
    def url(self) -> str:
        return f"{self.base_url}/models/{self.model}:generateContent"

    async def generate(self, body: dict[str, Any]) -> dict[str, Any]:
        """Make a single generateContent request."""
        if not self.api_key:
            raise GeminiClientError("GEMINI_API_KEY is not configured")

        try:
            async with httpx.AsyncClient(timeout=self.timeout) as client:
                response = await client.post(
                    self.url,
                    headers=self.headers,
                    params={"key": self.api_key},
                    json=body,
                )
        except httpx.RequestError as e:
            raise GeminiClientError(f"Request error: {e}") from e

        if response.status_code == 429:
            raise GeminiRateLimitError("Gemini rate limit exceeded")

        try:
            data = response.json()
        except ValueError:
            data = None

        # Errors can also arrive as a JSON body with an error object.
        error = data.get("error") if isinstance(data, dict) else None
        if error:
            if error.get("code") == 429:
                raise GeminiRateLimitError(error.get("message", "Gemini rate limit exceeded"))
            raise GeminiClientError(f"Gemini error {error.get('code')}: {error.get('message')}")

        if response.is_error:
            raise GeminiClientError(f"HTTP error: {response.status_code}")
        if not isinstance(data, dict):
            raise GeminiClientError("Gemini returned a non-JSON response")

        return data

    async def generate_with_retry(
        self,
        body: dict[str, Any],
        on_retry: RetryObserver | None = None,
    ) -> dict[str, Any]:
        """``generate`` wrapped in the rate-limit retry policy."""
        return await retry_on_rate_limit(
            lambda: self.generate(body),
            max_retries=self.max_retries,
            delays=self.retry_delays,
            on_retry=on_retry,
        )

    @staticmethod
    def candidate_text(data: dict[str, Any]) -> str | None:
        """Text of the first candidate, if any."""
        try:
            return data["candidates"][0]["content"]["parts"][0]["text"]
        except (KeyError, IndexError, TypeError):
            return None

    async def classify_image(
        self,
        image_bytes: bytes,
        mime_type: str = "image/jpeg",
        on_retry: RetryObserver | None = None,
    ) -> Classification:
        """
        Classify a waste photo.

        Args:
            image_bytes: Raw image content
            mime_type: Content type sent alongside the image
            on_retry: Optional observer for rate-limit waits

        Returns:
            Parsed classification
        """
        body = {
            "contents": [
                {
                    "parts": [
                        {"text": CLASSIFICATION_PROMPT},
                        {
                            "inline_data": {
                                "mime_type": mime_type,
                                "data": base64.b64encode(image_bytes).decode("ascii"),
                            }
                        },
                    ]
                }
            ],
            "generationConfig": {"response_mime_type": "application/json"},
        }

        logger.info(f"Classifying image: {len(image_bytes)} bytes ({mime_type})")
        data = await self.generate_with_retry(body, on_retry=on_retry)
        classification = parse_classification(self.candidate_text(data))
        logger.info(
            f"Classified as {classification.waste_type} "
            f"(severity={classification.severity}, confidence={classification.confidence})"
        )
        return classification

    async def chat(
        self,
        system_prompt: str,
        history: list[dict[str, str]],
        message: str,
        on_retry: RetryObserver | None = None,
    ) -> str | None:
        """
        Send a chat turn.

        ``history`` items are ``{"role": "user" | "model", "text": ...}``.
        Returns the reply text, or None when the model produced no candidate.
        """
        body = {
            "system_instruction": {"parts": [{"text": system_prompt}]},
            "contents": [
                *({"role": turn["role"], "parts": [{"text": turn["text"]}]} for turn in history),
                {"role": "user", "parts": [{"text": message}]},
            ],
            "generationConfig": {
                "temperature": 0.7,
                "topK": 40,
                "topP": 0.95,
                "maxOutputTokens": 1024,
            },
        }

        data = await self.generate_with_retry(body, on_retry=on_retry)
        return self.candidate_text(data)
