"""Tests for the Gemini client and rate-limit retry."""

import base64
from unittest.mock import AsyncMock, MagicMock, patch

import httpx
import pytest

from ezhil.services.gemini_client import (
    ClassificationParseError,
    GeminiClient,
    GeminiClientError,
    GeminiRateLimitError,
    parse_classification,
    retry_on_rate_limit,
)


def _response(status_code: int, json_body=None, text: str | None = None) -> httpx.Response:
    request = httpx.Request("POST", "https://example.test/models/m:generateContent")
    if json_body is not None:
        return httpx.Response(status_code, json=json_body, request=request)
    return httpx.Response(status_code, text=text or "", request=request)


class FakeSleep:
    """Records requested waits instead of sleeping."""

    def __init__(self):
        self.waits: list[float] = []

    async def __call__(self, seconds: float) -> None:
        self.waits.append(seconds)


class TestRetryOnRateLimit:
    """Tests for retry_on_rate_limit."""

    @pytest.mark.asyncio
    async def test_success_first_try(self):
        """Test a successful call is not retried."""
        call = AsyncMock(return_value="ok")
        sleep = FakeSleep()

        result = await retry_on_rate_limit(call, sleep=sleep)

        assert result == "ok"
        assert call.call_count == 1
        assert sleep.waits == []

    @pytest.mark.asyncio
    async def test_retries_with_schedule_then_succeeds(self):
        """Test two 429s wait 3s then 6s and the third attempt succeeds."""
        call = AsyncMock(
            side_effect=[GeminiRateLimitError("429"), GeminiRateLimitError("429"), "done"]
        )
        observer = MagicMock()
        sleep = FakeSleep()

        result = await retry_on_rate_limit(call, on_retry=observer, sleep=sleep)

        assert result == "done"
        assert call.call_count == 3
        assert sleep.waits == [3.0, 6.0]
        assert [c.args for c in observer.call_args_list] == [(3.0, 1), (6.0, 2)]

    @pytest.mark.asyncio
    async def test_exhaustion_reraises_last_error(self):
        """Test four 429s give up after waits of 3, 6 and 10 seconds."""
        errors = [GeminiRateLimitError(f"429 #{i}") for i in range(4)]
        call = AsyncMock(side_effect=errors)
        observer = MagicMock()
        sleep = FakeSleep()

        with pytest.raises(GeminiRateLimitError) as exc_info:
            await retry_on_rate_limit(call, on_retry=observer, sleep=sleep)

        assert exc_info.value is errors[-1]
        assert call.call_count == 4
        assert sleep.waits == [3.0, 6.0, 10.0]
        assert observer.call_count == 3

    @pytest.mark.asyncio
    async def test_other_errors_not_retried(self):
        """Test a non rate-limit error propagates immediately."""
        call = AsyncMock(side_effect=GeminiClientError("bad request"))
        sleep = FakeSleep()

        with pytest.raises(GeminiClientError, match="bad request"):
            await retry_on_rate_limit(call, sleep=sleep)

        assert call.call_count == 1
        assert sleep.waits == []

    @pytest.mark.asyncio
    async def test_non_client_errors_not_retried(self):
        """Test arbitrary exceptions are not swallowed."""
        call = AsyncMock(side_effect=ValueError("boom"))

        with pytest.raises(ValueError):
            await retry_on_rate_limit(call, sleep=FakeSleep())

        assert call.call_count == 1

    @pytest.mark.asyncio
    async def test_last_delay_reused_past_schedule(self):
        """Test extra retries reuse the final delay."""
        call = AsyncMock(side_effect=[GeminiRateLimitError("429")] * 5 + ["ok"])
        sleep = FakeSleep()

        result = await retry_on_rate_limit(call, max_retries=5, sleep=sleep)

        assert result == "ok"
        assert sleep.waits == [3.0, 6.0, 10.0, 10.0, 10.0]

    @pytest.mark.asyncio
    async def test_zero_retries(self):
        """Test max_retries=0 makes a single attempt."""
        call = AsyncMock(side_effect=GeminiRateLimitError("429"))
        sleep = FakeSleep()

        with pytest.raises(GeminiRateLimitError):
            await retry_on_rate_limit(call, max_retries=0, sleep=sleep)

        assert call.call_count == 1
        assert sleep.waits == []


class TestParseClassification:
    """Tests for parse_classification."""

    def test_plain_json(self):
        """Test a bare JSON answer."""
        result = parse_classification(
            '{"type": "Wet", "confidence": 88, "severity": 2, "reasoning": "Food scraps"}'
        )

        assert result.waste_type == "Wet"
        assert result.confidence == 88
        assert result.severity == 2
        assert result.reasoning == "Food scraps"

    def test_fenced_json(self):
        """Test a markdown fenced answer."""
        text = '```json\n{"type": "Dry", "confidence": 70, "severity": 1}\n```'

        result = parse_classification(text)

        assert result.waste_type == "Dry"
        assert result.reasoning == ""

    @pytest.mark.parametrize(
        "text",
        [
            None,
            "",
            "not json",
            '{"type": "Plastic", "confidence": 50, "severity": 2}',
            '{"type": "Wet", "confidence": 50, "severity": 9}',
            '{"type": "Wet", "confidence": 150, "severity": 2}',
        ],
    )
    def test_unusable_answers(self, text):
        """Test malformed or out-of-range answers are rejected."""
        with pytest.raises(ClassificationParseError):
            parse_classification(text)


class TestGeminiClient:
    """Tests for GeminiClient."""

    def test_url(self):
        """Test endpoint URL is built from base URL and model."""
        client = GeminiClient(
            api_key="k", model="gemini-test", base_url="https://example.test/v1beta"
        )

        assert client.url == "https://example.test/v1beta/models/gemini-test:generateContent"

    @pytest.mark.asyncio
    async def test_missing_api_key(self):
        """Test requests fail fast without an API key."""
        client = GeminiClient(api_key="")

        with pytest.raises(GeminiClientError, match="GEMINI_API_KEY"):
            await client.generate({})

    @pytest.mark.asyncio
    async def test_http_429_is_rate_limit(self):
        """Test HTTP 429 raises GeminiRateLimitError."""
        client = GeminiClient(api_key="k")

        with patch.object(httpx.AsyncClient, "post", AsyncMock(return_value=_response(429))):
            with pytest.raises(GeminiRateLimitError):
                await client.generate({})

    @pytest.mark.asyncio
    async def test_error_body_429_is_rate_limit(self):
        """Test a RESOURCE_EXHAUSTED error body counts as rate limiting."""
        client = GeminiClient(api_key="k")
        body = {"error": {"code": 429, "message": "Resource has been exhausted"}}

        with patch.object(httpx.AsyncClient, "post", AsyncMock(return_value=_response(200, body))):
            with pytest.raises(GeminiRateLimitError, match="exhausted"):
                await client.generate({})

    @pytest.mark.asyncio
    async def test_error_body_other_code(self):
        """Test other error bodies raise a plain client error."""
        client = GeminiClient(api_key="k")
        body = {"error": {"code": 400, "message": "API key not valid"}}

        with patch.object(httpx.AsyncClient, "post", AsyncMock(return_value=_response(400, body))):
            with pytest.raises(GeminiClientError) as exc_info:
                await client.generate({})

        assert not isinstance(exc_info.value, GeminiRateLimitError)
        assert "API key not valid" in str(exc_info.value)

    @pytest.mark.asyncio
    async def test_http_error_without_body(self):
        """Test a non-JSON 500 raises a client error."""
        client = GeminiClient(api_key="k")

        with patch.object(
            httpx.AsyncClient, "post", AsyncMock(return_value=_response(500, text="oops"))
        ):
            with pytest.raises(GeminiClientError, match="500"):
                await client.generate({})

    @pytest.mark.asyncio
    async def test_request_error(self):
        """Test transport failures become client errors."""
        client = GeminiClient(api_key="k")
        error = httpx.ConnectError("connection refused")

        with patch.object(httpx.AsyncClient, "post", AsyncMock(side_effect=error)):
            with pytest.raises(GeminiClientError, match="Request error"):
                await client.generate({})

    @pytest.mark.asyncio
    async def test_generate_sends_key_and_body(self):
        """Test the API key goes in the query string."""
        client = GeminiClient(api_key="secret")
        post = AsyncMock(return_value=_response(200, {"candidates": []}))

        with patch.object(httpx.AsyncClient, "post", post):
            data = await client.generate({"contents": []})

        assert data == {"candidates": []}
        kwargs = post.call_args.kwargs
        assert kwargs["params"] == {"key": "secret"}
        assert kwargs["json"] == {"contents": []}

    def test_candidate_text(self):
        """Test extracting text from the first candidate."""
        data = {"candidates": [{"content": {"parts": [{"text": "hello"}]}}]}

        assert GeminiClient.candidate_text(data) == "hello"
        assert GeminiClient.candidate_text({"candidates": []}) is None
        assert GeminiClient.candidate_text({}) is None

    @pytest.mark.asyncio
    async def test_classify_image(self, gemini_classification_response):
        """Test the image is sent inline and the answer parsed."""
        client = GeminiClient(api_key="k")
        client.generate = AsyncMock(return_value=gemini_classification_response)

        result = await client.classify_image(b"\x01\x02", mime_type="image/png")

        assert result.waste_type == "Hazardous"
        assert result.severity == 4
        body = client.generate.call_args.args[0]
        inline = body["contents"][0]["parts"][1]["inline_data"]
        assert inline["mime_type"] == "image/png"
        assert base64.b64decode(inline["data"]) == b"\x01\x02"

    @pytest.mark.asyncio
    async def test_classify_image_retries_rate_limit(self, gemini_classification_response):
        """Test classification goes through the retry policy."""
        client = GeminiClient(api_key="k", retry_delays=(0, 0, 0))
        client.generate = AsyncMock(
            side_effect=[GeminiRateLimitError("429"), gemini_classification_response]
        )
        observer = MagicMock()

        result = await client.classify_image(b"img", on_retry=observer)

        assert result.waste_type == "Hazardous"
        assert client.generate.call_count == 2
        observer.assert_called_once_with(0, 1)

    @pytest.mark.asyncio
    async def test_classify_image_gives_up(self):
        """Test classification raises once retries are exhausted."""
        client = GeminiClient(api_key="k", retry_delays=(0, 0, 0))
        client.generate = AsyncMock(side_effect=GeminiRateLimitError("429"))

        with pytest.raises(GeminiRateLimitError):
            await client.classify_image(b"img")

        assert client.generate.call_count == 4

    @pytest.mark.asyncio
    async def test_chat_builds_conversation(self):
        """Test history turns precede the new message."""
        client = GeminiClient(api_key="k")
        client.generate = AsyncMock(
            return_value={"candidates": [{"content": {"parts": [{"text": "Use the blue bin."}]}}]}
        )
        history = [
            {"role": "user", "text": "Hi"},
            {"role": "model", "text": "Vanakkam!"},
        ]

        reply = await client.chat("system", history, "Where do bottles go?")

        assert reply == "Use the blue bin."
        body = client.generate.call_args.args[0]
        assert body["system_instruction"]["parts"][0]["text"] == "system"
        assert [c["role"] for c in body["contents"]] == ["user", "model", "user"]
        assert body["contents"][-1]["parts"][0]["text"] == "Where do bottles go?"
