"""Tests for the generative model client, using httpx.MockTransport."""

import json
import re

import httpx
import pytest

from src.model_client import (
    FixedPauseRateLimiter,
    GenerationOptions,
    GenerativeModelClient,
    InvalidResponseStructure,
    MaxLengthExceeded,
    NoCandidates,
    TransportError,
    estimate_tokens,
    is_retryable_error,
    new_request_id,
    to_base36,
)


def text_response(text, finish_reason="STOP", usage=None):
    body = {
        "candidates": [
            {"content": {"parts": [{"text": text}]}, "finishReason": finish_reason}
        ]
    }
    if usage is not None:
        body["usageMetadata"] = usage
    return httpx.Response(200, json=body)


class CountingLimiter:
    def __init__(self):
        self.waits = 0

    async def wait(self):
        self.waits += 1


def make_client(handler, **kwargs):
    kwargs.setdefault("max_retries", 3)
    kwargs.setdefault("rate_limiter", FixedPauseRateLimiter(0))
    return GenerativeModelClient(
        api_key="test-key",
        base_url="https://models.test/v1beta",
        model="test-model",
        http_client=httpx.AsyncClient(transport=httpx.MockTransport(handler)),
        retry_base_delay=0,
        retry_max_delay=0,
        **kwargs,
    )


class TestComplete:
    """Single prompt completion."""

    @pytest.mark.asyncio
    async def test_returns_text_and_sends_generation_config(self):
        seen = {}

        def handler(request):
            seen["url"] = str(request.url)
            seen["body"] = json.loads(request.content)
            return text_response("Hello there")

        client = make_client(handler)
        text = await client.complete(
            "Say hello", GenerationOptions(temperature=0.2, max_output_length=50)
        )

        assert text == "Hello there"
        assert "/models/test-model:generateContent" in seen["url"]
        assert "key=test-key" in seen["url"]
        assert seen["body"]["contents"][0]["parts"][0]["text"] == "Say hello"
        assert seen["body"]["generationConfig"] == {
            "temperature": 0.2,
            "maxOutputTokens": 50,
            "topP": 0.9,
        }

    @pytest.mark.asyncio
    async def test_max_tokens_raises_with_partial_text(self):
        client = make_client(lambda request: text_response('{"a": [1, 2', "MAX_TOKENS"))

        with pytest.raises(MaxLengthExceeded) as excinfo:
            await client.complete("Give JSON")

        assert excinfo.value.partial == '{"a": [1, 2'

    @pytest.mark.asyncio
    async def test_no_candidates(self):
        client = make_client(lambda request: httpx.Response(200, json={"candidates": []}))

        with pytest.raises(NoCandidates):
            await client.complete("Anything")

    @pytest.mark.asyncio
    async def test_missing_text_part(self):
        body = {"candidates": [{"content": {"parts": []}, "finishReason": "STOP"}]}
        client = make_client(lambda request: httpx.Response(200, json=body))

        with pytest.raises(InvalidResponseStructure):
            await client.complete("Anything")

    @pytest.mark.asyncio
    async def test_non_json_body(self):
        client = make_client(lambda request: httpx.Response(200, text="not json"))

        with pytest.raises(InvalidResponseStructure):
            await client.complete("Anything")


class TestTransportRetry:
    """Retry of throttling, outage and network failures."""

    @pytest.mark.asyncio
    async def test_retries_server_errors_then_succeeds(self):
        calls = {"count": 0}

        def handler(request):
            calls["count"] += 1
            if calls["count"] < 3:
                return httpx.Response(503)
            return text_response("Recovered")

        client = make_client(handler)

        assert await client.complete("Prompt") == "Recovered"
        assert calls["count"] == 3

    @pytest.mark.asyncio
    async def test_gives_up_after_max_retries(self):
        calls = {"count": 0}

        def handler(request):
            calls["count"] += 1
            return httpx.Response(429)

        client = make_client(handler, max_retries=2)

        with pytest.raises(TransportError) as excinfo:
            await client.complete("Prompt")

        assert excinfo.value.status == 429
        assert calls["count"] == 3

    @pytest.mark.asyncio
    async def test_client_errors_are_not_retried(self):
        calls = {"count": 0}

        def handler(request):
            calls["count"] += 1
            return httpx.Response(400)

        client = make_client(handler)

        with pytest.raises(TransportError) as excinfo:
            await client.complete("Prompt")

        assert excinfo.value.status == 400
        assert calls["count"] == 1

    @pytest.mark.asyncio
    async def test_network_failures_are_retried(self):
        calls = {"count": 0}

        def handler(request):
            calls["count"] += 1
            if calls["count"] == 1:
                raise httpx.ConnectError("connection refused", request=request)
            return text_response("Back online")

        client = make_client(handler)

        assert await client.complete("Prompt") == "Back online"
        assert calls["count"] == 2

    @pytest.mark.asyncio
    async def test_truncation_is_not_retried(self):
        calls = {"count": 0}

        def handler(request):
            calls["count"] += 1
            return text_response("partial", "MAX_TOKENS")

        client = make_client(handler)

        with pytest.raises(MaxLengthExceeded):
            await client.complete("Prompt")
        assert calls["count"] == 1


class TestIsRetryableError:
    def test_retryable_statuses(self):
        for status in (429, 500, 502, 503, 504):
            assert is_retryable_error(TransportError("failed", status=status))

    def test_other_statuses(self):
        for status in (400, 401, 403, 404):
            assert not is_retryable_error(TransportError("failed", status=status))

    def test_network_messages(self):
        assert is_retryable_error(Exception("ECONNREFUSED while connecting"))
        assert is_retryable_error(Exception("Request timeout"))
        assert not is_retryable_error(Exception("Something else went wrong"))

    def test_response_errors_never_retry(self):
        assert not is_retryable_error(MaxLengthExceeded("network cut off"))
        assert not is_retryable_error(NoCandidates("no candidates"))
        assert not is_retryable_error(InvalidResponseStructure("bad structure"))


class TestUsage:
    """Token usage accounting."""

    @pytest.mark.asyncio
    async def test_uses_reported_usage(self):
        usage = {"promptTokenCount": 10, "candidatesTokenCount": 32, "totalTokenCount": 42}
        client = make_client(lambda request: text_response("Hi", usage=usage))

        await client.complete("Prompt")
        await client.complete("Prompt")

        assert client.total_tokens == 84
        assert len(client.usage_log) == 2
        assert client.usage_log[0]["prompt_tokens"] == 10

    @pytest.mark.asyncio
    async def test_usage_log_keeps_most_recent_requests(self):
        usage = {"promptTokenCount": 1, "candidatesTokenCount": 2, "totalTokenCount": 3}
        client = make_client(lambda request: text_response("Hi", usage=usage), usage_log_limit=2)

        for _ in range(5):
            await client.complete("Prompt")

        assert len(client.usage_log) == 2
        assert client.total_tokens == 15
        assert client.usage_log[-1]["total_tokens"] == 3

    @pytest.mark.asyncio
    async def test_estimates_usage_when_missing(self):
        client = make_client(lambda request: text_response("12345678"))

        await client.complete("abcd")

        assert client.total_tokens == estimate_tokens("abcd") + estimate_tokens("12345678")
        assert client.total_tokens == 3

    def test_request_id_format(self):
        assert re.fullmatch(r"req_\d+_[0-9a-z]{9}", new_request_id())

    def test_base36(self):
        assert to_base36(0) == "0"
        assert to_base36(35) == "z"
        assert to_base36(36) == "10"


class TestCompleteBatch:
    """Fixed-width worker pool."""

    @pytest.mark.asyncio
    async def test_results_in_order_with_per_item_errors(self):
        def handler(request):
            prompt = json.loads(request.content)["contents"][0]["parts"][0]["text"]
            if prompt == "p3":
                return httpx.Response(400)
            return text_response(prompt.upper())

        limiter = CountingLimiter()
        client = make_client(handler, batch_width=3, rate_limiter=limiter)

        results = await client.complete_batch([f"p{i}" for i in range(7)])

        assert len(results) == 7
        assert results[0] == "P0"
        assert results[6] == "P6"
        assert isinstance(results[3], TransportError)
        assert limiter.waits == 2

    @pytest.mark.asyncio
    async def test_empty_batch(self):
        client = make_client(lambda request: text_response("unused"))

        assert await client.complete_batch([]) == []
