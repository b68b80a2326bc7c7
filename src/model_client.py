"""Async client for the remote generative text model."""

import asyncio
import logging
import math
import random
import string
import time
from collections import deque
from typing import Optional, Protocol

import httpx
from pydantic import BaseModel
from tenacity import (
    AsyncRetrying,
    before_sleep_log,
    retry_if_exception,
    stop_after_attempt,
    wait_exponential_jitter,
)
from tqdm import tqdm

import config
from src.logger import get_logger

logger = get_logger("lessongen.client")


class ModelClientError(Exception):
    """Base error for generative model requests."""

    pass


class TransportError(ModelClientError):
    """Raised when the HTTP exchange fails or returns an error status."""

    def __init__(self, message: str, status: int | None = None):
        super().__init__(message)
        self.status = status


class MaxLengthExceeded(ModelClientError):
    """Raised when the response was cut off at the output length limit."""

    def __init__(self, message: str, partial: str | None = None):
        super().__init__(message)
        self.partial = partial


class NoCandidates(ModelClientError):
    """Raised when the service returns no candidate completions."""

    pass


class InvalidResponseStructure(ModelClientError):
    """Raised when the response body is missing the expected text parts."""

    pass


class GenerationOptions(BaseModel):
    """Per-request sampling options."""

    temperature: float = config.DEFAULT_TEMPERATURE
    max_output_length: int = config.DEFAULT_MAX_OUTPUT_LENGTH
    top_p: float = config.DEFAULT_TOP_P


class RateLimiter(Protocol):
    async def wait(self) -> None: ...


class FixedPauseRateLimiter:
    """Waits a fixed pause between consecutive batches."""

    def __init__(self, pause_seconds: float = config.BATCH_PAUSE_SECONDS):
        self.pause_seconds = pause_seconds

    async def wait(self) -> None:
        if self.pause_seconds > 0:
            await asyncio.sleep(self.pause_seconds)


def is_retryable_error(exc: BaseException) -> bool:
    """
    Decide whether a failed request should be retried.

    Retries server throttling and outage statuses, and network failures
    recognised by their message. Everything else propagates at once.

    Args:
        exc: The exception raised by a request

    Returns:
        True if the request should be retried
    """
    if isinstance(exc, (MaxLengthExceeded, NoCandidates, InvalidResponseStructure)):
        return False
    status = getattr(exc, "status", None)
    if status in config.RETRYABLE_STATUSES:
        return True
    message = str(exc).lower()
    return any(marker in message for marker in config.NETWORK_ERROR_MARKERS)


def estimate_tokens(text: str) -> int:
    """Rough token estimate used when the service reports no usage."""
    return math.ceil(len(text) / 4)


def to_base36(number: int) -> str:
    alphabet = string.digits + string.ascii_lowercase
    if number == 0:
        return "0"
    digits = []
    while number:
        number, remainder = divmod(number, 36)
        digits.append(alphabet[remainder])
    return "".join(reversed(digits))


def new_request_id() -> str:
    suffix = "".join(random.choices(string.digits + string.ascii_lowercase, k=9))
    return f"req_{int(time.time() * 1000)}_{suffix}"


class GenerativeModelClient:
    """
    Request/response boundary to a Gemini-style generateContent endpoint.

    The client keeps no conversation state. It tracks cumulative token usage
    so callers can attribute usage to the work they did between two reads
    of `total_tokens`.
    """

    def __init__(
        self,
        api_key: str | None = None,
        base_url: str | None = None,
        model: str | None = None,
        timeout: float = config.MODEL_TIMEOUT,
        http_client: httpx.AsyncClient | None = None,
        max_retries: int = config.MAX_TRANSPORT_RETRIES,
        retry_base_delay: float = config.RETRY_BASE_DELAY,
        retry_max_delay: float = config.RETRY_MAX_DELAY,
        batch_width: int = config.BATCH_WIDTH,
        rate_limiter: Optional[RateLimiter] = None,
        usage_log_limit: int = config.USAGE_LOG_LIMIT,
    ):
        """
        Initialize the client.

        Args:
            api_key: Service API key. Defaults to the configured key.
            base_url: Service base URL
            model: Model name used in the request path
            timeout: HTTP timeout in seconds
            http_client: Optional pre-built async HTTP client (tests inject a mock transport)
            max_retries: Retries after the first attempt for retryable failures
            retry_base_delay: Initial backoff delay in seconds
            retry_max_delay: Backoff cap in seconds
            batch_width: Number of concurrent requests in the batch path
            rate_limiter: Waited on between batches. Defaults to a fixed pause.
            usage_log_limit: Number of most recent per-request usage records kept
        """
        self.api_key = api_key if api_key is not None else config.MODEL_API_KEY
        self.base_url = (base_url or config.MODEL_BASE_URL).rstrip("/")
        self.model = model or config.MODEL_NAME
        self.timeout = timeout
        self.max_retries = max_retries
        self.retry_base_delay = retry_base_delay
        self.retry_max_delay = retry_max_delay
        self.batch_width = batch_width
        self.rate_limiter = rate_limiter or FixedPauseRateLimiter()

        self._http = http_client
        self._owns_http = http_client is None

        self.total_tokens = 0
        self.usage_log: deque[dict] = deque(maxlen=usage_log_limit)

    @property
    def http(self) -> httpx.AsyncClient:
        if self._http is None:
            self._http = httpx.AsyncClient(timeout=self.timeout)
        return self._http

    async def aclose(self) -> None:
        if self._http is not None and self._owns_http:
            await self._http.aclose()
            self._http = None

    async def __aenter__(self) -> "GenerativeModelClient":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.aclose()

    async def complete(
        self, prompt: str, options: GenerationOptions | None = None
    ) -> str:
        """
        Request a completion for a single prompt.

        Args:
            prompt: Prompt text
            options: Sampling options. Defaults to the configured values.

        Returns:
            The generated text

        Raises:
            TransportError: If the HTTP exchange fails after retries
            MaxLengthExceeded: If the output was truncated (partial text attached)
            NoCandidates: If the service returned no candidates
            InvalidResponseStructure: If the response has no text part
        """
        options = options or GenerationOptions()
        request_id = new_request_id()

        retrying = AsyncRetrying(
            stop=stop_after_attempt(self.max_retries + 1),
            wait=wait_exponential_jitter(
                initial=self.retry_base_delay,
                max=self.retry_max_delay,
                jitter=self.retry_base_delay,
            ),
            retry=retry_if_exception(is_retryable_error),
            before_sleep=before_sleep_log(logger, logging.WARNING),
            reraise=True,
        )
        async for attempt in retrying:
            with attempt:
                text = await self._send(prompt, options, request_id)
        return text

    async def complete_batch(
        self, prompts: list[str], options: GenerationOptions | None = None
    ) -> list[str | Exception]:
        """
        Run independent prompts through a fixed-width worker pool.

        Prompts are processed in chunks of `batch_width`. The rate limiter is
        awaited between chunks.

        Args:
            prompts: Prompts to complete
            options: Sampling options shared by all prompts

        Returns:
            One entry per prompt, in order: the text, or the exception it raised
        """
        results: list[str | Exception] = []
        if not prompts:
            return results

        chunks = [
            prompts[i : i + self.batch_width]
            for i in range(0, len(prompts), self.batch_width)
        ]
        with tqdm(total=len(prompts), desc="  Batch", leave=False) as pbar:
            for index, chunk in enumerate(chunks):
                if index > 0:
                    await self.rate_limiter.wait()
                outcomes = await asyncio.gather(
                    *(self.complete(prompt, options) for prompt in chunk),
                    return_exceptions=True,
                )
                results.extend(outcomes)
                pbar.update(len(chunk))

        failed = sum(1 for r in results if isinstance(r, Exception))
        if failed:
            logger.warning(f"  Batch finished with {failed}/{len(prompts)} failed requests")
        return results

    async def _send(
        self, prompt: str, options: GenerationOptions, request_id: str
    ) -> str:
        url = f"{self.base_url}/models/{self.model}:generateContent"
        body = {
            "contents": [{"parts": [{"text": prompt}]}],
            "generationConfig": {
                "temperature": options.temperature,
                "maxOutputTokens": options.max_output_length,
                "topP": options.top_p,
            },
        }

        try:
            response = await self.http.post(url, params={"key": self.api_key}, json=body)
        except httpx.HTTPError as e:
            raise TransportError(f"Network request failed: {e}", status=None) from e

        if response.status_code >= 400:
            raise TransportError(
                f"API request failed: {response.status_code} {response.reason_phrase}",
                status=response.status_code,
            )

        try:
            data = response.json()
        except ValueError as e:
            raise InvalidResponseStructure(f"Response body is not JSON: {e}") from e

        return self._extract_text(data, prompt, request_id)

    def _extract_text(self, data: dict, prompt: str, request_id: str) -> str:
        candidates = data.get("candidates") or []
        if not candidates:
            raise NoCandidates("No candidates returned from API")

        candidate = candidates[0]
        parts = (candidate.get("content") or {}).get("parts") or []
        text = parts[0].get("text") if parts else None

        self._record_usage(request_id, prompt, text or "", data.get("usageMetadata"))

        if candidate.get("finishReason") == "MAX_TOKENS":
            logger.warning(f"  Response {request_id} hit the output length limit")
            raise MaxLengthExceeded(
                "Response truncated at maximum output length", partial=text or None
            )

        if text is None:
            raise InvalidResponseStructure("Invalid response structure from API")

        return text

    def _record_usage(
        self, request_id: str, prompt: str, text: str, usage: dict | None
    ) -> None:
        if usage and usage.get("totalTokenCount") is not None:
            prompt_tokens = usage.get("promptTokenCount", 0)
            response_tokens = usage.get("candidatesTokenCount", 0)
            total = usage["totalTokenCount"]
        else:
            prompt_tokens = estimate_tokens(prompt)
            response_tokens = estimate_tokens(text)
            total = prompt_tokens + response_tokens

        self.total_tokens += total
        self.usage_log.append(
            {
                "request_id": request_id,
                "prompt_tokens": prompt_tokens,
                "response_tokens": response_tokens,
                "total_tokens": total,
                "timestamp": time.time(),
            }
        )
        logger.debug(f"  {request_id}: {total} tokens (running total {self.total_tokens})")
