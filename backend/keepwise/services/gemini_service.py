"""
KeepWise — Google Gemini Summarizer
====================================

What:  Summarizer implementation backed by the Google Gemini API.
How:   Builds a prompt from SummaryOptions, sends it with the highlighted
       text, and wraps the call in tenacity retries and a circuit breaker.
Who:   Used by the capture client when no on-device summarizer is available.

Resilience Strategy:
    1. Tenacity retry with exponential backoff + jitter for transient failures
    2. Circuit breaker so a Gemini outage fails fast instead of stalling
       every capture for the full retry budget
    3. Per-call timeout on the generate request
"""

import logging
import time
import uuid
from typing import Optional

import google.generativeai as genai
from tenacity import (
    retry,
    stop_after_attempt,
    wait_exponential_jitter,
    retry_if_exception_type,
    before_sleep_log,
)

from keepwise.config import settings
from keepwise.exceptions import LLMServiceError, CircuitBreakerOpenError
from keepwise.services.summarizer_base import Availability, Summarizer, SummaryOptions

logger = logging.getLogger(__name__)


# ══════════════════════════════════════════════════════════════════════════
# Circuit Breaker Implementation
# ══════════════════════════════════════════════════════════════════════════

class CircuitBreaker:
    """
    Circuit breaker guarding calls to the summarization API.

    State Machine:
        CLOSED (normal operation)
            → On failure: increment failure_count
            → When failure_count >= threshold: transition to OPEN

        OPEN (rejecting all requests)
            → All calls raise CircuitBreakerOpenError immediately
            → After recovery_timeout seconds: transition to HALF_OPEN

        HALF_OPEN (testing recovery)
            → Allow ONE request through
            → On success: transition to CLOSED (reset failure_count)
            → On failure: transition back to OPEN (reset timer)

    Not thread-safe; one capture client runs on one event loop.
    """

    CLOSED = "closed"
    OPEN = "open"
    HALF_OPEN = "half_open"

    def __init__(self, failure_threshold: int = 5, recovery_timeout: int = 60):
        self.failure_threshold = failure_threshold
        self.recovery_timeout = recovery_timeout
        self.failure_count = 0
        self.state = self.CLOSED
        self.last_failure_time: Optional[float] = None

    def can_execute(self) -> bool:
        """
        Returns True if the call may proceed.

        Raises:
            CircuitBreakerOpenError if OPEN and the recovery timeout hasn't elapsed.
        """
        if self.state == self.CLOSED:
            return True

        if self.state == self.OPEN:
            elapsed = time.time() - (self.last_failure_time or 0)
            if elapsed >= self.recovery_timeout:
                logger.info(
                    "Circuit breaker transitioning to HALF_OPEN after %.1fs",
                    elapsed,
                )
                self.state = self.HALF_OPEN
                return True
            remaining = int(self.recovery_timeout - elapsed)
            raise CircuitBreakerOpenError(recovery_time=remaining)

        return True

    def record_success(self) -> None:
        if self.state == self.HALF_OPEN:
            logger.info("Circuit breaker transitioning to CLOSED (service recovered)")
        self.failure_count = 0
        self.state = self.CLOSED
        self.last_failure_time = None

    def record_failure(self) -> None:
        self.failure_count += 1
        self.last_failure_time = time.time()

        if self.state == self.HALF_OPEN:
            logger.warning("Circuit breaker returning to OPEN (test request failed)")
            self.state = self.OPEN
        elif self.failure_count >= self.failure_threshold:
            logger.warning(
                "Circuit breaker OPENING after %d consecutive failures",
                self.failure_count,
            )
            self.state = self.OPEN


# ══════════════════════════════════════════════════════════════════════════
# Prompt construction
# ══════════════════════════════════════════════════════════════════════════

_TYPE_INSTRUCTIONS = {
    "key-points": "Summarize the text as a bulleted list of its key points, one point per line starting with '- '.",
    "tldr": "Write a short TL;DR of the text.",
    "teaser": "Write an intriguing teaser that makes the reader want to read the full text.",
    "headline": "Write a single headline capturing the main point of the text.",
}

_LENGTH_INSTRUCTIONS = {
    "key-points": {"short": "Use at most 3 bullets.", "medium": "Use at most 5 bullets.", "long": "Use at most 7 bullets."},
    "tldr": {"short": "Use one sentence.", "medium": "Use up to three sentences.", "long": "Use up to five sentences."},
    "teaser": {"short": "Use one sentence.", "medium": "Use up to three sentences.", "long": "Use up to five sentences."},
    "headline": {"short": "Use at most 12 words.", "medium": "Use at most 17 words.", "long": "Use at most 22 words."},
}


def build_prompt(text: str, options: SummaryOptions) -> str:
    """Prompt for `text` honoring type, length and output format."""
    style = (
        "Format the answer as Markdown."
        if options.format == "markdown"
        else "Answer in plain text without any Markdown syntax."
    )
    return (
        f"{_TYPE_INSTRUCTIONS[options.type]} "
        f"{_LENGTH_INSTRUCTIONS[options.type][options.length]} "
        f"{style} Return only the summary.\n\n"
        f"Text:\n{text}"
    )


# ══════════════════════════════════════════════════════════════════════════
# Gemini Summarizer
# ══════════════════════════════════════════════════════════════════════════

class GeminiSummarizer(Summarizer):
    """
    Summarizer using Google Gemini.

    Error Handling Chain:
        API call fails → tenacity retries (RETRY_MAX_ATTEMPTS, with backoff)
        → All retries fail → record circuit breaker failure → LLMServiceError
        → Circuit breaker threshold reached → future calls rejected instantly
        → Recovery timeout → one test call (HALF_OPEN) → CLOSED on success
    """

    def __init__(self, api_key: Optional[str] = None, model_name: Optional[str] = None):
        self.api_key = settings.gemini_api_key if api_key is None else api_key
        self.model_name = model_name or settings.gemini_model

        # The SDK keeps the key in module-level state
        if self.api_key:
            genai.configure(api_key=self.api_key)

        self.model = genai.GenerativeModel(self.model_name)

        self.circuit_breaker = CircuitBreaker(
            failure_threshold=settings.cb_failure_threshold,
            recovery_timeout=settings.cb_recovery_timeout,
        )

        logger.info(
            "GeminiSummarizer initialized with model=%s, "
            "circuit_breaker(threshold=%d, recovery=%ds)",
            self.model_name,
            settings.cb_failure_threshold,
            settings.cb_recovery_timeout,
        )

    async def availability(self) -> Availability:
        if not self.api_key:
            return "unavailable"
        if self.circuit_breaker.state == CircuitBreaker.OPEN:
            return "unavailable"
        return "available"

    async def summarize(self, text: str, options: SummaryOptions) -> str:
        """
        Summarize `text` with Gemini.

        Raises:
            CircuitBreakerOpenError: Circuit is open (too many recent failures)
            LLMServiceError: Gemini failed after all retry attempts, or
                             returned an empty answer
        """
        request_id = str(uuid.uuid4())[:8]

        self.circuit_breaker.can_execute()

        logger.info(
            "[%s] Starting Gemini summary (type=%s, length=%s, %d chars)",
            request_id,
            options.type,
            options.length,
            len(text),
        )

        try:
            result = await self._call_gemini_with_retry(build_prompt(text, options), request_id)
        except Exception as e:
            self.circuit_breaker.record_failure()
            logger.error(
                "[%s] Gemini summarization failed: %s",
                request_id,
                str(e),
                exc_info=True,
            )
            raise LLMServiceError(
                message="Summarization failed after multiple attempts. Please try again later.",
                retry_after=self.circuit_breaker.recovery_timeout,
                context={"request_id": request_id, "error_type": type(e).__name__},
            )

        self.circuit_breaker.record_success()
        if not result:
            raise LLMServiceError(
                message="Summarization returned no text.",
                context={"request_id": request_id},
            )
        return result

    @retry(
        # The SDK raises generic exceptions for API errors
        retry=retry_if_exception_type(Exception),
        stop=stop_after_attempt(settings.retry_max_attempts),
        # wait = min(max_wait, min_wait * 2^attempt) + random(0, 1)
        wait=wait_exponential_jitter(
            initial=settings.retry_min_wait,
            max=settings.retry_max_wait,
            jitter=1,
        ),
        before_sleep=before_sleep_log(logger, logging.WARNING),
        reraise=True,
    )
    async def _call_gemini_with_retry(self, prompt: str, request_id: str) -> str:
        """Single Gemini request; retried as a whole, circuit checks are not."""
        start_time = time.time()

        try:
            response = await self.model.generate_content_async(
                prompt,
                request_options={"timeout": 60},
            )
        except Exception as e:
            duration_ms = (time.time() - start_time) * 1000
            logger.warning(
                "[%s] Gemini API call failed after %.0fms: %s",
                request_id,
                duration_ms,
                str(e),
            )
            raise

        duration_ms = (time.time() - start_time) * 1000
        summary = response.text.strip() if response.text else ""

        logger.info(
            "[%s] Gemini summary completed in %.0fms, %d chars",
            request_id,
            duration_ms,
            len(summary),
        )
        return summary
