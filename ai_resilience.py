"""AI Resilience Layer: Retry, Circuit Breaker, Cache, Cost Tracking.

Every Gemini request made by the tutor goes through ``resilient_generate()``,
which adds retry on transient errors, a circuit breaker, an optional response
cache and a rough cost estimate.
"""

from __future__ import annotations

import hashlib
import logging
import os
import threading
import time
from collections import OrderedDict
from collections.abc import Callable

from tenacity import (
    retry,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

logger = logging.getLogger(__name__)

PROVIDER = "gemini"


# ── Response cache ──────────────────────────────────────────

class TTLCache:
    """Least-recently-used response cache whose entries also expire."""

    MAX_ENTRIES = 1000

    def __init__(self, clock: Callable[[], float] = time.monotonic) -> None:
        self._clock = clock
        self._entries: OrderedDict[str, tuple[str, float]] = OrderedDict()
        self._lock = threading.Lock()
        self.hits = 0
        self.misses = 0

    @staticmethod
    def make_key(prompt: str, system: str, model: str, json_mode: bool = False) -> str:
        digest = hashlib.sha256()
        for part in (model, "json" if json_mode else "text", system, prompt):
            digest.update(part.encode())
            digest.update(b"\x00")
        return digest.hexdigest()

    def get(self, key: str) -> str | None:
        with self._lock:
            found = self._entries.get(key)
            if found is not None and found[1] <= self._clock():
                del self._entries[key]
                found = None
            if found is None:
                self.misses += 1
                return None
            self._entries.move_to_end(key)
            self.hits += 1
            return found[0]

    def set(self, key: str, value: str, ttl_seconds: float = 86400) -> None:
        with self._lock:
            self._entries[key] = (value, self._clock() + ttl_seconds)
            self._entries.move_to_end(key)
            while len(self._entries) > self.MAX_ENTRIES:
                self._entries.popitem(last=False)

    def cleanup(self) -> int:
        """Drop expired entries and return how many went."""
        with self._lock:
            now = self._clock()
            stale = [k for k, (_, expires) in self._entries.items() if expires <= now]
            for k in stale:
                del self._entries[k]
            return len(stale)

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()
            self.hits = self.misses = 0

    def __len__(self) -> int:
        return len(self._entries)


# ── Circuit Breaker ─────────────────────────────────────────

CLOSED = "closed"
OPEN = "open"
HALF_OPEN = "half_open"


class CircuitBreaker:
    """Trips after consecutive failures; lets one probe through after the cool-down.

    A failed probe re-opens the circuit straight away.
    """

    FAILURE_THRESHOLD = 3
    RECOVERY_TIMEOUT = 60.0

    def __init__(self, name: str = PROVIDER, clock: Callable[[], float] = time.monotonic) -> None:
        self.name = name
        self._clock = clock
        self._lock = threading.Lock()
        self.failures = 0
        self._state = CLOSED
        self._opened_at = 0.0

    @property
    def state(self) -> str:
        with self._lock:
            return self._state

    def allow(self) -> bool:
        with self._lock:
            if self._state == OPEN and self._clock() - self._opened_at >= self.RECOVERY_TIMEOUT:
                self._state = HALF_OPEN
                logger.info("Circuit for %s half-open, sending a probe", self.name)
            return self._state != OPEN

    def record_success(self) -> None:
        with self._lock:
            if self._state != CLOSED:
                logger.info("Circuit for %s closed", self.name)
            self.failures = 0
            self._state = CLOSED

    def record_failure(self) -> None:
        with self._lock:
            self.failures += 1
            if self._state == HALF_OPEN or self.failures >= self.FAILURE_THRESHOLD:
                if self._state != OPEN:
                    logger.warning("Circuit for %s opened after %d failures", self.name, self.failures)
                self._state = OPEN
                self._opened_at = self._clock()

    def reset(self) -> None:
        with self._lock:
            self.failures = 0
            self._state = CLOSED
            self._opened_at = 0.0


_circuit_breaker = CircuitBreaker(PROVIDER)
_cache = TTLCache()


# ── Cost Tracker ────────────────────────────────────────────

# USD per 1M tokens, input and output averaged
_MODEL_PRICING: dict[str, float] = {
    "gemini-2.0-flash": 0.075,
    "gemini-1.5-flash": 0.075,
    "gemini-1.5-pro": 1.25,
}
_DEFAULT_PRICE = 1.0


def estimate_tokens(text: str) -> int:
    """About four characters per token, never less than one."""
    return max(1, len(text) // 4)


def track_call(model: str, input_text: str, output_text: str, latency_ms: int) -> dict:
    tokens_in = estimate_tokens(input_text)
    tokens_out = estimate_tokens(output_text)
    price = _MODEL_PRICING.get(model, _DEFAULT_PRICE)
    return {
        "model": model,
        "latency_ms": latency_ms,
        "input_tokens_est": tokens_in,
        "output_tokens_est": tokens_out,
        "cost_estimate_usd": round((tokens_in + tokens_out) * price / 1_000_000, 6),
    }


# ── Transient error detection ───────────────────────────────

_TRANSIENT_MARKERS = (
    "429",
    "500",
    "502",
    "503",
    "rate limit",
    "resource exhausted",
    "overloaded",
    "unavailable",
    "timeout",
    "deadline exceeded",
)


def is_transient(exc: BaseException) -> bool:
    """Network failures and throttling/server errors are worth another attempt."""
    if isinstance(exc, (ConnectionError, TimeoutError)):
        return True
    text = str(exc).lower()
    return any(marker in text for marker in _TRANSIENT_MARKERS)


class TransientLLMError(Exception):
    """A Gemini failure that the retry policy should try again."""


class CircuitOpenError(RuntimeError):
    """Raised without calling the API while the breaker is open."""


# ── Main entry point ────────────────────────────────────────

def _do_call(model: str, prompt: str, system: str, json_mode: bool, api_key: str) -> str:
    """One raw Gemini request."""
    import google.generativeai as genai

    genai.configure(api_key=api_key)
    options: dict = {"system_instruction": system} if system else {}
    generation_config = {"response_mime_type": "application/json"} if json_mode else None
    response = genai.GenerativeModel(model, **options).generate_content(
        prompt, generation_config=generation_config,
    )
    return response.text or ""


@retry(
    retry=retry_if_exception_type(TransientLLMError),
    wait=wait_exponential(multiplier=1, min=1, max=30),
    stop=stop_after_attempt(3),
    reraise=True,
)
def _call_with_retry(model: str, prompt: str, system: str, json_mode: bool, api_key: str) -> str:
    try:
        return _do_call(model, prompt, system, json_mode, api_key)
    except Exception as exc:
        if not is_transient(exc):
            raise
        logger.warning("Transient Gemini error on %s: %s", model, exc)
        raise TransientLLMError(str(exc)) from exc


def resilient_generate(
    model: str,
    prompt: str,
    system: str = "",
    json_mode: bool = False,
    cache_ttl: int = 0,
    api_key: str | None = None,
) -> tuple[str, dict]:
    """Generate text with retry, circuit breaking and optional caching.

    Args:
        model: Gemini model name
        prompt: User prompt
        system: System instruction, may be empty
        json_mode: Ask for an ``application/json`` response
        cache_ttl: Seconds to cache the answer for; 0 disables the cache
        api_key: Overrides the GOOGLE_API_KEY environment variable

    Returns:
        ``(text, metrics)``; metrics hold token and cost estimates, latency
        and ``cache_hit``.

    Raises:
        CircuitOpenError: the breaker is open and no request was made.
    """
    if not _circuit_breaker.allow():
        raise CircuitOpenError(f"Circuit breaker open for provider: {PROVIDER}")

    key = TTLCache.make_key(prompt, system, model, json_mode)
    if cache_ttl > 0:
        cached = _cache.get(key)
        if cached is not None:
            return cached, {"model": model, "latency_ms": 0, "cost_estimate_usd": 0.0, "cache_hit": True}

    if api_key is None:
        api_key = os.getenv("GOOGLE_API_KEY", "")
    started = time.perf_counter()
    try:
        text = _call_with_retry(model, prompt, system, json_mode, api_key)
    except Exception:
        _circuit_breaker.record_failure()
        raise
    _circuit_breaker.record_success()
    latency_ms = int((time.perf_counter() - started) * 1000)

    if cache_ttl > 0:
        _cache.set(key, text, cache_ttl)

    metrics = {**track_call(model, system + prompt, text, latency_ms), "cache_hit": False}
    logger.debug("Gemini %s answered in %dms (~$%.6f)", model, latency_ms, metrics["cost_estimate_usd"])
    return text, metrics


def get_circuit_breaker() -> CircuitBreaker:
    return _circuit_breaker


def get_cache() -> TTLCache:
    return _cache
