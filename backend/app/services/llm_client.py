"""
Generation client for the chat backend.

One class covers both configured providers:
  - Gemini via REST (httpx), including server-sent streaming
  - OpenAI via the official async SDK

`generate()` returns a whole completion (search-term extraction, summaries);
`stream()` yields answer text fragments as the provider produces them.
Provider failures are raised as LLMError with a human-readable message.
"""
import json
import logging
from contextlib import aclosing
from typing import AsyncIterator, Optional

import httpx

from config import settings

logger = logging.getLogger("chat.llm")

# ---------------------------------------------------------------------------
# Provider display names
# ---------------------------------------------------------------------------
PROVIDER_LABELS = {"openai": "OpenAI", "gemini": "Gemini"}

GEMINI_API_BASE = "https://generativelanguage.googleapis.com/v1beta"


class LLMError(Exception):
    """Generation provider failure. `str(err)` is safe to show to an end user."""

    def __init__(self, message: str, status_code: int = 0):
        super().__init__(message)
        self.status_code = status_code


def format_llm_error(provider: str, error, status_code: int = 0) -> str:
    """
    Format provider errors into short human-readable messages.
    Classifies by error type and provides actionable advice.
    """
    if isinstance(error, LLMError):
        return str(error)

    label = PROVIDER_LABELS.get(provider, provider)
    err_str = f"{type(error).__name__} {error}".lower()

    # Auth errors (invalid API key)
    if status_code in (401, 403) or any(kw in err_str for kw in (
        "401", "403", "unauthorized", "authentication", "invalid api key",
        "incorrect api key", "api key not valid", "permission denied",
    )):
        return f"Authorization failed: the {label} API key is invalid or revoked."

    # Rate limit
    if status_code == 429 or any(kw in err_str for kw in (
        "429", "rate limit", "rate_limit", "too many requests", "quota",
        "resource_exhausted",
    )):
        return f"Rate limited: {label} is throttling requests. Wait a moment and try again."

    # Timeout
    if any(kw in err_str for kw in ("timeout", "timed out")):
        return f"Timed out: {label} did not respond in time. Please try again later."

    # Connection / network errors
    if any(kw in err_str for kw in (
        "connecterror", "connectionerror", "connection refused",
        "name resolution", "unreachable", "no route",
        "failed to establish", "cannot connect",
    )):
        return f"Connection failed: could not reach the {label} API."

    # Server errors (5xx)
    if status_code >= 500 or any(kw in err_str for kw in (
        "500", "502", "503", "504", "internal server error",
        "bad gateway", "service unavailable",
    )):
        return f"{label} is temporarily unavailable (status {status_code or 'unknown'}). Please try again later."

    # Model not found
    if any(kw in err_str for kw in ("model not found", "model_not_found", "does not exist")):
        return f"Model not found at {label}. Check the configured model name."

    # Fallback: unknown error
    return f"{label} error: {str(error)[:200]}"


def _http_error(provider: str, resp: httpx.Response) -> LLMError:
    try:
        body = resp.json().get("error", {}).get("message", resp.text)
    except (ValueError, AttributeError):
        body = resp.text
    return LLMError(format_llm_error(provider, body, status_code=resp.status_code), resp.status_code)


def alternate_turns(messages: list[dict], assistant_role: str) -> list[dict]:
    """Collapse chat history into strictly alternating user/assistant turns.

    Only "user" keeps its role; every other client role (assistant, system,
    anything unknown) becomes `assistant_role`, so a caller can never add a
    system turn. Consecutive turns of the same role are merged.
    """
    turns: list[dict] = []
    for msg in messages:
        role = "user" if msg.get("role") == "user" else assistant_role
        text = msg.get("content") or ""
        if turns and turns[-1]["role"] == role:
            turns[-1]["content"] += "\n\n" + text
        else:
            turns.append({"role": role, "content": text})
    return turns


def to_openai_messages(messages: list[dict]) -> list[dict]:
    return alternate_turns(messages, "assistant")


def to_gemini_contents(messages: list[dict]) -> list[dict]:
    """Map chat turns to Gemini `contents`."""
    return [
        {"role": t["role"], "parts": [{"text": t["content"]}]}
        for t in alternate_turns(messages, "model")
    ]


def _gemini_text(data: dict) -> str:
    candidates = data.get("candidates") or []
    if not candidates:
        return ""
    parts = (candidates[0].get("content") or {}).get("parts") or []
    return "".join(p.get("text", "") for p in parts if isinstance(p, dict))


class GenerativeModel:
    """Text generation against the configured provider."""

    def __init__(
        self,
        provider: str = "gemini",
        api_key: str = "",
        model: Optional[str] = None,
        timeout: int = 120,
    ):
        self.provider = provider
        self.api_key = api_key
        self.timeout = timeout
        self.model = model or {
            "gemini": settings.GEMINI_MODEL,
            "openai": settings.OPENAI_MODEL,
        }.get(provider, "")

        self.client = None
        if provider == "openai" and api_key:
            from openai import AsyncOpenAI

            self.client = AsyncOpenAI(api_key=api_key, timeout=timeout)

    def _check_ready(self) -> None:
        if self.provider not in PROVIDER_LABELS:
            raise LLMError(f"Unknown AI provider: {self.provider}")
        if not self.api_key:
            raise LLMError(
                f"{PROVIDER_LABELS[self.provider]} API key is not configured."
            )

    # ------------------------------------------------------------------
    # Whole completion
    # ------------------------------------------------------------------
    async def generate(self, prompt: str, system_instruction: Optional[str] = None) -> str:
        """Single-turn completion. Returns the full response text."""
        self._check_ready()
        messages = [{"role": "user", "content": prompt}]
        if self.provider == "openai":
            return await self._generate_openai(messages, system_instruction)
        return await self._generate_gemini(messages, system_instruction)

    async def _generate_openai(self, messages: list[dict], system_instruction: Optional[str]) -> str:
        from openai import APIError

        payload = to_openai_messages(messages)
        if system_instruction:
            payload.insert(0, {"role": "system", "content": system_instruction})
        try:
            response = await self.client.chat.completions.create(
                model=self.model,
                messages=payload,
            )
        except APIError as e:
            raise LLMError(
                format_llm_error(self.provider, e, getattr(e, "status_code", 0) or 0)
            ) from e

        return response.choices[0].message.content or ""

    async def _generate_gemini(self, messages: list[dict], system_instruction: Optional[str]) -> str:
        url = f"{GEMINI_API_BASE}/models/{self.model}:generateContent"
        body = self._gemini_body(messages, system_instruction)

        async with httpx.AsyncClient(timeout=self.timeout) as http:
            try:
                resp = await http.post(url, headers=self._gemini_headers(), json=body)
            except httpx.HTTPError as e:
                raise LLMError(format_llm_error(self.provider, e)) from e

            if resp.status_code != 200:
                raise _http_error(self.provider, resp)

            return _gemini_text(resp.json())

    # ------------------------------------------------------------------
    # Streaming
    # ------------------------------------------------------------------
    async def stream(
        self,
        messages: list[dict],
        system_instruction: Optional[str] = None,
    ) -> AsyncIterator[str]:
        """Yield non-empty answer text fragments in generation order."""
        self._check_ready()
        if self.provider == "openai":
            gen = self._stream_openai(messages, system_instruction)
        else:
            gen = self._stream_gemini(messages, system_instruction)
        async with aclosing(gen) as fragments:
            async for fragment in fragments:
                if fragment:
                    yield fragment

    async def _stream_openai(
        self, messages: list[dict], system_instruction: Optional[str]
    ) -> AsyncIterator[str]:
        from openai import APIError

        payload = to_openai_messages(messages)
        if system_instruction:
            payload.insert(0, {"role": "system", "content": system_instruction})

        try:
            response = await self.client.chat.completions.create(
                model=self.model,
                messages=payload,
                stream=True,
            )
        except APIError as e:
            raise LLMError(
                format_llm_error(self.provider, e, getattr(e, "status_code", 0) or 0)
            ) from e

        try:
            async for chunk in response:
                if not chunk.choices:
                    continue
                delta = chunk.choices[0].delta
                if delta is not None and delta.content:
                    yield delta.content
        except APIError as e:
            raise LLMError(format_llm_error(self.provider, e)) from e
        finally:
            await response.close()

    async def _stream_gemini(
        self, messages: list[dict], system_instruction: Optional[str]
    ) -> AsyncIterator[str]:
        url = f"{GEMINI_API_BASE}/models/{self.model}:streamGenerateContent"
        body = self._gemini_body(messages, system_instruction)

        async with httpx.AsyncClient(timeout=self.timeout) as http:
            try:
                async with http.stream(
                    "POST", url, params={"alt": "sse"},
                    headers=self._gemini_headers(), json=body,
                ) as resp:
                    if resp.status_code != 200:
                        await resp.aread()
                        raise _http_error(self.provider, resp)

                    async for line in resp.aiter_lines():
                        if not line.startswith("data:"):
                            continue
                        raw = line[len("data:"):].strip()
                        if not raw:
                            continue
                        try:
                            data = json.loads(raw)
                        except json.JSONDecodeError:
                            logger.warning("Gemini stream: skipping malformed frame")
                            continue
                        if "error" in data:
                            err = data["error"]
                            raise LLMError(
                                format_llm_error(self.provider, err.get("message", err),
                                                 err.get("code", 0) or 0)
                            )
                        yield _gemini_text(data)
            except httpx.HTTPError as e:
                raise LLMError(format_llm_error(self.provider, e)) from e

    # ------------------------------------------------------------------
    # Gemini request helpers
    # ------------------------------------------------------------------
    def _gemini_headers(self) -> dict:
        return {"x-goog-api-key": self.api_key, "content-type": "application/json"}

    @staticmethod
    def _gemini_body(messages: list[dict], system_instruction: Optional[str]) -> dict:
        body: dict = {"contents": to_gemini_contents(messages)}
        if system_instruction:
            body["systemInstruction"] = {"parts": [{"text": system_instruction}]}
        return body


# ---------------------------------------------------------------------------
# Process-wide instance
# ---------------------------------------------------------------------------
_model: Optional[GenerativeModel] = None


def get_generative_model() -> GenerativeModel:
    """Lazily build the model client from settings (FastAPI dependency)."""
    global _model
    if _model is None:
        provider = settings.AI_PROVIDER
        api_key = settings.OPENAI_API_KEY if provider == "openai" else settings.GEMINI_API_KEY
        _model = GenerativeModel(provider=provider, api_key=api_key, timeout=settings.AI_TIMEOUT)
        logger.info("Generation client: provider=%s model=%s", provider, _model.model)
    return _model
