"""Embedder — maps text to fixed-dimension vectors via the configured provider.

Every returned vector is validated (count and dimension); anything else is an
EmbeddingServiceError, never a partial or padded result.
"""
from __future__ import annotations

import logging
import math
from typing import Optional

import httpx

from config import settings

logger = logging.getLogger("chat.embedder")

GEMINI_API_BASE = "https://generativelanguage.googleapis.com/v1beta"


class EmbeddingServiceError(Exception):
    """Embedding upstream failed or returned an unusable response."""


class Embedder:
    """Batch text embedding (Gemini REST or OpenAI SDK)."""

    def __init__(
        self,
        provider: str = "gemini",
        api_key: str = "",
        model: Optional[str] = None,
        dimensions: int = 768,
        max_chars: int = 2048,
        timeout: float = 30.0,
    ):
        self.provider = provider
        self.api_key = api_key
        self.dimensions = dimensions
        self.max_chars = max_chars
        self.timeout = timeout
        self.model = model or {
            "gemini": settings.GEMINI_EMBEDDING_MODEL,
            "openai": settings.OPENAI_EMBEDDING_MODEL,
        }.get(provider, "")

        self.client = None
        if provider == "openai" and api_key:
            from openai import AsyncOpenAI

            self.client = AsyncOpenAI(api_key=api_key, timeout=timeout)

    async def embed(self, text: str) -> list[float]:
        """Embed one text. Same result as the single element of embed_batch([text])."""
        vectors = await self.embed_batch([text])
        return vectors[0]

    async def embed_batch(self, texts: list[str]) -> list[list[float]]:
        """Embed texts in one upstream call, preserving order."""
        if not texts:
            return []
        if not self.api_key:
            raise EmbeddingServiceError(f"Embedding API key for '{self.provider}' is not configured")

        inputs = [(t or "")[: self.max_chars] for t in texts]

        if self.provider == "openai":
            vectors = await self._embed_openai(inputs)
        elif self.provider == "gemini":
            vectors = await self._embed_gemini(inputs)
        else:
            raise EmbeddingServiceError(f"Unknown embedding provider: {self.provider}")

        self._validate(vectors, expected=len(inputs))
        logger.debug("Embedded %d texts via %s", len(inputs), self.provider)
        return vectors

    # ------------------------------------------------------------------
    # Providers
    # ------------------------------------------------------------------
    async def _embed_gemini(self, inputs: list[str]) -> list:
        url = f"{GEMINI_API_BASE}/models/{self.model}:batchEmbedContents"
        body = {
            "requests": [
                {
                    "model": f"models/{self.model}",
                    "content": {"parts": [{"text": text}]},
                    "outputDimensionality": self.dimensions,
                }
                for text in inputs
            ]
        }

        async with httpx.AsyncClient(timeout=self.timeout) as http:
            try:
                resp = await http.post(
                    url,
                    headers={"x-goog-api-key": self.api_key, "content-type": "application/json"},
                    json=body,
                )
            except httpx.HTTPError as e:
                raise EmbeddingServiceError(f"Gemini embedding request failed: {e}") from e

            if resp.status_code != 200:
                raise EmbeddingServiceError(
                    f"Gemini embedding API returned {resp.status_code}: {resp.text[:200]}"
                )

            try:
                data = resp.json()
            except ValueError as e:
                raise EmbeddingServiceError("Gemini embedding API returned invalid JSON") from e

        embeddings = data.get("embeddings") if isinstance(data, dict) else None
        if not isinstance(embeddings, list):
            raise EmbeddingServiceError("Gemini embedding response has no 'embeddings' list")
        return [e.get("values") if isinstance(e, dict) else None for e in embeddings]

    async def _embed_openai(self, inputs: list[str]) -> list:
        from openai import APIError

        try:
            response = await self.client.embeddings.create(
                model=self.model,
                input=inputs,
                dimensions=self.dimensions,
            )
        except APIError as e:
            raise EmbeddingServiceError(f"OpenAI embedding request failed: {e}") from e

        items = sorted(response.data, key=lambda item: item.index)
        return [item.embedding for item in items]

    # ------------------------------------------------------------------
    # Validation
    # ------------------------------------------------------------------
    def _validate(self, vectors: list, expected: int) -> None:
        if len(vectors) != expected:
            raise EmbeddingServiceError(
                f"Embedding count mismatch: expected {expected}, got {len(vectors)}"
            )
        for i, vec in enumerate(vectors):
            if not isinstance(vec, list) or len(vec) != self.dimensions:
                got = len(vec) if isinstance(vec, list) else type(vec).__name__
                raise EmbeddingServiceError(
                    f"Embedding {i} has wrong dimension: expected {self.dimensions}, got {got}"
                )
            if not all(
                isinstance(x, (int, float)) and not isinstance(x, bool) and math.isfinite(x)
                for x in vec
            ):
                raise EmbeddingServiceError(f"Embedding {i} contains non-numeric values")


# ---------------------------------------------------------------------------
# Process-wide instance
# ---------------------------------------------------------------------------
_embedder: Optional[Embedder] = None


def get_embedder() -> Embedder:
    """Lazily build the embedder from settings (FastAPI dependency)."""
    global _embedder
    if _embedder is None:
        provider = settings.AI_PROVIDER
        api_key = settings.OPENAI_API_KEY if provider == "openai" else settings.GEMINI_API_KEY
        _embedder = Embedder(
            provider=provider,
            api_key=api_key,
            dimensions=settings.EMBEDDING_DIMENSIONS,
            max_chars=settings.EMBEDDING_MAX_CHARS,
            timeout=settings.AI_TIMEOUT,
        )
        logger.info(
            "Embedder: provider=%s model=%s dims=%d",
            provider, _embedder.model, settings.EMBEDDING_DIMENSIONS,
        )
    return _embedder
