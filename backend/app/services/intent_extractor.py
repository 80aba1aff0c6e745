"""Intent Extractor — decides whether a chat message needs documentation lookup.

The model is asked for a JSON array of search terms. Anything that goes wrong
(timeout, provider error, unparseable reply) degrades to "no terms", so a
chat turn never fails because of extraction.
"""
from __future__ import annotations

import asyncio
import json
import logging
from dataclasses import dataclass, field
from typing import Optional

from services.llm_client import GenerativeModel
from services.prompts import EXTRACTION_SYSTEM, build_extraction_user_message

logger = logging.getLogger("chat.intent")


@dataclass
class ExtractionResult:
    ok: bool
    terms: list[str] = field(default_factory=list)


def strip_code_fences(content: str) -> str:
    """Remove a ```json ... ``` wrapping if the model added one."""
    content = content.strip()
    if content.startswith("```"):
        lines = content.split("\n")
        if lines[0].startswith("```"):
            lines = lines[1:]
        if lines and lines[-1].strip() == "```":
            lines = lines[:-1]
        content = "\n".join(lines).strip()
    return content


def parse_search_terms(raw: Optional[str]) -> ExtractionResult:
    """Parse the model reply into search terms.

    A JSON array is accepted even if some elements are not strings; those
    elements are dropped, as are blank strings. Anything that is not a JSON
    array is reported as malformed.
    """
    if not raw:
        return ExtractionResult(ok=False)
    try:
        parsed = json.loads(strip_code_fences(raw))
    except json.JSONDecodeError:
        return ExtractionResult(ok=False)
    if not isinstance(parsed, list):
        return ExtractionResult(ok=False)

    terms = [item.strip() for item in parsed if isinstance(item, str) and item.strip()]
    return ExtractionResult(ok=True, terms=terms)


class IntentExtractor:
    def __init__(self, model: GenerativeModel, timeout: float = 15.0):
        self.model = model
        self.timeout = timeout

    async def extract(
        self,
        product_name: str,
        product_description: Optional[str],
        user_message: str,
    ) -> list[str]:
        """Return search terms for the message, or [] when no lookup is warranted."""
        prompt = build_extraction_user_message(product_name, product_description, user_message)
        try:
            raw = await asyncio.wait_for(
                self.model.generate(prompt, system_instruction=EXTRACTION_SYSTEM),
                timeout=self.timeout,
            )
        except asyncio.TimeoutError:
            logger.warning("Search-term extraction timed out after %.1fs", self.timeout)
            return []
        except Exception as e:
            logger.warning("Search-term extraction failed: %s", e)
            return []

        result = parse_search_terms(raw)
        if not result.ok:
            logger.warning("Search-term extraction returned malformed output: %r", (raw or "")[:200])
            return []
        return result.terms
