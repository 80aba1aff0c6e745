"""Context Assembler — turns retrieved chunks into the prompt context block
and the citation list shown under an answer."""
from __future__ import annotations

from services.vector_store import RetrievedChunk

CONTEXT_SEPARATOR = "\n\n---\n\n"


def assemble_context(chunks: list[RetrievedChunk]) -> tuple[str, list[dict]]:
    """Return (context_block, sources), both in retrieval order.

    Each chunk becomes "[<document name>]\\n<content>". Every chunk gets a
    source entry; a document cited more than once is titled
    "<name> (excerpt)" from its second appearance on.
    """
    blocks: list[str] = []
    sources: list[dict] = []
    seen: set[str] = set()

    for chunk in chunks:
        blocks.append(f"[{chunk.document_name}]\n{chunk.content}")
        title = chunk.document_name
        if title in seen:
            title = f"{title} (excerpt)"
        seen.add(chunk.document_name)
        sources.append({"title": title, "url": ""})

    return CONTEXT_SEPARATOR.join(blocks), sources
