"""Prompt texts for search-term extraction, answering and document summaries."""
from typing import Optional

# ---------------------------------------------------------------------------
# Search-term extraction
# ---------------------------------------------------------------------------
EXTRACTION_SYSTEM = (
    "You help identify whether a user message is asking about a specific product "
    "so we can look up documentation.\n"
    "You are given the current product's name and optional description.\n"
    "Your job: output a JSON array of 1 or more search terms (strings) that would find "
    "relevant documentation, OR an empty array [] if the message is chit-chat, greeting, "
    "unrelated, or not about this product.\n"
    'Reply with ONLY the JSON array, no other text. Example: ["unit conversion", "length"] or []'
)


def build_extraction_user_message(
    product_name: str,
    product_description: Optional[str],
    user_message: str,
) -> str:
    lines = [
        f"Product name: {product_name}",
        f"Product description: {product_description}" if product_description else "",
        "",
        f"User message: {user_message}",
        "",
        "Output a JSON array of search terms (or [] if not about this product):",
    ]
    return "\n".join(line for line in lines if line)


# ---------------------------------------------------------------------------
# Answering
# ---------------------------------------------------------------------------
CHAT_ASSISTANT_BASE_SYSTEM = (
    "You are a helpful product assistant. Answer concisely and accurately. "
    "If you are given context from documentation, use it to answer; "
    "if the context does not contain the answer, say so."
)

CONTEXT_PREFIX = (
    "Use the following context from the product documentation when answering. "
    "If the context does not contain the answer, say so.\n\nContext:\n"
)


def build_chat_system(context_block: str = "") -> str:
    """System instruction for answering; context is appended only when non-blank."""
    if not context_block or not context_block.strip():
        return CHAT_ASSISTANT_BASE_SYSTEM
    return f"{CHAT_ASSISTANT_BASE_SYSTEM}\n\n{CONTEXT_PREFIX}{context_block}"


# ---------------------------------------------------------------------------
# Project description from documentation
# ---------------------------------------------------------------------------
SUMMARY_PROMPT = (
    "Summarize the following product documentation in a single sentence that gives an "
    "overview of what the product is and what it does.\n"
    'Output only that one sentence, no quotes, no preamble, no "Summary:" label.'
)


def build_summary_prompt(documentation: str, max_chars: int) -> str:
    return f"{SUMMARY_PROMPT}\n\n---\n\n{documentation[:max_chars]}"
