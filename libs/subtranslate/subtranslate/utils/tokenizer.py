"""Token counting for prompt-size logging."""

from __future__ import annotations

from functools import lru_cache

import tiktoken


@lru_cache(maxsize=4)
def _encoding(encoding_name: str) -> tiktoken.Encoding:
    return tiktoken.get_encoding(encoding_name)


def count_tokens(text: str, encoding_name: str = "cl100k_base") -> int:
    """Count tokens in text using tiktoken.

    Args:
        text: Text to count tokens for
        encoding_name: Tiktoken encoding name (default: cl100k_base)

    Returns:
        Token count
    """
    return len(_encoding(encoding_name).encode(text or ""))


def estimate_prompt_tokens(
    system_prompt: str,
    user_content: str,
    encoding_name: str = "cl100k_base",
) -> int:
    """Estimate total tokens for a two-message prompt.

    Includes ~10 tokens of overhead for message formatting.
    """
    overhead = 10
    return (
        count_tokens(system_prompt, encoding_name)
        + count_tokens(user_content, encoding_name)
        + overhead
    )
