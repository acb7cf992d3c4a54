"""Token estimation policies for prompt budgeting."""

import json
import math
from collections.abc import Callable
from functools import lru_cache
from typing import Any

import tiktoken

TokenEstimator = Callable[[str], int]

# Rough ratio of UTF-8 bytes to tokens for English chat text
CHARS_PER_TOKEN = 4


def estimate_tokens(text: str) -> int:
    """
    Estimate tokens as ceil(utf8 length / 4).

    Intentionally crude; swap in ``count_tokens`` for a real tokenizer.
    """
    if not text:
        return 0
    return math.ceil(len(text.encode("utf-8")) / CHARS_PER_TOKEN)


@lru_cache(maxsize=1)
def get_tokenizer() -> tiktoken.Encoding:
    """Get the tiktoken encoder (cached for performance)."""
    return tiktoken.get_encoding("cl100k_base")


def count_tokens(text: str) -> int:
    """Count tokens in a text string with tiktoken."""
    if not text:
        return 0
    return len(get_tokenizer().encode(text))


_ESTIMATORS: dict[str, TokenEstimator] = {
    "heuristic": estimate_tokens,
    "tiktoken": count_tokens,
}


def get_estimator(name: str) -> TokenEstimator:
    """Resolve a token estimator policy by name."""
    try:
        return _ESTIMATORS[name]
    except KeyError:
        raise ValueError(
            f"Unknown token estimator '{name}', expected one of {sorted(_ESTIMATORS)}"
        ) from None


def estimate_message_tokens(
    message: dict[str, Any], estimator: TokenEstimator = estimate_tokens
) -> int:
    """Estimate tokens of a single message from its JSON serialization."""
    return estimator(json.dumps(message, ensure_ascii=False))


def estimate_messages_tokens(
    messages: list[dict[str, Any]], estimator: TokenEstimator = estimate_tokens
) -> int:
    """Sum estimated tokens across a list of messages."""
    return sum(estimate_message_tokens(msg, estimator) for msg in messages)


def trim_to_budget(
    messages: list[dict[str, Any]],
    budget: int,
    estimator: TokenEstimator = estimate_tokens,
    protected_tail: int = 0,
) -> list[dict[str, Any]]:
    """
    Drop the oldest non-system messages until the estimate fits ``budget``.

    System messages and the last ``protected_tail`` messages are never
    dropped, so the result can still exceed the budget when only those
    remain. Returns a new list; the input is left untouched.
    """
    kept = list(messages)
    total = estimate_messages_tokens(kept, estimator)
    while total > budget:
        droppable = len(kept) - protected_tail
        oldest = next(
            (i for i in range(droppable) if kept[i].get("role") != "system"),
            None,
        )
        if oldest is None:
            break
        total -= estimate_message_tokens(kept.pop(oldest), estimator)
    return kept
