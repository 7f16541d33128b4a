import re
from typing import List

MATCH_THRESHOLD = 0.66

_DISALLOWED = re.compile(r"[^a-z0-9 ]")
_WHITESPACE = re.compile(r"\s+")


def normalize_name(name: str) -> str:
    """
    Lowercase, drop everything outside [a-z0-9 ], collapse spaces and trim.
    """
    cleaned = _DISALLOWED.sub("", name.lower())
    return _WHITESPACE.sub(" ", cleaned).strip()


def name_tokens(name: str) -> List[str]:
    normalized = normalize_name(name)
    if not normalized:
        return []
    return sorted(normalized.split(" "))


def matches(first: str, second: str) -> bool:
    """
    Order-insensitive token overlap check between two names.

    Every token of the shorter name is looked up in the longer one and the
    names match when at least 66% of them are found, so a missing middle name
    still matches. This is not an edit-distance or phonetic comparison: a
    single-token name sharing its token with another name (e.g. "Ade" /
    "Ade Okafor") is accepted.
    """
    first_tokens = name_tokens(first)
    second_tokens = name_tokens(second)
    if len(first_tokens) < len(second_tokens):
        shorter, longer = first_tokens, second_tokens
    else:
        shorter, longer = second_tokens, first_tokens
    if not shorter:
        return False
    found = sum(1 for token in shorter if token in longer)
    return found / len(shorter) >= MATCH_THRESHOLD
