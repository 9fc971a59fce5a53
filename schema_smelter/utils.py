"""
Utility functions for the schema compiler.
"""

import re

# Regex pattern to split text into words, handling camelCase boundaries
_WORD_PATTERN = re.compile(r"[a-z]+|[A-Z][a-z]*|[0-9]+")

# Anything that is not a letter or digit separates words in a path segment
_SEGMENT_SEPARATORS = re.compile(r"[^A-Za-z0-9]+")

_NON_IDENTIFIER = re.compile(r"\W+")


def _normalize_separators(text: str) -> str:
    """Normalize separators (underscores, hyphens) to spaces."""
    return text.replace("_", " ").replace("-", " ")


def _split_into_words(text: str) -> list[str]:
    """Split text into words, handling camelCase boundaries."""
    return _WORD_PATTERN.findall(text)


def _capitalize_and_join(words: list[str]) -> str:
    """Capitalize each word and join them together."""
    return "".join(word.capitalize() for word in words if word)


def snake_to_pascal_case(text: str) -> str:
    """Convert snake_case, camelCase, or space-separated text to PascalCase.

    Examples:
        "line_item" -> "LineItem"
        "LineItem" -> "LineItem"
        "first 3 rows" -> "First3Rows"

    Args:
        text: The text to convert

    Returns:
        PascalCase string
    """
    if not text:
        return ""
    normalized = _normalize_separators(text)
    words = _split_into_words(normalized)
    return _capitalize_and_join(words)


def path_segment_to_namespace(segment: str) -> str:
    """Convert one file-system path segment to a namespace segment.

    Punctuation becomes a word break; each word is capitalized (the rest
    lowercased) and the words are concatenated.

    Examples:
        "checkout_create_req" -> "CheckoutCreateReq"
        "ap2_mandate.complete_req" -> "Ap2MandateCompleteReq"
        "types" -> "Types"
    """
    words = _SEGMENT_SEPARATORS.sub(" ", segment).split()
    return "".join(word.capitalize() for word in words)


def to_constant_name(text: str) -> str:
    """Convert arbitrary text to an UPPER_SNAKE Python identifier."""
    name = _NON_IDENTIFIER.sub("_", text).strip("_").upper()
    if not name:
        name = "FIELD"
    if name[0].isdigit():
        name = f"_{name}"
    return name
