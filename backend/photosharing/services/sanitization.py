"""Normalization applied to user-supplied names before they are stored."""

import re
from typing import Optional

_WHITESPACE = re.compile(r"\s+")


def trim_and_collapse_whitespace(value: Optional[str]) -> Optional[str]:
    """Strip both ends and replace every whitespace run with one space."""
    if value is None:
        return None
    return _WHITESPACE.sub(" ", value.strip())


def to_title_case(value: Optional[str]) -> Optional[str]:
    """Upper-case the first letter of each word and lower-case the rest."""
    if value is None:
        return None
    return " ".join(word[:1].upper() + word[1:].lower() for word in value.split(" "))


def sanitize_category_name(name: Optional[str]) -> Optional[str]:
    return to_title_case(trim_and_collapse_whitespace(name))
