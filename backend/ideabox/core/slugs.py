"""Slug Generation — URL-safe post/board slugs with numeric de-duplication.

Invariants:
    - slugify output contains only [a-z0-9-], no leading/trailing/double dashes
    - next_available_slug never returns a slug present in `taken`
"""

import re
import unicodedata

_NON_ALNUM = re.compile(r"[^a-z0-9]+")


def slugify(text: str) -> str:
    """Lowercase ASCII slug; falls back to 'post' for titles with no usable characters."""
    normalized = unicodedata.normalize("NFKD", text)
    ascii_text = normalized.encode("ascii", "ignore").decode("ascii").lower()
    slug = _NON_ALNUM.sub("-", ascii_text).strip("-")
    return slug or "post"


def next_available_slug(base: str, taken: set[str] | list[str]) -> str:
    """First of base, base-1, base-2, ... that is not taken."""
    taken = set(taken)
    if base not in taken:
        return base
    suffix = 1
    while f"{base}-{suffix}" in taken:
        suffix += 1
    return f"{base}-{suffix}"
