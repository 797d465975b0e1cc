"""Slug helpers shared by the synchronizer and the CRUD stores."""
from __future__ import annotations

import re
import unicodedata

_MOVIE_URL_PATTERN = re.compile(r"/phim/([^/?#\s]+)")
_DISALLOWED = re.compile(r"[^a-z0-9\s-]")
_WHITESPACE = re.compile(r"\s+")
_HYPHENS = re.compile(r"-+")


def slugify(text: str) -> str:
    """Return a lowercase ASCII slug, e.g. ``"Đặng Nhật Minh" -> "dang-nhat-minh"``.

    ``đ``/``Đ`` have no Unicode decomposition, so they are mapped by hand
    before the combining marks are dropped.
    """

    value = text.strip().replace("đ", "d").replace("Đ", "D").lower()
    value = unicodedata.normalize("NFD", value)
    value = "".join(char for char in value if not unicodedata.combining(char))
    value = _DISALLOWED.sub("", value)
    value = _WHITESPACE.sub("-", value)
    value = _HYPHENS.sub("-", value)
    return value.strip("-")


def extract_movie_slug(url: str) -> str | None:
    """Pull ``<slug>`` out of a ``.../phim/<slug>`` URL, or ``None`` if absent."""

    match = _MOVIE_URL_PATTERN.search(url.strip())
    if match is None:
        return None
    return match.group(1)
