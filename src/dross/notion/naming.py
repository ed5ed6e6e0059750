"""Utilities for deriving human-readable page titles from Notion URLs."""

from __future__ import annotations

from urllib.parse import unquote, urlsplit


UNKNOWN_TITLE = "Unknown Page Title"


def title_from_url(url: str, *, fallback: str = UNKNOWN_TITLE) -> str:
    """Return the page title encoded in the last path segment of ``url``.

    Notion page URLs end in ``<Title-Words>-<page id>``. The id is dropped and
    the remaining words are joined with spaces. This is a heuristic: titles
    containing hyphens come back with spaces instead.
    """

    path = urlsplit(url).path if "://" in url else url
    segment = unquote(path.rstrip("/").rsplit("/", 1)[-1])
    parts = segment.split("-")
    title = " ".join(part for part in parts[:-1] if part)
    return title or fallback
