"""Exception hierarchy shared by the Notion client and the ingest pipeline."""

from __future__ import annotations

from typing import Optional


class DrossError(Exception):
    """Base class for all errors raised by dross."""


class TransportError(DrossError):
    """A remote fetch failed: network, HTTP status, auth or decoding."""

    def __init__(self, message: str, *, status_code: Optional[int] = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class MalformedResponse(TransportError):
    """The remote source returned an item that breaks its own contract."""
