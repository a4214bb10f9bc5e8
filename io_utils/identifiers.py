"""Identifier decoding and image filename conventions."""

from __future__ import annotations

import re

_ENCODED_SLASH = re.compile(r"%2[Ff]")
_NON_ALNUM = re.compile(r"[^A-Za-z0-9]")


def decode_identifier(raw: str) -> str:
    """Normalize text decoded from a QR/barcode symbol.

    Labels in this deployment encode a URL-like path with ``%2F`` separators.
    The identifier is the last path segment, with any remaining ``%`` turned
    into ``-``. Text without an encoded separator is returned unchanged.
    """
    if not _ENCODED_SLASH.search(raw):
        return raw
    return _ENCODED_SLASH.split(raw)[-1].replace("%", "-")


def normalize_serial_for_filename(serial: str) -> str:
    """Replace every character outside ``[A-Za-z0-9]`` with ``_``."""
    return _NON_ALNUM.sub("_", str(serial))


def image_filename(serial: str, slot: int) -> str:
    """Return ``<normalized serial>_<slot>.jpg`` for an image slot (1-based)."""
    return f"{normalize_serial_for_filename(serial)}_{slot}.jpg"


__all__ = ["decode_identifier", "normalize_serial_for_filename", "image_filename"]
