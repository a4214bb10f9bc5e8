"""Identifier recognition from a captured photo.

The photo is binarized before it reaches the engine, and the engine output
is reduced to the characters an identifier may contain. Recognition is a
suggestion only: when no engine is usable the result says so and the caller
falls back to manual entry.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from typing import Any, Dict, Optional

from PIL import Image

from preprocess import binarize, run_pipeline

from . import dispatch
from .errors import EngineError

logger = logging.getLogger(__name__)

_NOT_IDENTIFIER = re.compile(r"[^A-Za-z0-9\-/]")


@dataclass(frozen=True)
class Recognition:
    """Recognized identifier text.

    ``error`` is set when the engine was unavailable or failed, in which
    case ``text`` is empty and ``confidence`` is 0.
    """

    text: str
    confidence: float
    raw_text: str = ""
    engine: Optional[str] = None
    error: Optional[str] = None

    @property
    def available(self) -> bool:
        return self.error is None


def clean_identifier_text(text: str) -> str:
    """Drop everything outside ``[A-Za-z0-9-/]`` and upper-case the rest."""
    return _NOT_IDENTIFIER.sub("", text or "").upper()


def recognize_identifier(
    image: Image.Image,
    engine: str = "tesseract",
    preprocess_cfg: Optional[Dict[str, Any]] = None,
    **engine_kwargs: Any,
) -> Recognition:
    """Binarize ``image``, run the recognition engine and clean its output.

    ``preprocess_cfg`` may run extra pipeline steps (e.g. ``resize``) before
    binarization; a ``binarize`` step in that pipeline is not repeated.
    """
    prepared = image
    pipeline = list((preprocess_cfg or {}).get("pipeline", []))
    if pipeline:
        prepared = run_pipeline(image, preprocess_cfg)
    if "binarize" not in pipeline:
        prepared = binarize(prepared)

    try:
        raw_text, confidence = dispatch("image_to_text", prepared, engine=engine, **engine_kwargs)
    except (EngineError, ValueError) as exc:
        logger.warning("Recognition unavailable (%s): %s", engine, exc)
        return Recognition(text="", confidence=0.0, engine=engine, error=str(exc))

    text = clean_identifier_text(raw_text)
    logger.info(
        "Recognized %r (confidence %.2f) with %s", text, confidence, engine,
        extra={"raw_text": raw_text},
    )
    return Recognition(
        text=text,
        confidence=float(confidence),
        raw_text=raw_text,
        engine=engine,
    )


__all__ = ["Recognition", "clean_identifier_text", "recognize_identifier"]
