from __future__ import annotations


from typing import List, Optional, Tuple

from PIL import Image

from .. import register_task
from ..errors import MISSING_DEPENDENCY, OCR_ERROR, EngineError
from ..protocols import ImageToTextEngine


def image_to_text(
    image: Image.Image,
    oem: int = 3,
    psm: int = 7,
    langs: Optional[List[str]] = None,
    extra_args: Optional[List[str]] = None,
) -> Tuple[str, float]:
    """Run Tesseract OCR on an image and return text and mean token confidence.

    ``psm`` defaults to 7 (single text line), the usual layout of a serial
    number plate.
    """
    try:
        import pytesseract
        from pytesseract import Output  # type: ignore

        TesseractError = getattr(pytesseract, "TesseractError", Exception)
        NotFound = getattr(pytesseract, "TesseractNotFoundError", OSError)
    except ImportError as exc:  # pragma: no cover - optional dependency
        raise EngineError(MISSING_DEPENDENCY, "pytesseract not available") from exc

    config_parts = [f"--oem {oem}", f"--psm {psm}"]
    if extra_args:
        config_parts.extend(extra_args)
    config = " ".join(config_parts)
    lang = "+".join(langs or ["eng"])

    try:
        data = pytesseract.image_to_data(
            image, lang=lang, config=config, output_type=Output.DICT
        )
    except NotFound as exc:
        raise EngineError(MISSING_DEPENDENCY, "tesseract binary not found") from exc
    except TesseractError as exc:  # pragma: no cover - runtime failure
        raise EngineError(OCR_ERROR, str(exc)) from exc
    tokens = [t for t in data.get("text", []) if str(t).strip()]
    confidences = [
        float(c) / 100
        for t, c in zip(data.get("text", []), data.get("conf", []))
        if str(t).strip() and str(c) != "-1"
    ]
    text = " ".join(tokens)
    confidence = sum(confidences) / len(confidences) if confidences else 0.0
    return text, confidence


register_task("image_to_text", "tesseract", __name__, "image_to_text")

# Static type checking helper
_IMAGE_TO_TEXT_CHECK: ImageToTextEngine = image_to_text

__all__ = ["image_to_text"]
