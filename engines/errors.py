from __future__ import annotations

from dataclasses import dataclass

MISSING_DEPENDENCY = "MISSING_DEPENDENCY"
OCR_ERROR = "OCR_ERROR"


@dataclass
class EngineError(Exception):
    """Error raised by recognition engine adapters.

    Parameters
    ----------
    code:
        Short machine readable error code, e.g. ``MISSING_DEPENDENCY`` when
        the engine's library or binary is not installed, ``OCR_ERROR`` when
        the engine ran and failed.
    message:
        Human readable error message.
    """

    code: str
    message: str

    def __str__(self) -> str:  # pragma: no cover - trivial
        return f"{self.code}: {self.message}"


__all__ = ["EngineError", "MISSING_DEPENDENCY", "OCR_ERROR"]
