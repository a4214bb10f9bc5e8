"""Protocol definitions for engine call signatures.

Third-party engines should implement these protocols so they can be
registered and dispatched correctly by the :mod:`engines` plugin system.
"""

from __future__ import annotations

from typing import Protocol, Tuple

from PIL import Image


class ImageToTextEngine(Protocol):
    """Callable converting an image into text with an overall confidence."""

    def __call__(self, image: Image.Image, *args, **kwargs) -> Tuple[str, float]:
        """Return the recognized text and a confidence in ``[0, 1]``."""
        ...


__all__ = ["ImageToTextEngine"]
