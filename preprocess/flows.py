"""Preprocessing flows for identifier recognition."""

from __future__ import annotations

from typing import Dict, Any

# These dictionaries can be merged into a configuration file's
# ``[preprocess]`` section.

SERIAL_LABEL: Dict[str, Any] = {
    # Serial plates photographed in the field: limit size first so the
    # per-pixel Otsu pass stays fast, then force pure black/white.
    "pipeline": ["resize", "binarize"],
    "max_dim_px": 1600,
}

LOW_CONTRAST_LABEL: Dict[str, Any] = {
    # Faded or engraved plates. A contrast boost before thresholding keeps
    # thin strokes from merging into the background class.
    "pipeline": ["resize", "contrast", "binarize"],
    "contrast_factor": 1.5,
    "max_dim_px": 1600,
}

__all__ = ["SERIAL_LABEL", "LOW_CONTRAST_LABEL"]
