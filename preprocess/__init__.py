from __future__ import annotations

from pathlib import Path
import tempfile
from typing import Dict, Any, Callable

import numpy as np
from PIL import Image, ImageEnhance

_PREPROCESSORS: Dict[str, Callable[[Image.Image, Dict[str, Any]], Image.Image]] = {}

# ITU-R BT.601 luma weights.
_LUMA = np.array([0.299, 0.587, 0.114])


def register_preprocessor(
    name: str, func: Callable[[Image.Image, Dict[str, Any]], Image.Image]
) -> None:
    """Register a preprocessing step.

    Steps are called with the current :class:`PIL.Image.Image` and the
    ``preprocess`` section of the configuration and must return a new image.
    """
    _PREPROCESSORS[name] = func


def gray_levels(image: Image.Image) -> np.ndarray:
    """Return per-pixel luminance ``round(0.299R + 0.587G + 0.114B)`` as uint8."""
    rgb = np.asarray(image.convert("RGB"), dtype=np.float64)
    # Half-up rounding, not numpy's round-half-to-even.
    gray = np.floor(rgb @ _LUMA + 0.5)
    return np.clip(gray, 0, 255).astype(np.uint8)


def grayscale(image: Image.Image) -> Image.Image:
    """Convert image to an 8-bit grayscale image using BT.601 weights."""
    return Image.fromarray(gray_levels(image))


def histogram(gray: np.ndarray) -> np.ndarray:
    """256-bucket frequency histogram of gray values."""
    return np.bincount(gray.ravel(), minlength=256)[:256]


def otsu_threshold(hist: np.ndarray) -> int:
    """Return the gray level maximizing between-class variance.

    Ties keep the lowest level since the maximum only moves on strict
    improvement. An image with a single gray level yields 0.
    """
    total = int(hist.sum())
    sum_total = float(np.dot(hist, np.arange(256)))
    sumB = 0.0
    wB = 0
    max_var = 0.0
    threshold = 0
    for i in range(256):
        wB += int(hist[i])
        if wB == 0:
            continue
        wF = total - wB
        if wF == 0:
            break
        sumB += i * float(hist[i])
        mB = sumB / wB
        mF = (sum_total - sumB) / wF
        var_between = float(wB) * float(wF) * (mB - mF) ** 2
        if var_between > max_var:
            max_var = var_between
            threshold = i
    return threshold


def binarize(image: Image.Image) -> Image.Image:
    """Binarize ``image`` with Otsu's method.

    Pixels brighter than the threshold become white, the rest black. The
    result has the input's dimensions; an alpha channel is carried over.
    """
    gray = gray_levels(image)
    thresh = otsu_threshold(histogram(gray))
    levels = np.where(gray > thresh, 255, 0).astype(np.uint8)
    rgb = np.repeat(levels[:, :, None], 3, axis=2)
    if "A" in image.getbands():
        alpha = np.asarray(image.getchannel("A"), dtype=np.uint8)
        return Image.fromarray(np.dstack([rgb, alpha]))
    return Image.fromarray(rgb)


def contrast(image: Image.Image, factor: float) -> Image.Image:
    """Adjust image contrast by ``factor``."""
    enhancer = ImageEnhance.Contrast(image)
    return enhancer.enhance(factor)


def resize(image: Image.Image, max_dim: int) -> Image.Image:
    """Resize image so that its longest dimension equals ``max_dim``."""
    w, h = image.size
    max_current = max(w, h)
    if max_current <= max_dim:
        return image
    scale = max_dim / float(max_current)
    new_size = (int(w * scale), int(h * scale))
    return image.resize(new_size, Image.Resampling.LANCZOS)


def run_pipeline(image: Image.Image, cfg: Dict[str, Any]) -> Image.Image:
    """Apply the configured ``pipeline`` steps to ``image`` in memory."""
    img = image
    for step in cfg.get("pipeline", []):
        func = _PREPROCESSORS.get(step)
        if not func:
            raise KeyError(f"Preprocessor '{step}' is not registered")
        img = func(img, cfg)
    return img


def preprocess_image(path: Path, cfg: Dict[str, Any]) -> Path:
    """Apply configured preprocessing steps to the image and return new path."""
    with Image.open(path) as src:
        img = run_pipeline(src, cfg)
        tmp = tempfile.NamedTemporaryFile(suffix=path.suffix or ".png", delete=False)
        tmp.close()
        if img.mode == "RGBA" and (path.suffix or "").lower() in {".jpg", ".jpeg"}:
            img = img.convert("RGB")
        img.save(tmp.name)
    return Path(tmp.name)


register_preprocessor("grayscale", lambda img, cfg: grayscale(img))
register_preprocessor("binarize", lambda img, cfg: binarize(img))


def _contrast_step(img: Image.Image, cfg: Dict[str, Any]) -> Image.Image:
    factor = cfg.get("contrast_factor")
    if factor:
        return contrast(img, float(factor))
    return img


register_preprocessor("contrast", _contrast_step)


def _resize_step(img: Image.Image, cfg: Dict[str, Any]) -> Image.Image:
    max_dim = cfg.get("max_dim_px")
    if max_dim:
        return resize(img, int(max_dim))
    return img


register_preprocessor("resize", _resize_step)

__all__ = [
    "register_preprocessor",
    "gray_levels",
    "grayscale",
    "histogram",
    "otsu_threshold",
    "binarize",
    "contrast",
    "resize",
    "run_pipeline",
    "preprocess_image",
]
