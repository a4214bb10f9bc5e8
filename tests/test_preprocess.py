"""
Tests for grayscale conversion and Otsu binarization.
"""

import numpy as np
import pytest
from PIL import Image

from preprocess import (
    binarize,
    gray_levels,
    grayscale,
    histogram,
    otsu_threshold,
    preprocess_image,
    run_pipeline,
)
from preprocess.flows import LOW_CONTRAST_LABEL, SERIAL_LABEL


def two_region_image(low=20, high=220, size=(40, 20)):
    """Left half gray ``low``, right half gray ``high``."""
    w, h = size
    arr = np.full((h, w, 3), low, dtype=np.uint8)
    arr[:, w // 2 :, :] = high
    return Image.fromarray(arr)


def brute_force_threshold(hist):
    """Reference: first level with maximal between-class variance."""
    levels = np.arange(256, dtype=np.float64)
    hist = hist.astype(np.float64)
    total = hist.sum()
    wB = np.cumsum(hist)
    wF = total - wB
    sumB = np.cumsum(hist * levels)
    valid = (wB > 0) & (wF > 0)
    if not valid.any():
        return 0
    mB = np.where(valid, sumB / np.where(wB > 0, wB, 1), 0)
    mF = np.where(valid, (sumB[-1] - sumB) / np.where(wF > 0, wF, 1), 0)
    var = np.where(valid, wB * wF * (mB - mF) ** 2, -1)
    best = var.max()
    if best <= 0:
        return 0
    return int(np.flatnonzero(np.isclose(var, best, rtol=1e-12, atol=0))[0])


class TestGrayLevels:
    @pytest.mark.parametrize(
        "rgb,expected",
        [
            ((10, 20, 30), 18),
            ((255, 0, 0), 76),
            ((0, 255, 0), 150),
            ((0, 0, 255), 29),
            ((255, 255, 255), 255),
            ((20, 20, 20), 20),
        ],
    )
    def test_bt601_weights_rounded(self, rgb, expected):
        img = Image.new("RGB", (1, 1), rgb)
        assert gray_levels(img)[0, 0] == expected

    def test_grayscale_image(self):
        img = grayscale(Image.new("RGB", (3, 2), (0, 255, 0)))
        assert img.mode == "L"
        assert img.size == (3, 2)

    def test_histogram_counts_every_pixel(self):
        gray = gray_levels(two_region_image())
        hist = histogram(gray)
        assert hist.shape == (256,)
        assert hist.sum() == gray.size
        assert hist[20] == hist[220] == gray.size // 2
        assert hist[255] == 0


class TestOtsu:
    def test_two_regions(self):
        """Threshold separates the two tonal populations exactly."""
        img = two_region_image()
        gray = gray_levels(img)
        t = otsu_threshold(histogram(gray))
        # Equal variance across the gap; the lowest level is kept.
        assert 20 <= t < 220

        out = np.asarray(binarize(img))
        assert out.shape == (20, 40, 3)
        assert (out[:, :20] == 0).all()
        assert (out[:, 20:] == 255).all()

    def test_uniform_image(self):
        hist = histogram(np.full((5, 5), 128, dtype=np.uint8))
        assert otsu_threshold(hist) == 0

    def test_uniform_image_binarizes_to_white(self):
        out = np.asarray(binarize(Image.new("RGB", (4, 4), (128, 128, 128))))
        assert (out == 255).all()

    def test_black_image_stays_black(self):
        out = np.asarray(binarize(Image.new("RGB", (4, 4), (0, 0, 0))))
        assert (out == 0).all()

    @pytest.mark.parametrize("seed", range(8))
    def test_matches_reference_on_random_bimodal_images(self, seed):
        rng = np.random.default_rng(seed)
        dark = rng.normal(rng.integers(10, 100), 12, size=300)
        light = rng.normal(rng.integers(140, 245), 12, size=500)
        gray = np.clip(np.concatenate([dark, light]), 0, 255).astype(np.uint8)
        hist = histogram(gray)
        assert otsu_threshold(hist) == brute_force_threshold(hist)

    @pytest.mark.parametrize("seed", range(5))
    def test_output_is_pure_black_and_white(self, seed):
        rng = np.random.default_rng(seed)
        arr = rng.integers(0, 256, size=(13, 17, 3), dtype=np.uint8)
        img = Image.fromarray(arr)
        out = np.asarray(binarize(img))
        assert out.shape == arr.shape
        assert set(np.unique(out)) <= {0, 255}
        # Each output pixel has identical channels.
        assert (out[..., 0] == out[..., 1]).all() and (out[..., 1] == out[..., 2]).all()

        gray = gray_levels(img)
        t = otsu_threshold(histogram(gray))
        assert ((out[..., 0] == 255) == (gray > t)).all()


class TestBinarizeModes:
    def test_alpha_is_preserved(self):
        arr = np.zeros((2, 2, 4), dtype=np.uint8)
        arr[..., :3] = [[[10, 10, 10], [200, 200, 200]], [[10, 10, 10], [200, 200, 200]]]
        arr[..., 3] = [[0, 64], [128, 255]]
        out = binarize(Image.fromarray(arr))
        assert out.mode == "RGBA"
        assert np.array_equal(np.asarray(out)[..., 3], arr[..., 3])

    def test_grayscale_input(self):
        out = binarize(Image.new("L", (3, 3), 200))
        assert out.mode == "RGB"
        assert out.size == (3, 3)


class TestPipeline:
    def test_unknown_step(self):
        with pytest.raises(KeyError):
            run_pipeline(Image.new("RGB", (2, 2)), {"pipeline": ["sharpen"]})

    def test_resize_then_binarize(self):
        img = two_region_image(size=(400, 100))
        out = run_pipeline(img, {"pipeline": ["resize", "binarize"], "max_dim_px": 100})
        assert out.size == (100, 25)
        assert set(np.unique(np.asarray(out))) <= {0, 255}

    def test_preprocess_image_writes_file(self, tmp_path):
        src = tmp_path / "plate.png"
        two_region_image().save(src)
        out_path = preprocess_image(src, {"pipeline": ["binarize"]})
        with Image.open(out_path) as out:
            assert out.size == (40, 20)

    @pytest.mark.parametrize("flow", [SERIAL_LABEL, LOW_CONTRAST_LABEL])
    def test_label_flows(self, flow):
        img = two_region_image(size=(3200, 800))
        out = run_pipeline(img, flow)
        assert out.size == (1600, 400)
        assert set(np.unique(np.asarray(out))) <= {0, 255}
