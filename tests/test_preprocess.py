import numpy as np
import pytest

from ocr_kit.preprocess import (
    DET_MEAN,
    DET_STD,
    prepare_detection_input,
    prepare_layout_input,
    prepare_recognition_input,
)


def _blue_image(height, width):
    img = np.zeros((height, width, 3), dtype=np.uint8)
    img[:, :, 0] = 255  # BGR blue
    return img


def test_layout_input_stretches_to_target_and_swaps_channels():
    blob, scale = prepare_layout_input(_blue_image(50, 100), 64, 32)

    assert blob.shape == (1, 3, 32, 64)
    assert blob.dtype == np.float32
    assert scale == pytest.approx((0.64, 0.64))
    # RGB order, values in [0, 1] with no mean subtraction
    assert np.allclose(blob[0, 0], 0.0)
    assert np.allclose(blob[0, 1], 0.0)
    assert np.allclose(blob[0, 2], 1.0)


def test_layout_scale_factor_per_axis():
    _, scale = prepare_layout_input(_blue_image(320, 160), 640, 640)
    assert scale == pytest.approx((4.0, 2.0))


def test_detection_input_rounds_up_to_block_size():
    blob, scale = prepare_detection_input(_blue_image(50, 100))

    assert blob.shape == (1, 3, 64, 128)
    assert scale == pytest.approx((1.28, 1.28))


def test_detection_input_limits_longer_side():
    blob, scale = prepare_detection_input(_blue_image(960, 1920), max_side=960)

    assert blob.shape == (1, 3, 480, 960)
    assert scale == pytest.approx((0.5, 0.5))


def test_detection_input_normalizes_rgb_with_mean_std():
    blob, _ = prepare_detection_input(_blue_image(32, 32))

    assert np.allclose(blob[0, 0], (0.0 - DET_MEAN[0]) / DET_STD[0], atol=1e-5)
    assert np.allclose(blob[0, 2], (1.0 - DET_MEAN[2]) / DET_STD[2], atol=1e-5)


def test_detection_input_custom_block_size():
    blob, _ = prepare_detection_input(_blue_image(50, 100), block_size=16)
    assert blob.shape == (1, 3, 64, 112)


def test_recognition_input_fixed_height_keeps_bgr():
    blob = prepare_recognition_input(_blue_image(24, 100))

    assert blob.shape == (1, 3, 48, 200)
    assert np.allclose(blob[0, 0], 1.0)
    assert np.allclose(blob[0, 1], -1.0)
    assert np.allclose(blob[0, 2], -1.0)


def test_recognition_input_clamps_width():
    blob = prepare_recognition_input(_blue_image(10, 1000), image_height=48, max_width=2048)
    assert blob.shape == (1, 3, 48, 2048)
