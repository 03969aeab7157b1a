"""Image loading and conversion to BGR arrays."""

from pathlib import Path
from typing import Optional, Union

import cv2
import numpy as np
from PIL import Image


def load_image(path: Union[str, Path]) -> Optional[np.ndarray]:
    """Read an image file as a BGR array; None when it cannot be decoded."""
    img = cv2.imread(str(path), cv2.IMREAD_COLOR)
    if img is None or img.size == 0:
        return None
    return img


def to_bgr_array(image: Union[np.ndarray, Image.Image]) -> np.ndarray:
    """Convert supported image inputs to a 3-channel BGR uint8 array."""
    if isinstance(image, Image.Image):
        return cv2.cvtColor(np.asarray(image.convert("RGB")), cv2.COLOR_RGB2BGR)

    img = np.asarray(image)
    if img.size == 0:
        return np.zeros((0, 0, 3), dtype=np.uint8)
    if img.ndim == 2:
        return cv2.cvtColor(img, cv2.COLOR_GRAY2BGR)
    if img.ndim == 3 and img.shape[2] == 4:
        return cv2.cvtColor(img, cv2.COLOR_BGRA2BGR)
    if img.ndim == 3 and img.shape[2] == 3:
        return img
    raise ValueError(f"Unsupported image shape: {img.shape}")


def bgra_buffer_to_bgr(buffer: bytes, width: int, height: int, stride: int) -> np.ndarray:
    """Wrap a BGRA camera frame with a row stride and convert it to BGR."""
    if width <= 0 or height <= 0 or stride < width * 4:
        raise ValueError(f"Invalid buffer geometry: {width}x{height}, stride {stride}")
    data = np.frombuffer(buffer, dtype=np.uint8)
    if data.size < stride * height:
        raise ValueError(f"Buffer too small: {data.size} < {stride * height}")
    rows = data[:stride * height].reshape(height, stride)
    bgra = rows[:, :width * 4].reshape(height, width, 4)
    return cv2.cvtColor(bgra, cv2.COLOR_BGRA2BGR)
