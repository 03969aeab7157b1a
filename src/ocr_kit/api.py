"""
JSON entry points

Each function takes an already constructed engine (or None when it could not
be built) and returns a JSON string: a result envelope on success, or an
error object with a machine-readable code.
"""

import logging
import time
from pathlib import Path
from typing import Optional, Union

from .image_io import bgra_buffer_to_bgr, load_image
from .layout_detector import LayoutDetector
from .pipeline import OcrEngine
from .serialize import (
    BUFFER_INVALID,
    ENGINE_NOT_INITIALIZED,
    IMAGE_LOAD_FAILED,
    detections_to_json,
    error_to_json,
    text_boxes_to_json,
    text_lines_to_json,
)

logger = logging.getLogger(__name__)

PathLike = Union[str, Path]


def _elapsed_ms(start: float) -> int:
    return int((time.perf_counter() - start) * 1000)


def detect_layout_from_path(
    detector: Optional[LayoutDetector],
    image_path: PathLike,
    conf_threshold: Optional[float] = None,
) -> str:
    start = time.perf_counter()
    image = load_image(image_path)
    if image is None:
        return error_to_json("Could not load image", IMAGE_LOAD_FAILED)
    if detector is None:
        return error_to_json("Layout detector not initialized", ENGINE_NOT_INITIALIZED)

    detections = detector.detect(image, conf_threshold=conf_threshold)
    height, width = image.shape[:2]
    return detections_to_json(detections, _elapsed_ms(start), width, height)


def recognize_text_from_path(
    engine: Optional[OcrEngine],
    image_path: PathLike,
    det_threshold: Optional[float] = None,
    rec_threshold: Optional[float] = None,
) -> str:
    """Full OCR on an image file."""
    start = time.perf_counter()
    image = load_image(image_path)
    if image is None:
        return error_to_json("Could not load image", IMAGE_LOAD_FAILED)
    if engine is None or engine.text_recognizer is None:
        return error_to_json("OCR engine not initialized", ENGINE_NOT_INITIALIZED)

    lines = engine.recognize_text(image, det_threshold, rec_threshold)
    height, width = image.shape[:2]
    return text_lines_to_json(lines, _elapsed_ms(start), width, height)


def recognize_text_from_buffer(
    engine: Optional[OcrEngine],
    buffer: bytes,
    width: int,
    height: int,
    stride: int,
    det_threshold: Optional[float] = None,
    rec_threshold: Optional[float] = None,
) -> str:
    """Full OCR on a BGRA camera frame whose rows are ``stride`` bytes apart."""
    start = time.perf_counter()
    try:
        image = bgra_buffer_to_bgr(buffer, width, height, stride)
    except ValueError as e:
        logger.warning("Rejected image buffer: %s", e)
        return error_to_json("Invalid image buffer", BUFFER_INVALID)
    if engine is None or engine.text_recognizer is None:
        return error_to_json("OCR engine not initialized", ENGINE_NOT_INITIALIZED)

    lines = engine.recognize_text(image, det_threshold, rec_threshold)
    return text_lines_to_json(lines, _elapsed_ms(start), width, height)


def detect_text_from_path(
    engine: Optional[OcrEngine],
    image_path: PathLike,
    threshold: Optional[float] = None,
) -> str:
    """Text boxes only, without recognition."""
    start = time.perf_counter()
    image = load_image(image_path)
    if image is None:
        return error_to_json("Could not load image", IMAGE_LOAD_FAILED)
    if engine is None:
        return error_to_json("OCR engine not initialized", ENGINE_NOT_INITIALIZED)

    boxes = engine.detect_text(image, threshold)
    height, width = image.shape[:2]
    return text_boxes_to_json(boxes, _elapsed_ms(start), width, height)
