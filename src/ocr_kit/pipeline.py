"""
High-level OCR Pipeline
Combines detection, cropping and recognition into one engine object.
"""

import logging
import time
from pathlib import Path
from typing import List, Optional, Tuple, Union

import numpy as np
from PIL import Image

from .config import DetectorConfig, RecognizerConfig
from .image_io import to_bgr_array
from .onnx_base import resolve_model_path
from .results import TextBox, TextLine
from .text_detector import TextDetector
from .text_recognizer import TextRecognizer
from .utils import get_rotate_crop_image

logger = logging.getLogger(__name__)


class OcrEngine:
    """
    Complete OCR engine: detect -> crop -> recognize, per detected box.

    The engine holds no per-call state. Construct it once and pass it to
    whatever needs OCR.

    Usage:
        engine = OcrEngine.from_model_paths("det.onnx", "rec.onnx", "dict.txt")
        lines = engine.recognize_text(image)
    """

    def __init__(self, detector: TextDetector, recognizer: Optional[TextRecognizer] = None):
        """
        Args:
            detector: Text detection stage
            recognizer: Text recognition stage; None for a detection-only engine
        """
        self.text_detector = detector
        self.text_recognizer = recognizer

    @classmethod
    def from_model_paths(
        cls,
        det_model_path: Union[str, Path],
        rec_model_path: Union[str, Path],
        char_dict_path: Union[str, Path],
        det_config: Optional[DetectorConfig] = None,
        rec_config: Optional[RecognizerConfig] = None,
    ) -> "OcrEngine":
        """Build an engine from model files.

        Raises:
            FileNotFoundError: If any model or dictionary file is missing
        """
        for path, name in [
            (det_model_path, "detection model"),
            (rec_model_path, "recognition model"),
            (char_dict_path, "character dictionary"),
        ]:
            if not Path(path).exists():
                raise FileNotFoundError(f"Required {name} not found at: {path}")

        detector = TextDetector(det_model_path, det_config)
        recognizer = TextRecognizer(rec_model_path, char_dict_path, rec_config)
        return cls(detector, recognizer)

    @classmethod
    def from_pretrained(
        cls,
        path_or_repo: str,
        det_filename: str = "det.onnx",
        rec_filename: str = "rec.onnx",
        dict_filename: str = "dict.txt",
        det_config: Optional[DetectorConfig] = None,
        rec_config: Optional[RecognizerConfig] = None,
        **kwargs,
    ) -> "OcrEngine":
        """Build an engine from a local directory or a Hugging Face repo.

        Files missing locally are fetched with ``hf_hub_download``; extra
        keyword arguments are passed through to it.
        """
        return cls.from_model_paths(
            resolve_model_path(path_or_repo, det_filename, **kwargs),
            resolve_model_path(path_or_repo, rec_filename, **kwargs),
            resolve_model_path(path_or_repo, dict_filename, **kwargs),
            det_config=det_config,
            rec_config=rec_config,
        )

    def detect_text(
        self,
        image: Union[np.ndarray, Image.Image],
        threshold: Optional[float] = None,
    ) -> List[TextBox]:
        """Detect text boxes only; empty on failure."""
        img = to_bgr_array(image)
        try:
            boxes = self.text_detector.detect(img, threshold)
        except Exception:
            logger.exception("Text detection failed")
            return []
        logger.debug("Detected %d text boxes", len(boxes))
        return boxes

    def recognize_region(self, region: np.ndarray) -> Tuple[str, float]:
        """Recognize an already cropped text region; ("", 0.0) on failure."""
        if self.text_recognizer is None:
            logger.error("Recognition model not initialized")
            return "", 0.0
        try:
            return self.text_recognizer.recognize(region)
        except Exception:
            logger.exception("Text recognition failed")
            return "", 0.0

    def recognize_text(
        self,
        image: Union[np.ndarray, Image.Image],
        det_threshold: Optional[float] = None,
        rec_threshold: Optional[float] = None,
    ) -> List[TextLine]:
        """
        Full OCR on an image.

        Args:
            image: BGR array or PIL Image
            det_threshold: Binarization threshold for detection
            rec_threshold: Minimum recognition score (config drop_score if None)

        Returns:
            Text lines in reading order. Empty if nothing was found or if any
            inference call failed.
        """
        if self.text_recognizer is None:
            logger.error("Recognition model not initialized")
            return []
        if rec_threshold is None:
            rec_threshold = self.text_recognizer.config.drop_score

        img = to_bgr_array(image)
        if img.size == 0:
            logger.debug("Empty image for OCR")
            return []

        start = time.perf_counter()
        try:
            lines = self._recognize_boxes(img, det_threshold, rec_threshold)
        except Exception:
            logger.exception("OCR failed")
            return []

        logger.debug(
            "OCR: %d lines in %.1f ms", len(lines), (time.perf_counter() - start) * 1000
        )
        return lines

    def _recognize_boxes(self, img, det_threshold, rec_threshold) -> List[TextLine]:
        boxes = self.text_detector.detect(img, det_threshold)
        if not boxes:
            logger.debug("No text detected")
            return []

        lines = []
        skipped_region = skipped_text = skipped_score = 0
        for box in boxes:
            region = get_rotate_crop_image(img, box.points)
            if region is None:
                skipped_region += 1
                continue

            text, score = self.text_recognizer.recognize(region)
            if not text:
                skipped_text += 1
                continue
            if score < rec_threshold:
                skipped_score += 1
                continue

            lines.append(TextLine.from_box(box, text, score))

        logger.debug(
            "Recognition: %d boxes, skipped %d empty region, %d empty text, "
            "%d low score (threshold=%.2f)",
            len(boxes), skipped_region, skipped_text, skipped_score, rec_threshold,
        )
        return lines

    def __repr__(self):
        return (
            f"OcrEngine(\n"
            f"  detector={self.text_detector.session!r},\n"
            f"  recognizer={getattr(self.text_recognizer, 'session', None)!r}\n"
            f")"
        )


def get_full_text(lines: List[TextLine]) -> str:
    """Join recognized lines with newlines."""
    return "\n".join(line.text for line in lines)
