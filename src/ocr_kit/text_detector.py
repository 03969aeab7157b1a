"""
Text Detection Module - Stage 1 of OCR Pipeline

Detects text regions in images using DBNet architecture.
"""

import logging
from pathlib import Path
from typing import List, Optional, Union

import numpy as np

from .config import DetectorConfig
from .onnx_base import load_session
from .postprocess import DBPostProcess
from .preprocess import prepare_detection_input
from .results import TextBox

logger = logging.getLogger(__name__)


class TextDetector:
    """Text detection module.

    Takes a BGR image and returns ordered four-point text boxes in the
    image's own coordinates.
    """

    def __init__(
        self,
        model_path: Union[str, Path, None] = None,
        config: DetectorConfig = None,
        session=None,
    ):
        """Initialize text detector.

        Args:
            model_path: Path to detection ONNX model (det.onnx)
            config: Detector configuration (uses defaults if None)
            session: Prebuilt inference handle, used instead of model_path
        """
        if config is None:
            config = DetectorConfig()
        if session is None and model_path is None:
            raise ValueError("Either model_path or session is required")

        self.config = config
        self.session = load_session(
            session if session is not None else model_path,
            use_gpu=config.use_gpu,
            use_tensorrt=config.use_tensorrt,
        )

    def postprocess_op(self, threshold: float) -> DBPostProcess:
        return DBPostProcess(
            thresh=threshold,
            box_thresh=self.config.det_db_box_thresh,
            max_candidates=self.config.max_candidates,
            min_size=self.config.min_size,
            unclip_ratio=self.config.unclip_ratio,
            activation=self.config.activation,
        )

    def detect(self, image: np.ndarray, threshold: Optional[float] = None) -> List[TextBox]:
        """Detect text in a single image.

        Inference errors propagate; callers decide how to recover.

        Args:
            image: Input image as numpy array (H, W, C) in BGR
            threshold: Binarization threshold (config default if None)

        Returns:
            Text boxes in reading order
        """
        if threshold is None:
            threshold = self.config.det_db_thresh
        if image.size == 0:
            return []

        height, width = image.shape[:2]
        img, scale = prepare_detection_input(
            image,
            max_side=self.config.det_limit_side_len,
            block_size=self.config.det_block_size,
            mean=self.config.mean,
            std=self.config.std,
        )
        logger.debug(
            "Detection input: %dx%d (scale: %.3f, %.3f)",
            img.shape[3], img.shape[2], scale[0], scale[1],
        )

        outputs = self.session.run({self.session.input_names[0]: img})
        return self.postprocess_op(threshold)(outputs[0], scale, (width, height))
