"""
Layout Detection Module

Runs a PP-DocLayout style ONNX model and maps its [N, 6] output rows to
class-labeled boxes in original image coordinates.
"""

import logging
import time
from pathlib import Path
from typing import Dict, List, Optional, Union

import numpy as np
from PIL import Image

from .config import LayoutConfig
from .image_io import to_bgr_array
from .onnx_base import load_session, resolve_model_path
from .postprocess import LayoutPostProcess
from .preprocess import prepare_layout_input
from .results import Detection

logger = logging.getLogger(__name__)


class LayoutDetector:
    """Document layout detection.

    Two exported model schemas are supported and told apart by input count:
    - 2 inputs ("M"): image, scale_factor; boxes come back in resized space
    - 3 inputs ("L"): im_shape, image, scale_factor; boxes come back in
      original space
    """

    def __init__(
        self,
        model_path: Union[str, Path, None] = None,
        config: LayoutConfig = None,
        session=None,
    ):
        """Initialize layout detector.

        Args:
            model_path: Path to layout ONNX model
            config: Layout configuration (uses defaults if None)
            session: Prebuilt inference handle, used instead of model_path
        """
        if config is None:
            config = LayoutConfig()
        if session is None and model_path is None:
            raise ValueError("Either model_path or session is required")

        self.config = config
        self.session = load_session(
            session if session is not None else model_path,
            use_gpu=config.use_gpu,
            use_tensorrt=config.use_tensorrt,
        )
        self.postprocess_op = LayoutPostProcess()

    @classmethod
    def from_pretrained(
        cls,
        path_or_repo: str,
        filename: str = "layout.onnx",
        config: LayoutConfig = None,
        **kwargs,
    ) -> "LayoutDetector":
        """Load the model from a local directory or a Hugging Face repo.

        Extra keyword arguments go to ``hf_hub_download`` (e.g. ``revision``).
        """
        return cls(resolve_model_path(path_or_repo, filename, **kwargs), config)

    @property
    def is_l_model(self) -> bool:
        return len(self.session.input_names) == 3

    def build_input_feed(
        self, blob: np.ndarray, scale, image_shape
    ) -> Dict[str, np.ndarray]:
        """Feed for either schema, keyed by the model's own input names."""
        if self.is_l_model:
            height, width = image_shape[:2]
            arrays = [
                np.array([[height, width]], dtype=np.float32),
                blob,
                np.array([[1.0, 1.0]], dtype=np.float32),
            ]
        else:
            arrays = [blob, np.array([scale], dtype=np.float32)]
        return dict(zip(self.session.input_names, arrays))

    def detect(
        self,
        image: Union[np.ndarray, Image.Image],
        conf_threshold: Optional[float] = None,
    ) -> List[Detection]:
        """Detect layout elements in image.

        Args:
            image: BGR array or PIL Image
            conf_threshold: Minimum score (config default if None)

        Returns:
            Detections in model output order; empty on failure
        """
        if conf_threshold is None:
            conf_threshold = self.config.conf_threshold

        img = to_bgr_array(image)
        if img.size == 0:
            logger.debug("Empty image for layout detection")
            return []

        height, width = img.shape[:2]
        try:
            blob, scale = prepare_layout_input(
                img, self.config.target_width, self.config.target_height
            )
            logger.debug("Layout scale factors: x=%.4f, y=%.4f", scale[0], scale[1])

            start = time.perf_counter()
            outputs = self.session.run(self.build_input_feed(blob, scale, img.shape))
            logger.debug(
                "Layout inference (%s model) in %.1f ms",
                "L" if self.is_l_model else "M",
                (time.perf_counter() - start) * 1000,
            )
            return self.postprocess_op(
                outputs[0],
                scale,
                (width, height),
                conf_threshold=conf_threshold,
                coords_in_original=self.is_l_model,
            )
        except Exception:
            logger.exception("Layout detection failed")
            return []

    def __repr__(self):
        return f"LayoutDetector(session={self.session!r})"
