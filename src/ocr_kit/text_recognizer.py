"""
Text Recognition Module - Stage 2 of OCR Pipeline

Recognizes text from upright text image patches.
"""

import logging
from pathlib import Path
from typing import Sequence, Tuple, Union

import numpy as np

from .config import RecognizerConfig
from .onnx_base import load_session
from .postprocess import CTCLabelDecode
from .preprocess import prepare_recognition_input
from .utils import load_character_dict

logger = logging.getLogger(__name__)


class TextRecognizer:
    """Text recognition module, one region per call."""

    def __init__(
        self,
        model_path: Union[str, Path, None] = None,
        character: Union[str, Path, Sequence[str]] = None,
        config: RecognizerConfig = None,
        session=None,
    ):
        """Initialize text recognizer.

        Args:
            model_path: Path to recognition ONNX model (rec.onnx)
            character: Dictionary file path, or an already loaded token list
            config: Recognizer configuration (uses defaults if None)
            session: Prebuilt inference handle, used instead of model_path
        """
        if config is None:
            config = RecognizerConfig()
        if session is None and model_path is None:
            raise ValueError("Either model_path or session is required")
        if character is None:
            raise ValueError("A character dictionary is required")

        if isinstance(character, (str, Path)):
            if not Path(character).exists():
                raise FileNotFoundError(f"Character dictionary not found: {character}")
            character = load_character_dict(character)

        self.config = config
        self.session = load_session(
            session if session is not None else model_path,
            use_gpu=config.use_gpu,
            use_tensorrt=config.use_tensorrt,
        )
        self.postprocess_op = CTCLabelDecode(character, activation=config.activation)

    @property
    def character(self):
        return self.postprocess_op.character

    def recognize(self, img: np.ndarray) -> Tuple[str, float]:
        """Recognize text in a single image.

        Inference errors propagate; callers decide how to recover.

        Args:
            img: Text image patch (BGR format)

        Returns:
            Tuple of (text, confidence)
        """
        if img is None or img.size == 0:
            return "", 0.0

        norm_img = prepare_recognition_input(
            img,
            image_height=self.config.rec_image_height,
            max_width=self.config.rec_max_width,
        )
        outputs = self.session.run({self.session.input_names[0]: norm_img})

        # [batch, seq_len, vocab_size]
        preds = outputs[0]
        logger.debug("Recognition output shape: %s", getattr(preds, "shape", None))
        return self.postprocess_op(preds)
