"""
Document layout and OCR postprocessing with ONNX models

Stages:
- LayoutDetector: class-labeled document layout boxes
- TextDetector: four-point text boxes from a DB probability map
- TextRecognizer: CTC decoding of cropped text regions

High-level interface:
- OcrEngine: detection + cropping + recognition
"""

from .config import DetectorConfig, LayoutConfig, RecognizerConfig
from .layout_detector import LayoutDetector
from .pipeline import OcrEngine, get_full_text
from .postprocess import DOC_CLASSES, CTCLabelDecode, DBPostProcess, LayoutPostProcess
from .preprocess import (
    prepare_detection_input,
    prepare_layout_input,
    prepare_recognition_input,
)
from .results import Detection, TextBox, TextLine
from .text_detector import TextDetector
from .text_recognizer import TextRecognizer
from .utils import get_rotate_crop_image, load_character_dict

__version__ = "0.1.0"
__all__ = [
    "LayoutDetector",
    "TextDetector",
    "TextRecognizer",
    "OcrEngine",
    "LayoutConfig",
    "DetectorConfig",
    "RecognizerConfig",
    "Detection",
    "TextBox",
    "TextLine",
    "DOC_CLASSES",
    "LayoutPostProcess",
    "DBPostProcess",
    "CTCLabelDecode",
    "prepare_layout_input",
    "prepare_detection_input",
    "prepare_recognition_input",
    "get_rotate_crop_image",
    "load_character_dict",
    "get_full_text",
]
