"""Preprocessing operations producing model-ready tensors."""

import logging
import math
from typing import Dict, List, Sequence, Tuple

import cv2
import numpy as np

logger = logging.getLogger(__name__)

ScaleFactor = Tuple[float, float]

DET_MEAN = [0.485, 0.456, 0.406]
DET_STD = [0.229, 0.224, 0.225]


class LayoutResize:
    """Stretch to a fixed size; aspect ratio is not preserved."""

    def __init__(self, target_width=640, target_height=640, **kwargs):
        self.target_width = target_width
        self.target_height = target_height

    def __call__(self, data: Dict) -> Dict:
        img = data['image']
        src_h, src_w = img.shape[:2]
        data['image'] = cv2.resize(
            img, (self.target_width, self.target_height), interpolation=cv2.INTER_LINEAR
        )
        data['scale'] = (self.target_width / float(src_w), self.target_height / float(src_h))
        return data


class DetResizeForTest:
    """Resize image for text detection."""

    def __init__(self, limit_side_len=960, block_size=32, **kwargs):
        self.limit_side_len = limit_side_len
        self.block_size = block_size

    def __call__(self, data: Dict) -> Dict:
        img = data['image']
        src_h, src_w = img.shape[:2]

        # Shrink so the longer side fits limit_side_len
        ratio = 1.0
        if max(src_h, src_w) > self.limit_side_len:
            ratio = float(self.limit_side_len) / max(src_h, src_w)

        resize_h = int(src_h * ratio)
        resize_w = int(src_w * ratio)

        # Round up to a multiple of block_size
        block = self.block_size
        resize_h = max(int(math.ceil(resize_h / block)) * block, block)
        resize_w = max(int(math.ceil(resize_w / block)) * block, block)

        data['image'] = cv2.resize(img, (resize_w, resize_h), interpolation=cv2.INTER_LINEAR)
        data['scale'] = (resize_w / float(src_w), resize_h / float(src_h))
        return data


class RecResizeImg:
    """Resize to a fixed height, width following the aspect ratio."""

    def __init__(self, image_height=48, max_width=2048, **kwargs):
        self.image_height = image_height
        self.max_width = max_width

    def __call__(self, data: Dict) -> Dict:
        img = data['image']
        src_h, src_w = img.shape[:2]

        resize_w = int(src_w * (self.image_height / float(src_h)))
        if resize_w > self.max_width:
            logger.warning(
                "Recognition width clamped from %d to %d", resize_w, self.max_width
            )
            resize_w = self.max_width
        resize_w = max(resize_w, 1)

        data['image'] = cv2.resize(
            img, (resize_w, self.image_height), interpolation=cv2.INTER_LINEAR
        )
        return data


class BGRToRGB:
    """Swap channel order for models trained on RGB input."""

    def __call__(self, data: Dict) -> Dict:
        data['image'] = cv2.cvtColor(data['image'], cv2.COLOR_BGR2RGB)
        return data


class NormalizeImage:
    """Normalize image values: (x * scale - mean) / std."""

    def __init__(self, scale=1. / 255., mean=None, std=None, **kwargs):
        if mean is None:
            mean = [0.0, 0.0, 0.0]
        if std is None:
            std = [1.0, 1.0, 1.0]
        self.scale = np.float32(scale)
        self.mean = np.array(mean).reshape((1, 1, 3)).astype('float32')
        self.std = np.array(std).reshape((1, 1, 3)).astype('float32')

    def __call__(self, data: Dict) -> Dict:
        img = data['image'].astype('float32')
        data['image'] = (img * self.scale - self.mean) / self.std
        return data


class ToCHWImage:
    """Convert image from HWC to NCHW with a batch dimension of 1."""

    def __call__(self, data: Dict) -> Dict:
        img = data['image'].transpose((2, 0, 1))
        data['image'] = np.ascontiguousarray(img[np.newaxis, :], dtype=np.float32)
        return data


class KeepKeys:
    """Keep only specified keys in data dict."""

    def __init__(self, keep_keys: List[str], **kwargs):
        self.keep_keys = keep_keys

    def __call__(self, data: Dict) -> Tuple:
        return tuple(data[key] for key in self.keep_keys)


def create_operators(op_param_list: List[Dict]):
    """Create preprocessing operators from config list.

    Args:
        op_param_list: List of dicts like [{"OpName": {params}}]

    Returns:
        List of operator instances
    """
    ops = []
    for operator in op_param_list:
        assert isinstance(operator, dict) and len(operator) == 1
        op_name = list(operator)[0]
        param = {} if operator[op_name] is None else operator[op_name]
        op = globals()[op_name](**param)
        ops.append(op)
    return ops


def transform(data: Dict, ops: List):
    """Apply preprocessing operators sequentially."""
    for op in ops:
        data = op(data)
        if data is None:
            return None
    return data


def prepare_layout_input(
    image: np.ndarray, target_width: int = 640, target_height: int = 640
) -> Tuple[np.ndarray, ScaleFactor]:
    """NCHW RGB tensor in [0, 1] at exactly (target_width, target_height)."""
    ops = create_operators([
        {"BGRToRGB": None},
        {"LayoutResize": {"target_width": target_width, "target_height": target_height}},
        {"NormalizeImage": {"scale": 1. / 255.}},
        {"ToCHWImage": None},
        {"KeepKeys": {"keep_keys": ["image", "scale"]}},
    ])
    return transform({"image": image}, ops)


def prepare_detection_input(
    image: np.ndarray,
    max_side: int = 960,
    block_size: int = 32,
    mean: Sequence[float] = DET_MEAN,
    std: Sequence[float] = DET_STD,
) -> Tuple[np.ndarray, ScaleFactor]:
    """NCHW RGB tensor, aspect ratio kept, sides rounded up to block_size."""
    ops = create_operators([
        {"DetResizeForTest": {"limit_side_len": max_side, "block_size": block_size}},
        {"BGRToRGB": None},
        {"NormalizeImage": {"scale": 1. / 255., "mean": list(mean), "std": list(std)}},
        {"ToCHWImage": None},
        {"KeepKeys": {"keep_keys": ["image", "scale"]}},
    ])
    return transform({"image": image}, ops)


def prepare_recognition_input(
    region: np.ndarray, image_height: int = 48, max_width: int = 2048
) -> np.ndarray:
    """NCHW tensor in [-1, 1]; channel order is left as given (BGR)."""
    ops = create_operators([
        {"RecResizeImg": {"image_height": image_height, "max_width": max_width}},
        {"NormalizeImage": {"scale": 1. / 255., "mean": [0.5, 0.5, 0.5], "std": [0.5, 0.5, 0.5]}},
        {"ToCHWImage": None},
        {"KeepKeys": {"keep_keys": ["image"]}},
    ])
    return transform({"image": region}, ops)[0]
