"""Configuration classes for layout and OCR stages."""

from dataclasses import dataclass, field
from typing import List, Optional


ACTIVATIONS = ("auto", "logits", "probs")


def check_activation(activation: str) -> str:
    if activation not in ACTIVATIONS:
        raise ValueError(
            f"Unknown activation: {activation!r}. Expected one of {ACTIVATIONS}"
        )
    return activation


@dataclass
class LayoutConfig:
    """Configuration for document layout detection."""
    target_width: int = 640  # Model input width (no aspect ratio kept)
    target_height: int = 640  # Model input height
    conf_threshold: float = 0.5  # Minimum detection score
    use_gpu: bool = False  # Enable CUDA GPU acceleration
    use_tensorrt: bool = False  # Enable TensorRT acceleration


@dataclass
class DetectorConfig:
    """Configuration for text detection stage."""
    det_limit_side_len: int = 960  # Maximum side length for input images
    det_block_size: int = 32  # Resized sides are rounded up to this multiple
    det_db_thresh: float = 0.3  # Binarization threshold
    det_db_box_thresh: float = 0.3  # Box confidence threshold
    min_size: float = 3  # Shorter rectangle side below this is dropped
    unclip_ratio: Optional[float] = None  # Text region expansion ratio, None disables
    max_candidates: Optional[int] = None  # Cap on contours considered, None for all
    activation: str = "auto"  # 'auto', 'logits' or 'probs'
    mean: List[float] = field(default_factory=lambda: [0.485, 0.456, 0.406])
    std: List[float] = field(default_factory=lambda: [0.229, 0.224, 0.225])
    use_gpu: bool = False  # Enable CUDA GPU acceleration
    use_tensorrt: bool = False  # Enable TensorRT acceleration

    def __post_init__(self):
        check_activation(self.activation)


@dataclass
class RecognizerConfig:
    """Configuration for text recognition stage."""
    rec_image_height: int = 48  # Fixed input height
    rec_max_width: int = 2048  # Wider inputs are squeezed to this width
    drop_score: float = 0.5  # Minimum confidence score
    activation: str = "auto"  # 'auto', 'logits' or 'probs'
    use_gpu: bool = False  # Enable CUDA GPU acceleration
    use_tensorrt: bool = False  # Enable TensorRT acceleration

    def __post_init__(self):
        check_activation(self.activation)
