"""Base class for ONNX Runtime inference with GPU/TensorRT support."""

import logging
import os
from pathlib import Path
from typing import Dict, List, Union

import numpy as np
import onnxruntime

logger = logging.getLogger(__name__)


class ONNXInferenceBase:
    """Inference handle around one ONNX Runtime session.

    The handle is created once by the caller and passed to the stages that
    need it; nothing here is process-global.
    """

    def __init__(
        self,
        model_path: Union[str, Path],
        use_gpu: bool = False,
        use_tensorrt: bool = False,
        num_threads: int = 4,
    ):
        """Initialize ONNX Runtime session.

        Args:
            model_path: Path to ONNX model file
            use_gpu: Enable CUDA GPU acceleration
            use_tensorrt: Enable TensorRT acceleration (requires TensorRT)
            num_threads: Intra-op threads for CPU execution (-1 for auto)
        """
        self.model_path = Path(model_path)
        if not self.model_path.exists():
            raise FileNotFoundError(f"Model not found: {model_path}")

        sess_options = onnxruntime.SessionOptions()
        sess_options.graph_optimization_level = (
            onnxruntime.GraphOptimizationLevel.ORT_ENABLE_ALL
        )
        if num_threads != -1:
            sess_options.intra_op_num_threads = num_threads
            sess_options.inter_op_num_threads = 2

        # Setup providers (TensorRT > CUDA > CPU)
        providers = self._get_providers(use_gpu, use_tensorrt)

        logger.debug("Loading model %s with providers %s", self.model_path, providers)
        self.session = onnxruntime.InferenceSession(
            str(self.model_path),
            sess_options,
            providers=providers,
        )

        # Cache input/output names
        self.input_names = [node.name for node in self.session.get_inputs()]
        self.output_names = [node.name for node in self.session.get_outputs()]

    def _get_providers(self, use_gpu: bool, use_tensorrt: bool) -> List:
        """Get execution providers based on hardware availability.

        Priority: TensorRT > CUDA > CPU
        """
        available_providers = onnxruntime.get_available_providers()
        providers = []

        if use_tensorrt and "TensorrtExecutionProvider" in available_providers:
            providers.append(('TensorrtExecutionProvider', {}))

        if use_gpu and "CUDAExecutionProvider" in available_providers:
            providers.append((
                'CUDAExecutionProvider',
                {"cudnn_conv_algo_search": "DEFAULT"}
            ))

        # CPU (always available as fallback)
        providers.append('CPUExecutionProvider')

        return providers

    def run(self, input_data: Dict[str, np.ndarray]) -> List[np.ndarray]:
        """Run inference on input data.

        Args:
            input_data: Dictionary mapping input names to numpy arrays

        Returns:
            List of output arrays
        """
        return self.session.run(self.output_names, input_feed=input_data)

    def __repr__(self):
        return f"ONNXInferenceBase(model={self.model_path.name}, inputs={self.input_names})"


def load_session(
    model_or_session,
    use_gpu: bool = False,
    use_tensorrt: bool = False,
):
    """Return an inference handle for a model path, or the handle itself.

    Anything exposing ``input_names`` and ``run(feed)`` is accepted as an
    already-built handle.
    """
    if hasattr(model_or_session, "run") and hasattr(model_or_session, "input_names"):
        return model_or_session
    return ONNXInferenceBase(model_or_session, use_gpu=use_gpu, use_tensorrt=use_tensorrt)


def resolve_model_path(path_or_repo: str, filename: str, **kwargs) -> str:
    """Returns path to local file if it exists, otherwise treats it as a huggingface repo and
    attempts to download."""
    from huggingface_hub import hf_hub_download

    full_path = os.path.join(path_or_repo, filename)
    if os.path.exists(full_path):
        return full_path
    return hf_hub_download(path_or_repo, filename, **kwargs)
