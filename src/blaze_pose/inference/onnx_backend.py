"""ONNX Runtime inference backend.

Selects the best available execution provider (CUDA on desktop, XNNPACK on
mobile) and falls back to a CPU-only session if the accelerated one cannot
be created.
"""

import logging
import os
import platform
import sys
from typing import List, Optional, Tuple, Union

import numpy as np
import onnxruntime as ort

from blaze_pose.inference.backend import InferenceBackend

logger = logging.getLogger(__name__)

CPU_PROVIDER = "CPUExecutionProvider"

# Provider priority presets
PROVIDER_PRESETS = {
    "desktop": ["CUDAExecutionProvider", CPU_PROVIDER],
    "mobile": ["XnnpackExecutionProvider", CPU_PROVIDER],
    "mobile-npu": ["NnapiExecutionProvider", "XnnpackExecutionProvider", CPU_PROVIDER],
}

PROVIDER_SHORTHANDS = {
    "nnapi": "NnapiExecutionProvider",
    "xnnpack": "XnnpackExecutionProvider",
    "cuda": "CUDAExecutionProvider",
    "coreml": "CoreMLExecutionProvider",
    "cpu": CPU_PROVIDER,
}


def _is_mobile() -> bool:
    return (
        "android" in sys.platform.lower()
        or "TERMUX_VERSION" in os.environ
        or platform.machine().lower() in ("aarch64", "arm64", "armv7l")
    )


def get_execution_providers(
    priority: Union[str, List[str]] = "auto"
) -> List[str]:
    """Get ordered list of available execution providers.

    Args:
        priority: Provider selection strategy:
            - "auto": Detect platform (desktop vs mobile)
            - "desktop": CUDA -> CPU
            - "mobile": XNNPACK -> CPU
            - "mobile-npu": NNAPI -> XNNPACK -> CPU
            - "nnapi", "xnnpack", "cuda", "coreml", "cpu": Specific provider + CPU fallback
            - List of providers: Custom order

    Returns:
        List of available providers in priority order, always ending with CPUExecutionProvider.
    """
    available = ort.get_available_providers()

    if isinstance(priority, list):
        requested = priority
    elif priority == "auto":
        requested = PROVIDER_PRESETS["mobile" if _is_mobile() else "desktop"]
    elif priority in PROVIDER_PRESETS:
        requested = PROVIDER_PRESETS[priority]
    elif priority.lower() in PROVIDER_SHORTHANDS:
        requested = [PROVIDER_SHORTHANDS[priority.lower()], CPU_PROVIDER]
    else:
        logger.warning("Unknown provider priority %r, using desktop preset", priority)
        requested = PROVIDER_PRESETS["desktop"]

    providers = [p for p in requested if p in available and p != CPU_PROVIDER]
    providers.append(CPU_PROVIDER)
    return providers


class ONNXBackend(InferenceBackend):
    """ONNX Runtime inference backend for NHWC float32 models."""

    def __init__(
        self,
        provider_priority: Union[str, List[str]] = "auto",
        intra_op_num_threads: int = 4,
    ):
        """Initialize ONNX backend.

        Args:
            provider_priority: Provider selection strategy, see get_execution_providers().
            intra_op_num_threads: Threads per operator.
        """
        super().__init__()
        self.provider_priority = provider_priority
        self.intra_op_num_threads = intra_op_num_threads
        self.session: Optional[ort.InferenceSession] = None
        self._input_name: Optional[str] = None
        self._output_names: List[str] = []
        self._input_shape: Optional[Tuple[int, ...]] = None
        self._output_shapes: List[Tuple[int, ...]] = []

    def _create_session(self, model_path: str, providers: List[str]) -> "ort.InferenceSession":
        sess_options = ort.SessionOptions()
        sess_options.graph_optimization_level = ort.GraphOptimizationLevel.ORT_ENABLE_ALL
        sess_options.intra_op_num_threads = self.intra_op_num_threads
        return ort.InferenceSession(
            model_path,
            sess_options=sess_options,
            providers=providers,
        )

    def load(self, model_path: str) -> None:
        """Load ONNX model.

        Args:
            model_path: Path to .onnx model file.
        """
        providers = get_execution_providers(self.provider_priority)
        try:
            self.session = self._create_session(model_path, providers)
        except Exception as e:
            if providers == [CPU_PROVIDER]:
                raise
            logger.warning(
                "Failed to create %s session with %s, falling back to CPU: %s",
                model_path, providers[0], e,
            )
            self.session = self._create_session(model_path, [CPU_PROVIDER])

        # Cache input/output info
        input_info = self.session.get_inputs()[0]
        self._input_name = input_info.name
        self._input_shape = tuple(input_info.shape)
        outputs = self.session.get_outputs()
        self._output_names = [o.name for o in outputs]
        self._output_shapes = [tuple(o.shape) for o in outputs]

        logger.info(
            "Loaded %s on %s (input %s, outputs %s)",
            model_path, self.active_provider, self._input_shape, self._output_shapes,
        )

    def run(self, input_tensor: np.ndarray) -> List[np.ndarray]:
        """Run inference.

        Args:
            input_tensor: Input of shape (1, H, W, 3), float32.

        Returns:
            All model outputs.
        """
        if self.session is None:
            raise RuntimeError("Model not loaded. Call load() first.")

        return self.session.run(
            self._output_names,
            {self._input_name: input_tensor.astype(np.float32)},
        )

    def get_input_shape(self) -> Tuple[int, ...]:
        if self._input_shape is None:
            raise RuntimeError("Model not loaded.")
        return self._input_shape

    def get_output_shapes(self) -> List[Tuple[int, ...]]:
        if self.session is None:
            raise RuntimeError("Model not loaded.")
        return self._output_shapes

    @property
    def is_loaded(self) -> bool:
        return self.session is not None

    @property
    def active_provider(self) -> str:
        """Get the active execution provider."""
        if self.session is None:
            return "None"
        return self.session.get_providers()[0]

    def release(self) -> None:
        self.session = None


def create_backend(
    model_path: str,
    provider_priority: Union[str, List[str]] = "auto",
    **backend_kwargs,
) -> ONNXBackend:
    """Create and load an ONNX backend."""
    backend = ONNXBackend(provider_priority=provider_priority, **backend_kwargs)
    backend.load(model_path)
    return backend
