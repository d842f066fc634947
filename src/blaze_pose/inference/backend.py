"""Abstract inference backend interface.

Backends run synchronously via ``run()``. ``schedule()`` dispatches a run to
a single worker thread and returns a Future. The pipeline resolves each
Future before using the outputs, so stages still run one after another;
inference just happens off the caller's thread.
"""

from abc import ABC, abstractmethod
from concurrent.futures import Future, ThreadPoolExecutor
from typing import List, Optional, Tuple
import logging

import numpy as np

logger = logging.getLogger(__name__)


class InferenceBackend(ABC):
    """Abstract base class for inference backends."""

    def __init__(self):
        self._executor: Optional[ThreadPoolExecutor] = None
        self._closed = False

    @abstractmethod
    def load(self, model_path: str) -> None:
        """Load model from file.

        Args:
            model_path: Path to model file.
        """
        pass

    @abstractmethod
    def run(self, input_tensor: np.ndarray) -> List[np.ndarray]:
        """Run inference on input tensor.

        Args:
            input_tensor: Input tensor of shape (1, H, W, C).

        Returns:
            All output tensors, in model order.
        """
        pass

    @abstractmethod
    def get_input_shape(self) -> Tuple[int, ...]:
        """Get expected input shape."""
        pass

    @abstractmethod
    def get_output_shapes(self) -> List[Tuple[int, ...]]:
        """Get output shapes."""
        pass

    @property
    @abstractmethod
    def is_loaded(self) -> bool:
        """Check if model is loaded."""
        pass

    @property
    def name(self) -> str:
        """Backend name for logging."""
        return self.__class__.__name__

    def schedule(self, input_tensor: np.ndarray) -> "Future[List[np.ndarray]]":
        """Dispatch inference without blocking.

        Returns:
            Future resolving to the output tensors.
        """
        if self._closed:
            raise RuntimeError(f"{self.name} is closed")
        if self._executor is None:
            self._executor = ThreadPoolExecutor(
                max_workers=1, thread_name_prefix=self.name
            )
        return self._executor.submit(self.run, input_tensor)

    def release(self) -> None:
        """Free model resources. Subclasses override."""
        pass

    def close(self) -> None:
        """Wait for pending work, then release the model. Idempotent."""
        if self._closed:
            return
        self._closed = True
        if self._executor is not None:
            self._executor.shutdown(wait=True)
            self._executor = None
        self.release()
        logger.debug("%s closed", self.name)

    @property
    def is_closed(self) -> bool:
        return self._closed

    def __enter__(self) -> "InferenceBackend":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()
