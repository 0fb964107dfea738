"""Scoped tensor lifetime tracking.

Every numpy array handed to or returned from an inference graph is
registered in a ``TensorScope``. Leaving the scope releases all of them,
whether the block completed, raised, or was cancelled.
"""

import threading
from typing import Any, Dict, Iterable, List

import numpy as np


class TensorRegistry:
    """Process-wide counters of allocated and released tensors."""

    def __init__(self):
        self._lock = threading.Lock()
        self.allocated = 0
        self.released = 0

    def on_allocate(self, count: int = 1):
        with self._lock:
            self.allocated += count

    def on_release(self, count: int = 1):
        with self._lock:
            self.released += count

    @property
    def live(self) -> int:
        """Number of tensors allocated but not yet released."""
        with self._lock:
            return self.allocated - self.released

    def snapshot(self) -> Dict[str, int]:
        with self._lock:
            return {
                "allocated": self.allocated,
                "released": self.released,
                "live": self.allocated - self.released,
            }

    def reset(self):
        with self._lock:
            self.allocated = 0
            self.released = 0


registry = TensorRegistry()


class TensorScope:
    """Context manager owning the tensors created inside it.

    Example:
        with TensorScope() as scope:
            pixels = scope.track(surface.to_array().astype(np.float32))
            normalized = scope.track(pixels / 255.0)
    """

    def __init__(self, tensor_registry: TensorRegistry = None):
        self._registry = tensor_registry or registry
        self._tensors: List[np.ndarray] = []
        self._closed = False

    def track(self, tensor: Any) -> Any:
        """Register one tensor (or a list/tuple of tensors) with this scope."""
        if self._closed:
            raise RuntimeError("TensorScope is already closed")
        if isinstance(tensor, (list, tuple)):
            self.track_all(tensor)
            return tensor
        self._tensors.append(tensor)
        self._registry.on_allocate()
        return tensor

    def track_all(self, tensors: Iterable[Any]) -> List[Any]:
        tracked = []
        for tensor in tensors:
            tracked.append(self.track(tensor))
        return tracked

    def release(self):
        """Drop every reference held by the scope and record the releases."""
        count = len(self._tensors)
        self._tensors.clear()
        self._closed = True
        if count:
            self._registry.on_release(count)

    def __len__(self) -> int:
        return len(self._tensors)

    def __enter__(self) -> "TensorScope":
        return self

    def __exit__(self, exc_type, exc, tb):
        self.release()
        return False
