"""Output contracts of the two inference graphs.

The graphs are opaque; these contracts are the only assumptions the
pipeline makes about what they return. They are checked once when a
graph is loaded (against a probe input) and again on every call.

Detector:
    outputs[0]  boxes   [N, 4] or [1, N, 4], normalized [y1, x1, y2, x2]
    outputs[1]  scores  [N] or [1, N]            (optional)

Recognizer:
    outputs[0]  logits  [T, C] or [1, T, C], per-timestep class scores
"""

from dataclasses import dataclass, field
from typing import List, Optional, Sequence, Tuple

import numpy as np

from core.errors import OutputContractError


@dataclass(frozen=True)
class TensorSpec:
    """Accepted shapes for one output tensor.

    ``rank`` is the unbatched rank; a tensor of rank ``rank + 1`` is accepted
    when its leading (batch) dimension is 1.
    """
    name: str
    rank: int
    last_dim: Optional[int] = None

    def check(self, model_name: str, tensor: np.ndarray) -> None:
        shape = tuple(np.shape(tensor))
        if len(shape) == self.rank + 1:
            if shape[0] != 1:
                raise OutputContractError(
                    f"{model_name} output '{self.name}' has batch size {shape[0]}, expected 1 (shape {shape})"
                )
        elif len(shape) != self.rank:
            raise OutputContractError(
                f"{model_name} output '{self.name}' has rank {len(shape)}, "
                f"expected {self.rank} or {self.rank + 1} (shape {shape})"
            )
        if self.last_dim is not None and shape and shape[-1] != self.last_dim:
            raise OutputContractError(
                f"{model_name} output '{self.name}' last dimension is {shape[-1]}, expected {self.last_dim}"
            )

    def unbatch(self, tensor: np.ndarray) -> np.ndarray:
        """Drop the leading batch dimension if present."""
        array = np.asarray(tensor)
        if array.ndim == self.rank + 1:
            return array[0]
        return array


@dataclass(frozen=True)
class OutputContract:
    model_name: str
    required: Tuple[TensorSpec, ...]
    optional: Tuple[TensorSpec, ...] = field(default_factory=tuple)

    def validate(self, outputs: Sequence[np.ndarray]) -> List[np.ndarray]:
        """Check outputs against the contract.

        Args:
            outputs: Raw output tensors in graph order

        Returns:
            list: The same outputs, as a list

        Raises:
            OutputContractError: If a required output is missing or any
                                 output has an unexpected shape
        """
        outputs = list(outputs)
        if len(outputs) < len(self.required):
            raise OutputContractError(
                f"{self.model_name} returned {len(outputs)} outputs, expected at least {len(self.required)}"
            )
        specs = list(self.required) + list(self.optional)
        for spec, tensor in zip(specs, outputs):
            spec.check(self.model_name, tensor)
        if len(self.required) + 1 <= len(outputs) and self.optional:
            # Optional outputs must agree on N with the first required output
            primary = self.required[0].unbatch(outputs[0])
            secondary = self.optional[0].unbatch(outputs[len(self.required)])
            if secondary.shape[0] != primary.shape[0]:
                raise OutputContractError(
                    f"{self.model_name} '{self.optional[0].name}' has {secondary.shape[0]} entries "
                    f"but '{self.required[0].name}' has {primary.shape[0]}"
                )
        return outputs


BOXES = TensorSpec(name="boxes", rank=2, last_dim=4)
SCORES = TensorSpec(name="scores", rank=1)
LOGITS = TensorSpec(name="logits", rank=2)

DETECTOR_CONTRACT = OutputContract(model_name="detector", required=(BOXES,), optional=(SCORES,))
RECOGNIZER_CONTRACT = OutputContract(model_name="recognizer", required=(LOGITS,))
