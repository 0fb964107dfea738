"""Greedy CTC decoding of recognizer outputs."""

from typing import List, Optional, Sequence

import numpy as np

from core.config import settings
from core.errors import InferenceError
from inference.contracts import LOGITS


class CTCDecoder:
    """Best-path CTC decoder over a fixed character set.

    Class index ``blank_index`` is the CTC blank. Every other class maps to
    one character of ``charset``, in order, skipping the blank's slot.
    """

    def __init__(self, charset: Optional[str] = None, blank_index: Optional[int] = None):
        self.charset = settings.RECOGNIZER_CHARSET if charset is None else charset
        self.blank_index = settings.RECOGNIZER_BLANK_INDEX if blank_index is None else blank_index
        if not self.charset:
            raise ValueError("Recognizer charset must not be empty")
        if not 0 <= self.blank_index <= len(self.charset):
            raise ValueError(f"Blank index {self.blank_index} outside 0..{len(self.charset)}")

    @property
    def num_classes(self) -> int:
        return len(self.charset) + 1

    def index_to_char(self, index: int) -> str:
        if index == self.blank_index or index < 0 or index >= self.num_classes:
            raise InferenceError(f"Class index {index} has no character (charset size {len(self.charset)})")
        return self.charset[index - 1 if index > self.blank_index else index]

    def collapse(self, indices: Sequence[int]) -> List[int]:
        """Merge consecutive repeats, then drop blanks."""
        collapsed = []
        previous = None
        for index in indices:
            index = int(index)
            if index != previous and index != self.blank_index:
                collapsed.append(index)
            previous = index
        return collapsed

    def decode(self, logits: np.ndarray) -> str:
        """Decode one recognizer output to text.

        Args:
            logits: Per-timestep class scores, [T, C] or [1, T, C]

        Returns:
            str: Recognized text (possibly empty)

        Raises:
            InferenceError: If the output has more classes than the charset
                            allows, or an index has no character
        """
        scores = np.asarray(LOGITS.unbatch(logits))
        if scores.shape[0] == 0:
            return ""
        if scores.shape[-1] > self.num_classes:
            raise InferenceError(
                f"Recognizer emits {scores.shape[-1]} classes but charset supports {self.num_classes}"
            )
        best_path = np.argmax(scores, axis=-1)
        return "".join(self.index_to_char(i) for i in self.collapse(best_path))
