"""Unit tests for greedy CTC decoding."""

import numpy as np
import pytest

from core.errors import InferenceError
from ocr.ctc_decoder import CTCDecoder
from conftest import CHARSET, encode_text


def one_hot(indices, num_classes):
    logits = np.zeros((len(indices), num_classes), dtype=np.float32)
    for t, index in enumerate(indices):
        logits[t, index] = 1.0
    return logits


class TestCTCDecoder:
    """Best-path decoding over the configured charset."""

    def test_collapse_repeats_and_blanks(self):
        decoder = CTCDecoder(charset="abc", blank_index=0)
        assert decoder.collapse([1, 1, 0, 1, 2, 2, 0, 0, 3]) == [1, 1, 2, 3]

    def test_decode_unbatched(self):
        decoder = CTCDecoder(charset="abc", blank_index=0)
        # a a _ a b b _ c  ->  "aabc"
        logits = one_hot([1, 1, 0, 1, 2, 2, 0, 3], decoder.num_classes)
        assert decoder.decode(logits) == "aabc"

    def test_decode_batched(self):
        decoder = CTCDecoder(charset=CHARSET, blank_index=0)
        assert decoder.decode(encode_text("hello42")) == "hello42"

    def test_blank_last(self):
        decoder = CTCDecoder(charset="ab", blank_index=2)
        logits = one_hot([0, 2, 0, 1], decoder.num_classes)
        assert decoder.decode(logits) == "aab"

    def test_all_blank_is_empty(self):
        decoder = CTCDecoder(charset="ab")
        assert decoder.decode(one_hot([0, 0, 0], decoder.num_classes)) == ""

    def test_zero_timesteps_is_empty(self):
        decoder = CTCDecoder(charset="ab")
        assert decoder.decode(np.zeros((1, 0, 3), dtype=np.float32)) == ""

    def test_too_many_classes(self):
        decoder = CTCDecoder(charset="ab")
        with pytest.raises(InferenceError):
            decoder.decode(one_hot([4], 5))

    def test_fewer_classes_than_charset(self):
        """Outputs may use a prefix of the charset."""
        decoder = CTCDecoder(charset="abcdef")
        assert decoder.decode(one_hot([1, 0, 2], 3)) == "ab"

    def test_invalid_configuration(self):
        with pytest.raises(ValueError):
            CTCDecoder(charset="")
        with pytest.raises(ValueError):
            CTCDecoder(charset="ab", blank_index=5)
