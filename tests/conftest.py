from pathlib import Path

import numpy as np
import pytest


class FakeSession:
    """Inference handle returning canned outputs and recording feeds."""

    def __init__(self, outputs, input_names=("x",)):
        self.outputs = outputs
        self.input_names = list(input_names)
        self.feeds = []

    def run(self, feed):
        self.feeds.append(feed)
        return self.outputs


class FailingSession:
    input_names = ["x"]

    def run(self, feed):
        raise RuntimeError("inference failed")


DICTIONARY = ["", "a", "b", "c", "d", "A", " ", ""]


def one_hot_probs(indices, vocab_size=len(DICTIONARY), peak=0.9):
    """Probability rows whose argmax follows ``indices``."""
    rest = (1.0 - peak) / (vocab_size - 1)
    rows = np.full((len(indices), vocab_size), rest, dtype=np.float32)
    for t, idx in enumerate(indices):
        rows[t, idx] = peak
    return rows


def block_map(height, width, rows, cols, value=0.9):
    prob_map = np.zeros((height, width), dtype=np.float32)
    prob_map[rows[0]:rows[1], cols[0]:cols[1]] = value
    return prob_map


@pytest.fixture
def dictionary():
    return list(DICTIONARY)


def fake_model_loader(sessions):
    """Stand-in for ONNXInferenceBase that picks a session by model file name."""

    def load(model_path, use_gpu=False, use_tensorrt=False):
        return sessions[Path(model_path).name]

    return load
