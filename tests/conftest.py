"""Shared fixtures for netdecode tests."""

import numpy as np
import pytest

from netdecode.detection import YoloObject
from netdecode.detection.types import DEFAULT_CLASS_COLOR
from netdecode.pose import NUM_EDGES, NUM_KEYPOINTS


class PoseTensors:
    """Zero-filled PoseNet outputs that tests can poke values into.

    Offsets and displacements are stored as (y, x) pairs the same way the
    network lays them out: y components first, then x components.
    """

    def __init__(self, height: int, width: int):
        self.scores = np.zeros((1, height, width, NUM_KEYPOINTS), dtype=np.float32)
        self.offsets = np.zeros((1, height, width, 2 * NUM_KEYPOINTS), dtype=np.float32)
        self.displacements_fwd = np.zeros((1, height, width, 2 * NUM_EDGES), dtype=np.float32)
        self.displacements_bwd = np.zeros((1, height, width, 2 * NUM_EDGES), dtype=np.float32)

    def set_offset(self, row: int, col: int, part: int, dy: float, dx: float) -> None:
        self.offsets[0, row, col, part] = dy
        self.offsets[0, row, col, part + NUM_KEYPOINTS] = dx

    def set_displacement(
        self, row: int, col: int, edge: int, dy: float, dx: float, forward: bool = True
    ) -> None:
        displacements = self.displacements_fwd if forward else self.displacements_bwd
        displacements[0, row, col, edge] = dy
        displacements[0, row, col, edge + NUM_EDGES] = dx

    def as_args(self):
        return self.scores, self.offsets, self.displacements_fwd, self.displacements_bwd


@pytest.fixture
def pose_tensors():
    """Factory fixture returning empty PoseTensors of the requested grid size."""

    def _make(height: int = 9, width: int = 9) -> PoseTensors:
        return PoseTensors(height, width)

    return _make


@pytest.fixture
def make_object():
    """Factory fixture for YoloObjects with a given box (left, top, right, bottom)."""

    def _make(left, top, right, bottom, class_index=0, conf=0.9, label="thing"):
        return YoloObject(
            class_index=class_index,
            class_conf=conf,
            class_label=label,
            class_color=DEFAULT_CLASS_COLOR,
            box_left=float(left),
            box_right=float(right),
            box_top=float(top),
            box_bottom=float(bottom),
        )

    return _make


@pytest.fixture
def meta_document():
    """A small but complete .meta document: 2x2 grid, 1 box, 2 classes."""
    return {
        "inp_size": [64, 64, 3],
        "out_size": [2, 2, 7],
        "num": 1,
        "classes": 2,
        "anchors": [1.0, 1.0],
        "labels": ["cat", "dog"],
        "colors": [[255, 0, 0], [0, 255, 0]],
    }
