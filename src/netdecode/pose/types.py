from __future__ import annotations

from dataclasses import dataclass
from typing import NamedTuple

from .skeleton import NUM_KEYPOINTS, PART_IDS, get_adjacent_keypoints


class Position(NamedTuple):
    """2D point, x to the right and y down."""

    x: float
    y: float


@dataclass(frozen=True)
class PartWithScore:
    """A root candidate: a heatmap cell for one part, with its score."""

    score: float
    heatmap_y: int
    heatmap_x: int
    part_id: int


@dataclass(frozen=True)
class Keypoint:
    """A single scored body part location.

    Attributes:
        score: part confidence in [0, 1]. A score of 0 marks an unresolved part.
        position: location in the pose network's input pixel space, i.e.
            heatmap cell * output stride + offset
        part: name of the skeleton part
    """

    score: float
    position: Position
    part: str

    @property
    def is_resolved(self) -> bool:
        return self.score > 0.0


@dataclass(frozen=True)
class Pose:
    """One detected person.

    Attributes:
        keypoints: one Keypoint per skeleton part, ordered by part index
        score: instance score, the mean over all parts of the keypoint scores that
            don't overlap the same part of a previously detected pose
    """

    keypoints: tuple[Keypoint, ...]
    score: float

    def __post_init__(self) -> None:
        if not isinstance(self.keypoints, tuple):
            object.__setattr__(self, "keypoints", tuple(self.keypoints))
        if len(self.keypoints) != NUM_KEYPOINTS:
            raise ValueError(
                f"Pose must have exactly {NUM_KEYPOINTS} keypoints, got {len(self.keypoints)}"
            )

    def keypoint(self, part: str | int) -> Keypoint:
        """Look up a keypoint by part name or part index."""
        if isinstance(part, str):
            if part not in PART_IDS:
                raise KeyError(f"unknown skeleton part '{part}'")
            return self.keypoints[PART_IDS[part]]
        return self.keypoints[part]

    def resolved_keypoints(self) -> list[Keypoint]:
        """Keypoints with a non-zero score."""
        return [k for k in self.keypoints if k.is_resolved]

    def adjacent_keypoints(self, min_confidence: float) -> list[tuple[Keypoint, Keypoint]]:
        """Pairs of connected keypoints where both parts meet min_confidence."""
        return get_adjacent_keypoints(self.keypoints, min_confidence)
