"""PoseNet skeleton topology.

Process-wide, read-only tables describing the 17 body parts the pose network
predicts, the parts that are connected when drawing a skeleton, and the tree
("pose chain") along which part positions are propagated while decoding.
"""

import enum
from collections.abc import Sequence

from netdecode.core.exceptions import TopologyError


class PartIndex(enum.IntEnum):
    """enum defining the 17 keypoint indexes (heatmap channel order)"""

    NOSE = 0
    LEFT_EYE = 1
    RIGHT_EYE = 2
    LEFT_EAR = 3
    RIGHT_EAR = 4
    LEFT_SHOULDER = 5
    RIGHT_SHOULDER = 6
    LEFT_ELBOW = 7
    RIGHT_ELBOW = 8
    LEFT_WRIST = 9
    RIGHT_WRIST = 10
    LEFT_HIP = 11
    RIGHT_HIP = 12
    LEFT_KNEE = 13
    RIGHT_KNEE = 14
    LEFT_ANKLE = 15
    RIGHT_ANKLE = 16


PART_NAMES: tuple[str, ...] = (
    "nose",
    "leftEye",
    "rightEye",
    "leftEar",
    "rightEar",
    "leftShoulder",
    "rightShoulder",
    "leftElbow",
    "rightElbow",
    "leftWrist",
    "rightWrist",
    "leftHip",
    "rightHip",
    "leftKnee",
    "rightKnee",
    "leftAnkle",
    "rightAnkle",
)

NUM_KEYPOINTS = len(PART_NAMES)

PART_IDS: dict[str, int] = {name: i for i, name in enumerate(PART_NAMES)}

# undirected pairs used for drawing the skeleton, not for decoding
CONNECTED_PART_NAMES: tuple[tuple[str, str], ...] = (
    ("leftHip", "leftShoulder"),
    ("leftElbow", "leftShoulder"),
    ("leftElbow", "leftWrist"),
    ("leftHip", "leftKnee"),
    ("leftKnee", "leftAnkle"),
    ("rightHip", "rightShoulder"),
    ("rightElbow", "rightShoulder"),
    ("rightElbow", "rightWrist"),
    ("rightHip", "rightKnee"),
    ("rightKnee", "rightAnkle"),
    ("leftShoulder", "rightShoulder"),
    ("leftHip", "rightHip"),
)

# (parent, child) edges of the decoding tree, rooted at the nose. The edge order
# matches the channel order of the displacement tensors.
POSE_CHAIN: tuple[tuple[str, str], ...] = (
    ("nose", "leftEye"),
    ("leftEye", "leftEar"),
    ("nose", "rightEye"),
    ("rightEye", "rightEar"),
    ("nose", "leftShoulder"),
    ("leftShoulder", "leftElbow"),
    ("leftElbow", "leftWrist"),
    ("leftShoulder", "leftHip"),
    ("leftHip", "leftKnee"),
    ("leftKnee", "leftAnkle"),
    ("nose", "rightShoulder"),
    ("rightShoulder", "rightElbow"),
    ("rightElbow", "rightWrist"),
    ("rightShoulder", "rightHip"),
    ("rightHip", "rightKnee"),
    ("rightKnee", "rightAnkle"),
)

NUM_EDGES = len(POSE_CHAIN)


def validate_topology(
    part_names: Sequence[str],
    pose_chain: Sequence[tuple[str, str]],
    root: str = "nose",
) -> None:
    """check that a pose chain is a tree spanning every part

    The chain must have one edge per non-root part, every part other than the
    root must be the child of exactly one edge, and every edge's parent must
    already be reached (the root or the child of an earlier edge) so a single
    forward pass in edge order resolves the whole tree.

    Args:
        part_names: skeleton part names, in heatmap channel order
        pose_chain: (parent, child) edges, in displacement channel order
        root: name of the part the tree is rooted at

    Raises:
        TopologyError: if the tables are inconsistent
    """
    part_ids = {name: i for i, name in enumerate(part_names)}
    if len(part_ids) != len(part_names):
        raise TopologyError("skeleton part names must be unique")
    if root not in part_ids:
        raise TopologyError(f"root part '{root}' is not a skeleton part")
    if len(pose_chain) != len(part_names) - 1:
        raise TopologyError(
            f"pose chain must have {len(part_names) - 1} edges for {len(part_names)} parts, "
            f"got {len(pose_chain)}"
        )

    reached = {root}
    for parent, child in pose_chain:
        for name in (parent, child):
            if name not in part_ids:
                raise TopologyError(f"skeleton edge references unknown part '{name}'")
        if child == root or child in reached:
            raise TopologyError(f"part '{child}' has more than one parent")
        if parent not in reached:
            raise TopologyError(f"pose chain edge {parent}->{child} is not connected to the root")
        reached.add(child)


def _enum_to_part_name(part: PartIndex) -> str:
    head, *rest = part.name.lower().split("_")
    return head + "".join(word.capitalize() for word in rest)


validate_topology(PART_NAMES, POSE_CHAIN)
if len(PartIndex) != NUM_KEYPOINTS or any(
    PART_NAMES[p] != _enum_to_part_name(p) for p in PartIndex
):
    raise TopologyError("PartIndex does not match the skeleton part names")


def _part_index(name: str) -> int:
    try:
        return PART_IDS[name]
    except KeyError:
        raise TopologyError(f"skeleton edge references unknown part '{name}'") from None


CONNECTED_PART_INDICES: tuple[tuple[int, int], ...] = tuple(
    (_part_index(a), _part_index(b)) for a, b in CONNECTED_PART_NAMES
)

PARENT_CHILD_TUPLES: tuple[tuple[int, int], ...] = tuple(
    (PART_IDS[parent], PART_IDS[child]) for parent, child in POSE_CHAIN
)

# for edge i, PARENT_TO_CHILD_EDGES[i] is the child part id and
# CHILD_TO_PARENT_EDGES[i] is the parent part id
PARENT_TO_CHILD_EDGES: tuple[int, ...] = tuple(child for _, child in PARENT_CHILD_TUPLES)
CHILD_TO_PARENT_EDGES: tuple[int, ...] = tuple(parent for parent, _ in PARENT_CHILD_TUPLES)


def part_name(part: int) -> str:
    """get the part name for a part index"""
    return PART_NAMES[part]


def get_adjacent_keypoints(keypoints: Sequence, min_confidence: float) -> list[tuple]:
    """get the pairs of connected keypoints that can be drawn as bones

    Args:
        keypoints: one keypoint per part, ordered by part index. Each item only
            needs a `score` attribute.
        min_confidence: both keypoints of a pair must have at least this score

    Returns:
        list of (keypoint, keypoint) tuples in CONNECTED_PART_NAMES order
    """
    return [
        (keypoints[a], keypoints[b])
        for a, b in CONNECTED_PART_INDICES
        if keypoints[a].score >= min_confidence and keypoints[b].score >= min_confidence
    ]


def get_valid_resolution(image_scale_factor: float, input_dimension: int, output_stride: int) -> int:
    """get the closest network input resolution that is valid for an output stride

    PoseNet input sizes have the form k * output_stride + 1.

    Args:
        image_scale_factor: factor applied to the input dimension
        input_dimension: image width or height in pixels
        output_stride: network output stride

    Returns:
        valid input resolution
    """
    even_resolution = int(input_dimension * image_scale_factor) - 1
    return even_resolution - (even_resolution % output_stride) + 1
