"""PoseNet multi-person pose decoding."""

from .decoder import (
    DEFAULT_NMS_RADIUS,
    LOCAL_MAXIMUM_RADIUS,
    build_part_with_score_queue,
    decode_multiple_poses,
    decode_pose,
    get_instance_score,
    local_maximum_mask,
    traverse_to_target_keypoint,
    within_nms_radius_of_corresponding_point,
)
from .skeleton import (
    CONNECTED_PART_INDICES,
    CONNECTED_PART_NAMES,
    NUM_EDGES,
    NUM_KEYPOINTS,
    PART_IDS,
    PART_NAMES,
    POSE_CHAIN,
    PartIndex,
    get_adjacent_keypoints,
    get_valid_resolution,
    validate_topology,
)
from .types import Keypoint, PartWithScore, Pose, Position

__all__ = [
    "CONNECTED_PART_INDICES",
    "CONNECTED_PART_NAMES",
    "DEFAULT_NMS_RADIUS",
    "LOCAL_MAXIMUM_RADIUS",
    "NUM_EDGES",
    "NUM_KEYPOINTS",
    "PART_IDS",
    "PART_NAMES",
    "POSE_CHAIN",
    "Keypoint",
    "PartIndex",
    "PartWithScore",
    "Pose",
    "Position",
    "build_part_with_score_queue",
    "decode_multiple_poses",
    "decode_pose",
    "get_adjacent_keypoints",
    "get_instance_score",
    "get_valid_resolution",
    "local_maximum_mask",
    "traverse_to_target_keypoint",
    "validate_topology",
    "within_nms_radius_of_corresponding_point",
]
