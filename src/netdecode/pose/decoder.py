"""Multi-person pose decoding.

Turns the four PoseNet output tensors into a list of poses:

* scores: part heatmaps, (1, H, W, 17)
* offsets: sub-cell offset vectors, (1, H, W, 34), y components in channels
  0-16 and x components in channels 17-33
* displacements_fwd / displacements_bwd: parent->child and child->parent
  displacement vectors, (1, H, W, 32), y components in channels 0-15 and x
  components in channels 16-31

Decoding is greedy. Local maxima of the heatmaps become root candidates and are
visited from the highest score down. A candidate that lands within the NMS
radius of the same part of an already decoded pose is dropped, otherwise a whole
pose is grown from it by following the displacement vectors along the pose
chain.

Part positions are propagated with nearest-neighbor lookups: a point is snapped
to the closest heatmap cell and the displacement and offset vectors at that cell
are used as-is, without bilinear interpolation between cells. This trades some
sub-cell precision for a much cheaper decode.
"""

import logging
from collections.abc import Sequence

import numpy as np

from netdecode.core import PriorityQueue, TensorView, greedy_select

from .skeleton import (
    CHILD_TO_PARENT_EDGES,
    NUM_EDGES,
    NUM_KEYPOINTS,
    PARENT_TO_CHILD_EDGES,
    PART_NAMES,
)
from .types import Keypoint, PartWithScore, Pose, Position

logger = logging.getLogger(__name__)

LOCAL_MAXIMUM_RADIUS = 1
DEFAULT_NMS_RADIUS = 20


def local_maximum_mask(scores: np.ndarray, radius: int = LOCAL_MAXIMUM_RADIUS) -> np.ndarray:
    """find the cells that are a maximum within their local window

    A cell is a local maximum if no cell of the same channel within `radius`
    rows and columns has a strictly greater score. Cells that tie with a
    neighbor are still maxima. The window is clipped at the heatmap border.

    Args:
        scores: heatmaps of shape (H, W, C)
        radius: half size of the (2 * radius + 1) square window

    Returns:
        boolean array of shape (H, W, C)
    """
    padded = np.pad(
        scores,
        ((radius, radius), (radius, radius), (0, 0)),
        mode="constant",
        constant_values=-np.inf,
    )
    window = 2 * radius + 1
    # shape (H, W, C, window, window)
    windows = np.lib.stride_tricks.sliding_window_view(padded, (window, window), axis=(0, 1))
    return scores >= windows.max(axis=(-2, -1))


def build_part_with_score_queue(
    score_threshold: float,
    local_maximum_radius: int,
    scores,
) -> PriorityQueue[PartWithScore]:
    """collect the root candidates for pose decoding

    Every (row, col, part) cell with a score of at least `score_threshold` that is
    a local maximum for its part is pushed on a max-priority queue keyed by its
    score. Cells are pushed in row, column, part order so equal scores pop in that
    order.

    Args:
        score_threshold: minimum part score for a root candidate
        local_maximum_radius: radius of the local maximum window
        scores: part heatmaps, (1, H, W, C) array-like or TensorView

    Returns:
        queue of PartWithScore candidates
    """
    heatmaps = TensorView.wrap(scores, "scores").frame
    mask = (heatmaps >= score_threshold) & local_maximum_mask(heatmaps, local_maximum_radius)

    queue: PriorityQueue[PartWithScore] = PriorityQueue()
    for heatmap_y, heatmap_x, part_id in zip(*np.nonzero(mask), strict=True):
        score = float(heatmaps[heatmap_y, heatmap_x, part_id])
        queue.push(score, PartWithScore(score, int(heatmap_y), int(heatmap_x), int(part_id)))

    logger.debug("harvested %d root candidates", len(queue))
    return queue


def squared_distance(y1: float, x1: float, y2: float, x2: float) -> float:
    dy = y2 - y1
    dx = x2 - x1
    return dy * dy + dx * dx


def get_offset_point(y: int, x: int, keypoint_id: int, offsets: TensorView) -> Position:
    """offset vector for a part at a heatmap cell"""
    return Position(
        x=offsets.get(y, x, keypoint_id + NUM_KEYPOINTS),
        y=offsets.get(y, x, keypoint_id),
    )


def get_image_coords(part: PartWithScore, output_stride: int, offsets: TensorView) -> Position:
    """convert a heatmap cell to a point in network input pixel space"""
    offset = get_offset_point(part.heatmap_y, part.heatmap_x, part.part_id, offsets)
    return Position(
        x=part.heatmap_x * output_stride + offset.x,
        y=part.heatmap_y * output_stride + offset.y,
    )


def get_strided_index_near_point(
    point: Position, output_stride: int, height: int, width: int
) -> tuple[int, int]:
    """snap a point to the nearest heatmap cell

    Returns:
        (row, col) of the cell, clamped to the heatmap bounds
    """
    col = min(max(round(point.x / output_stride), 0), width - 1)
    row = min(max(round(point.y / output_stride), 0), height - 1)
    return row, col


def get_displacement(edge_id: int, row: int, col: int, displacements: TensorView) -> Position:
    """displacement vector along an edge of the pose chain at a heatmap cell"""
    num_edges = displacements.channels // 2
    return Position(
        x=displacements.get(row, col, num_edges + edge_id),
        y=displacements.get(row, col, edge_id),
    )


def traverse_to_target_keypoint(
    edge_id: int,
    source_keypoint: Keypoint,
    target_keypoint_id: int,
    scores: TensorView,
    offsets: TensorView,
    output_stride: int,
    displacements: TensorView,
) -> Keypoint:
    """locate the target part of an edge given the position of its source part

    The displacement vector stored for `edge_id` at the cell nearest the source
    point is followed to a displaced point. The target part's score and offset
    are then read at the cell nearest that displaced point.
    """
    height = scores.height
    width = scores.width

    source_row, source_col = get_strided_index_near_point(
        source_keypoint.position, output_stride, height, width
    )
    displacement = get_displacement(edge_id, source_row, source_col, displacements)
    displaced_point = Position(
        x=source_keypoint.position.x + displacement.x,
        y=source_keypoint.position.y + displacement.y,
    )

    row, col = get_strided_index_near_point(displaced_point, output_stride, height, width)
    offset = get_offset_point(row, col, target_keypoint_id, offsets)
    score = scores.get(row, col, target_keypoint_id)

    return Keypoint(
        score=score,
        position=Position(x=col * output_stride + offset.x, y=row * output_stride + offset.y),
        part=PART_NAMES[target_keypoint_id],
    )


def decode_pose(
    root: PartWithScore,
    scores: TensorView,
    offsets: TensorView,
    output_stride: int,
    displacements_fwd: TensorView,
    displacements_bwd: TensorView,
) -> list[Keypoint]:
    """grow a full set of keypoints from a root part

    The backward displacements are followed up the pose chain first (edges in
    reverse order, child to parent), then the forward displacements down the
    chain (edges in order, parent to child). A part is only used as a source once
    it has a non-zero score, and only parts that still have a zero score are
    filled in.

    Returns:
        one Keypoint per skeleton part. Parts that could not be reached keep a
        score of 0 and position (0, 0).
    """
    instance_keypoints = [
        Keypoint(score=0.0, position=Position(0.0, 0.0), part=name) for name in PART_NAMES
    ]
    instance_keypoints[root.part_id] = Keypoint(
        score=root.score,
        position=get_image_coords(root, output_stride, offsets),
        part=PART_NAMES[root.part_id],
    )

    for edge in range(NUM_EDGES - 1, -1, -1):
        source_id = PARENT_TO_CHILD_EDGES[edge]
        target_id = CHILD_TO_PARENT_EDGES[edge]
        if instance_keypoints[source_id].score > 0.0 and instance_keypoints[target_id].score == 0.0:
            instance_keypoints[target_id] = traverse_to_target_keypoint(
                edge,
                instance_keypoints[source_id],
                target_id,
                scores,
                offsets,
                output_stride,
                displacements_bwd,
            )

    for edge in range(NUM_EDGES):
        source_id = CHILD_TO_PARENT_EDGES[edge]
        target_id = PARENT_TO_CHILD_EDGES[edge]
        if instance_keypoints[source_id].score > 0.0 and instance_keypoints[target_id].score == 0.0:
            instance_keypoints[target_id] = traverse_to_target_keypoint(
                edge,
                instance_keypoints[source_id],
                target_id,
                scores,
                offsets,
                output_stride,
                displacements_fwd,
            )

    return instance_keypoints


def within_nms_radius_of_corresponding_point(
    poses: Sequence[Pose], squared_nms_radius: float, point: Position, keypoint_id: int
) -> bool:
    """check if a point is within the NMS radius of the same part of any pose"""
    return any(
        squared_distance(
            point.y,
            point.x,
            pose.keypoints[keypoint_id].position.y,
            pose.keypoints[keypoint_id].position.x,
        )
        <= squared_nms_radius
        for pose in poses
    )


def get_instance_score(
    existing_poses: Sequence[Pose],
    squared_nms_radius: float,
    instance_keypoints: Sequence[Keypoint],
) -> float:
    """score a new pose instance

    The scores of keypoints that fall within the NMS radius of the same part of
    an existing pose are left out, the rest are summed and divided by the total
    number of parts. Poses decoded earlier are therefore scored against fewer
    competitors than later ones.
    """
    not_overlapped_scores = sum(
        keypoint.score
        for keypoint_id, keypoint in enumerate(instance_keypoints)
        if not within_nms_radius_of_corresponding_point(
            existing_poses, squared_nms_radius, keypoint.position, keypoint_id
        )
    )
    return not_overlapped_scores / len(instance_keypoints)


def decode_multiple_poses(
    scores,
    offsets,
    displacements_fwd,
    displacements_bwd,
    output_stride: int,
    max_pose_detections: int,
    score_threshold: float,
    nms_radius: float = DEFAULT_NMS_RADIUS,
) -> list[Pose]:
    """decode the poses of multiple people from PoseNet outputs

    Args:
        scores: part heatmaps, (1, H, W, 17)
        offsets: offset vectors, (1, H, W, 34)
        displacements_fwd: forward displacement vectors, (1, H, W, 32)
        displacements_bwd: backward displacement vectors, (1, H, W, 32)
        output_stride: downsampling factor between the network input and outputs
        max_pose_detections: maximum number of poses to return
        score_threshold: minimum root part score
        nms_radius: a root candidate within this many pixels of the same part of a
            previously decoded pose is rejected

    Returns:
        poses in the order they were found, which is not necessarily sorted by
        pose score

    Raises:
        TensorShapeError: if the tensors don't have the expected layout
        ValueError: if output_stride is not positive
    """
    if output_stride <= 0:
        raise ValueError(f"output_stride must be positive, got {output_stride}")

    scores = TensorView.wrap(scores, "scores")
    offsets = TensorView.wrap(offsets, "offsets")
    displacements_fwd = TensorView.wrap(displacements_fwd, "displacements_fwd")
    displacements_bwd = TensorView.wrap(displacements_bwd, "displacements_bwd")

    scores.require_channels(NUM_KEYPOINTS)
    offsets.require_channels(2 * NUM_KEYPOINTS)
    displacements_fwd.require_channels(2 * NUM_EDGES)
    displacements_bwd.require_channels(2 * NUM_EDGES)
    for tensor in (offsets, displacements_fwd, displacements_bwd):
        tensor.require_spatial(scores)

    squared_nms_radius = float(nms_radius) * nms_radius
    queue = build_part_with_score_queue(score_threshold, LOCAL_MAXIMUM_RADIUS, scores)

    def root_conflicts(root: PartWithScore, poses: Sequence[Pose]) -> bool:
        # part-based non-maximum suppression
        root_coords = get_image_coords(root, output_stride, offsets)
        if within_nms_radius_of_corresponding_point(
            poses, squared_nms_radius, root_coords, root.part_id
        ):
            logger.debug(
                "rejected %s root at (%d, %d), score %.3f",
                PART_NAMES[root.part_id],
                root.heatmap_y,
                root.heatmap_x,
                root.score,
            )
            return True
        return False

    def grow_pose(root: PartWithScore, poses: Sequence[Pose]) -> Pose:
        keypoints = decode_pose(
            root, scores, offsets, output_stride, displacements_fwd, displacements_bwd
        )
        return Pose(
            keypoints=tuple(keypoints),
            score=get_instance_score(poses, squared_nms_radius, keypoints),
        )

    poses = greedy_select(
        (root for _, root in queue.drain()),
        root_conflicts,
        accept=grow_pose,
        limit=max_pose_detections,
    )

    logger.debug("decoded %d poses", len(poses))
    return poses
