"""YOLOv2 output decoding.

The detection network predicts, for every cell of a grid_height x grid_width grid
and each of num_boxes anchor boxes, a vector of 5 + num_classes values:

    tx, ty, tw, th, objectness, class logit 0, ..., class logit C-1

Decoding happens in three steps:

1. `estimate_boxes` turns the raw activations into normalized box geometry and
   objectness-weighted class probabilities.
2. `select_objects` keeps the boxes whose best class probability passes a
   threshold and converts them to labeled boxes in network input pixels.
3. `suppress` removes overlapping boxes.

`detect_objects` runs all three steps for a model described by YoloMetadata.
"""

import logging
from collections.abc import Sequence
from operator import attrgetter

import numpy as np

from netdecode.core import MetadataError, TensorShapeError, TensorView, greedy_select

from .metadata import YoloMetadata
from .types import DEFAULT_CLASS_COLOR, Color, YoloObject

logger = logging.getLogger(__name__)

BOX_PARAMS = 5

DEFAULT_THRESHOLD = 0.25
DEFAULT_OVERLAP_THRESHOLD = 0.3


def sigmoid(x):
    return 1.0 / (1.0 + np.exp(-x))


def softmax(logits, axis: int = -1) -> np.ndarray:
    """softmax over one axis, stabilized by subtracting the running maximum

    The maximum used for stabilization starts at 0.0 rather than at the first
    logit, so for all-negative logits 0.0 is subtracted instead of the true
    maximum. The result is the same softmax, only the numerical headroom differs.
    Rows whose logits are so negative that every exponential underflows to 0 are
    recomputed against their true maximum.

    Args:
        logits: array of logits
        axis: axis to normalize over

    Returns:
        float64 array of probabilities that sum to 1 along `axis`
    """
    logits = np.asarray(logits, dtype=np.float64)
    class_max = np.max(logits, axis=axis, keepdims=True, initial=0.0)
    exps = np.exp(logits - class_max)
    sums = np.sum(exps, axis=axis, keepdims=True)

    underflow = sums == 0.0
    if np.any(underflow):
        true_max = np.max(logits, axis=axis, keepdims=True)
        rows = np.broadcast_to(underflow, exps.shape)
        exps = np.where(rows, np.exp(logits - true_max), exps)
        sums = np.sum(exps, axis=axis, keepdims=True)

    return exps / sums


def estimate_boxes(
    raw_output,
    anchors: Sequence[float],
    grid_height: int,
    grid_width: int,
    num_boxes: int,
    num_classes: int,
) -> tuple[np.ndarray, np.ndarray]:
    """decode raw YOLOv2 activations into box predictions and class probabilities

    Args:
        raw_output: network output, (1, grid_height, grid_width, num_boxes * (5 + num_classes))
        anchors: flat list of anchor priors, (width, height) per box, in grid cells
        grid_height: number of grid rows
        grid_width: number of grid columns
        num_boxes: anchor boxes per grid cell
        num_classes: number of object classes

    Returns:
        tuple of:
            box_predictions: (grid_height, grid_width, num_boxes, 5) array of
                center x, center y, width, height (all normalized to [0, 1] image
                units) and objectness
            class_probabilities: (grid_height, grid_width, num_boxes, num_classes + 1)
                array of class probabilities multiplied by objectness. The last
                channel holds the index of the most probable class, or -1 if no
                class has a probability above 0.

    Raises:
        TensorShapeError: if the output or anchors don't match the grid, box and
            class counts
    """
    if num_boxes < 1 or num_classes < 1:
        raise ValueError(
            f"num_boxes and num_classes must be positive, got {num_boxes} and {num_classes}"
        )

    output = TensorView.wrap(raw_output, "output")
    if (output.height, output.width) != (grid_height, grid_width):
        raise TensorShapeError(
            f"output grid {(output.height, output.width)} does not match "
            f"expected grid {(grid_height, grid_width)}"
        )
    box_len = BOX_PARAMS + num_classes
    output.require_channels(num_boxes * box_len)

    anchors = np.asarray(anchors, dtype=np.float32).reshape(-1)
    if anchors.size != 2 * num_boxes:
        raise TensorShapeError(
            f"expected {2 * num_boxes} anchor values for {num_boxes} boxes, got {anchors.size}"
        )

    values = output.frame.reshape(grid_height, grid_width, num_boxes, box_len)
    cols = np.arange(grid_width, dtype=np.float32)[np.newaxis, :, np.newaxis]
    rows = np.arange(grid_height, dtype=np.float32)[:, np.newaxis, np.newaxis]

    box_pred = np.empty((grid_height, grid_width, num_boxes, BOX_PARAMS), dtype=np.float32)
    box_pred[..., 0] = (cols + sigmoid(values[..., 0])) / grid_width
    box_pred[..., 1] = (rows + sigmoid(values[..., 1])) / grid_height
    box_pred[..., 2] = np.exp(values[..., 2]) * anchors[0::2] / grid_width
    box_pred[..., 3] = np.exp(values[..., 3]) * anchors[1::2] / grid_height
    box_pred[..., 4] = sigmoid(values[..., 4])

    probabilities = softmax(values[..., BOX_PARAMS:]) * box_pred[..., 4:5]

    # strict comparison against a running maximum that starts at 0: the first
    # index wins ties, and a box with no positive probability gets -1
    best = np.argmax(probabilities, axis=-1)
    best_prob = np.take_along_axis(probabilities, best[..., np.newaxis], axis=-1)[..., 0]
    best = np.where(best_prob > 0.0, best, -1)

    class_prob = np.empty((grid_height, grid_width, num_boxes, num_classes + 1), dtype=np.float32)
    class_prob[..., :num_classes] = probabilities
    class_prob[..., num_classes] = best

    return box_pred, class_prob


def select_objects(
    box_predictions: np.ndarray,
    class_probabilities: np.ndarray,
    labels: Sequence[str] | None,
    colors: Sequence[Color] | None,
    threshold: float,
    image_width: float,
    image_height: float,
    symmetric_scaling: bool = False,
) -> list[YoloObject]:
    """select boxes whose best class probability reaches the threshold

    Box edges are the box center -/+ half its size, clamped at 0 and scaled from
    normalized units to pixels. By default the left, right and top edges are
    scaled by `image_width` and only the bottom edge by `image_height`, the legacy
    scaling existing detection clients expect. Both agree for square network inputs.
    Pass `symmetric_scaling=True` to scale x edges by width and y edges by height.

    Args:
        box_predictions: box geometry from estimate_boxes
        class_probabilities: class probabilities from estimate_boxes
        labels: class labels, or None/empty to use "Class {index}"
        colors: class display colors, or None/empty to use DEFAULT_CLASS_COLOR
        threshold: minimum class probability
        image_width: network input width in pixels
        image_height: network input height in pixels
        symmetric_scaling: scale y edges by image_height

    Returns:
        detected objects in grid row, column, box order

    Raises:
        TensorShapeError: if the two arrays don't describe the same boxes
        MetadataError: if labels or colors are given but don't cover every class
    """
    box_predictions = np.asarray(box_predictions)
    class_probabilities = np.asarray(class_probabilities)
    if box_predictions.ndim != 4 or box_predictions.shape[-1] != BOX_PARAMS:
        raise TensorShapeError(
            f"box_predictions must have shape (H, W, B, {BOX_PARAMS}), got {box_predictions.shape}"
        )
    if class_probabilities.ndim != 4 or class_probabilities.shape[:3] != box_predictions.shape[:3]:
        raise TensorShapeError(
            f"class_probabilities shape {class_probabilities.shape} does not match "
            f"box_predictions shape {box_predictions.shape}"
        )

    num_classes = class_probabilities.shape[-1] - 1
    # labels and colors may be numpy arrays, so test their length rather than truthiness
    labels = [str(label) for label in labels] if labels is not None and len(labels) > 0 else []
    colors = (
        [Color(*(float(v) for v in color)) for color in colors]
        if colors is not None and len(colors) > 0
        else []
    )
    if labels and len(labels) < num_classes:
        raise MetadataError(f"{len(labels)} class labels given for {num_classes} classes")
    if colors and len(colors) < num_classes:
        raise MetadataError(f"{len(colors)} class colors given for {num_classes} classes")

    max_index = class_probabilities[..., num_classes].astype(np.int64)
    valid = (max_index >= 0) & (max_index < num_classes)
    conf = np.take_along_axis(
        class_probabilities, np.where(valid, max_index, 0)[..., np.newaxis], axis=-1
    )[..., 0]
    selected = valid & (conf >= threshold)

    y_scale_top = image_height if symmetric_scaling else image_width

    objects = []
    for row, col, box in zip(*np.nonzero(selected), strict=True):
        class_index = int(max_index[row, col, box])
        center_x, center_y, width, height = (float(v) for v in box_predictions[row, col, box, :4])

        objects.append(
            YoloObject(
                class_index=class_index,
                class_conf=float(conf[row, col, box]),
                class_label=labels[class_index] if labels else f"Class {class_index}",
                class_color=colors[class_index] if colors else DEFAULT_CLASS_COLOR,
                box_left=max(0.0, center_x - width * 0.5) * image_width,
                box_right=max(0.0, center_x + width * 0.5) * image_width,
                box_top=max(0.0, center_y - height * 0.5) * y_scale_top,
                box_bottom=max(0.0, center_y + height * 0.5) * image_height,
            )
        )

    return objects


def overlap_ratio(accepted: YoloObject, other: YoloObject) -> float:
    """intersection of two boxes divided by the area of `accepted` (not the union)

    Uses the pixel-inclusive convention: a box from 0 to 10 spans 11 pixels.
    """
    x1 = max(other.box_left, accepted.box_left)
    y1 = max(other.box_top, accepted.box_top)
    x2 = min(other.box_right, accepted.box_right)
    y2 = min(other.box_bottom, accepted.box_bottom)

    intersection_w = max(0.0, x2 - x1 + 1.0)
    intersection_h = max(0.0, y2 - y1 + 1.0)
    return (intersection_w * intersection_h) / accepted.area


def suppress(objects: Sequence[YoloObject], overlap_threshold: float) -> list[YoloObject]:
    """greedy non-max suppression

    Repeatedly accepts the remaining object with the largest box_bottom and drops
    every other object whose overlap_ratio with it exceeds overlap_threshold. Ties
    on box_bottom keep their input order, so running suppress on its own output
    returns it unchanged.

    Args:
        objects: candidate objects, not modified
        overlap_threshold: maximum allowed overlap ratio

    Returns:
        kept objects, largest box_bottom first
    """
    ordered = sorted(objects, key=attrgetter("box_bottom"), reverse=True)

    def overlaps_accepted(candidate: YoloObject, accepted: Sequence[YoloObject]) -> bool:
        return any(overlap_ratio(obj, candidate) > overlap_threshold for obj in accepted)

    return greedy_select(ordered, overlaps_accepted)


def detect_objects(
    raw_output,
    metadata: YoloMetadata,
    threshold: float = DEFAULT_THRESHOLD,
    overlap_threshold: float = DEFAULT_OVERLAP_THRESHOLD,
    symmetric_scaling: bool = False,
) -> list[YoloObject]:
    """run the full decode for one network output

    Args:
        raw_output: network output, (1, grid_height, grid_width, channels)
        metadata: model description (grid, anchors, classes, input size)
        threshold: minimum class probability
        overlap_threshold: suppression overlap threshold
        symmetric_scaling: see select_objects

    Returns:
        detected objects after suppression
    """
    box_pred, class_prob = estimate_boxes(
        raw_output,
        metadata.anchors,
        metadata.grid_height,
        metadata.grid_width,
        metadata.num_boxes,
        metadata.num_classes,
    )
    candidates = select_objects(
        box_pred,
        class_prob,
        metadata.labels,
        metadata.colors,
        threshold,
        float(metadata.input_width),
        float(metadata.input_height),
        symmetric_scaling=symmetric_scaling,
    )
    objects = suppress(candidates, overlap_threshold)

    logger.debug("found %d objects (%d before suppression)", len(objects), len(candidates))
    for obj in objects:
        logger.debug(obj.describe())

    return objects
