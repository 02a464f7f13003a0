"""YOLOv2 object detection decoding."""

from .metadata import TINY_YOLO_V2_ANCHORS, YoloMetadata, load_metadata
from .types import DEFAULT_CLASS_COLOR, Color, YoloObject
from .yolo2 import (
    DEFAULT_OVERLAP_THRESHOLD,
    DEFAULT_THRESHOLD,
    detect_objects,
    estimate_boxes,
    overlap_ratio,
    select_objects,
    sigmoid,
    softmax,
    suppress,
)

__all__ = [
    "DEFAULT_CLASS_COLOR",
    "DEFAULT_OVERLAP_THRESHOLD",
    "DEFAULT_THRESHOLD",
    "TINY_YOLO_V2_ANCHORS",
    "Color",
    "YoloMetadata",
    "YoloObject",
    "detect_objects",
    "estimate_boxes",
    "load_metadata",
    "overlap_ratio",
    "select_objects",
    "sigmoid",
    "softmax",
    "suppress",
]
