"""Primitives shared by the pose and detection decoders."""

from .exceptions import DecodeError, MetadataError, TensorShapeError, TopologyError
from .greedy import greedy_select
from .priority_queue import PriorityQueue
from .tensor import TensorView

__all__ = [
    "DecodeError",
    "MetadataError",
    "PriorityQueue",
    "TensorShapeError",
    "TensorView",
    "TopologyError",
    "greedy_select",
]
