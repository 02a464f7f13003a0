"""YOLOv2 model metadata.

Detection models are shipped with a JSON ".meta" file next to the network graph
(the format written by darkflow). Only the fields needed to decode the output
tensor are read:

    {
        "inp_size": [416, 416, 3],
        "out_size": [13, 13, 425],
        "num": 5,
        "classes": 80,
        "anchors": [0.57273, 0.677385, ...],
        "labels": ["person", "bicycle", ...],
        "colors": [[254, 254, 254], [239, 211, 127], ...]
    }
"""

import json
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Any

import jsonschema

from netdecode.core import MetadataError

from .types import Color

logger = logging.getLogger(__name__)

# anchor priors of the yolov2-tiny COCO model, (width, height) per box in grid cells
TINY_YOLO_V2_ANCHORS = (
    0.57273,
    0.677385,
    1.87446,
    2.06253,
    3.33843,
    5.47434,
    7.88282,
    3.52778,
    9.77052,
    9.16828,
)

METADATA_SCHEMA = {
    "type": "object",
    "properties": {
        "inp_size": {
            "type": "array",
            "items": {"type": "integer", "minimum": 1},
            "minItems": 2,
        },
        "out_size": {
            "type": "array",
            "items": {"type": "integer", "minimum": 1},
            "minItems": 2,
        },
        "num": {"type": "integer", "minimum": 1},
        "classes": {"type": "integer", "minimum": 1},
        "anchors": {"type": "array", "items": {"type": "number"}},
        "labels": {"type": "array", "items": {"type": "string"}},
        "colors": {
            "type": "array",
            "items": {
                "type": "array",
                "items": {"type": "number", "minimum": 0, "maximum": 255},
                "minItems": 3,
                "maxItems": 4,
            },
        },
    },
    "required": ["inp_size", "out_size", "num", "classes", "anchors"],
}


@dataclass(frozen=True)
class YoloMetadata:
    """Static description of a YOLOv2 detection model.

    Attributes:
        input_width: network input width in pixels
        input_height: network input height in pixels
        grid_width: output grid columns
        grid_height: output grid rows
        num_boxes: anchor boxes per grid cell
        num_classes: number of object classes
        anchors: flat (width, height) anchor priors, 2 * num_boxes values
        labels: class labels, empty if the model has none
        colors: class display colors, empty if the model has none
    """

    input_width: int
    input_height: int
    grid_width: int
    grid_height: int
    num_boxes: int
    num_classes: int
    anchors: tuple[float, ...]
    labels: tuple[str, ...] = ()
    colors: tuple[Color, ...] = ()

    def __post_init__(self):
        """Validate the anchor and class table sizes."""
        if len(self.anchors) != 2 * self.num_boxes:
            raise MetadataError(
                f"expected {2 * self.num_boxes} anchor values for {self.num_boxes} boxes, "
                f"got {len(self.anchors)}"
            )
        if self.labels and len(self.labels) != self.num_classes:
            raise MetadataError(
                f"expected {self.num_classes} class labels, got {len(self.labels)}"
            )
        if self.colors and len(self.colors) != self.num_classes:
            raise MetadataError(
                f"expected {self.num_classes} class colors, got {len(self.colors)}"
            )

    @property
    def output_channels(self) -> int:
        """number of channels in the network output tensor"""
        return self.num_boxes * (5 + self.num_classes)

    @classmethod
    def default(cls) -> "YoloMetadata":
        """metadata of the yolov2-tiny COCO model, without labels or colors"""
        return cls(
            input_width=416,
            input_height=416,
            grid_width=13,
            grid_height=13,
            num_boxes=5,
            num_classes=80,
            anchors=TINY_YOLO_V2_ANCHORS,
        )

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "YoloMetadata":
        """build metadata from a parsed .meta document

        Raises:
            MetadataError: if the document doesn't match METADATA_SCHEMA or its
                tables are inconsistent
        """
        try:
            jsonschema.validate(data, METADATA_SCHEMA)
        except jsonschema.ValidationError as e:
            raise MetadataError(f"Invalid model metadata: {e.message}") from e

        return cls(
            input_width=data["inp_size"][0],
            input_height=data["inp_size"][1],
            grid_width=data["out_size"][0],
            grid_height=data["out_size"][1],
            num_boxes=data["num"],
            num_classes=data["classes"],
            anchors=tuple(float(a) for a in data["anchors"]),
            labels=tuple(data.get("labels", ())),
            colors=tuple(Color.from_rgb255(c[:3]) for c in data.get("colors", ())),
        )


def load_metadata(path: Path) -> YoloMetadata:
    """read a model's .meta JSON file

    Args:
        path: path to the metadata file

    Returns:
        parsed model metadata

    Raises:
        MetadataError: if the file is not valid JSON or doesn't describe a model
    """
    path = Path(path)
    try:
        data = json.loads(path.read_text())
    except json.JSONDecodeError as e:
        raise MetadataError(f"{path} is not a valid JSON file: {e}") from e

    metadata = YoloMetadata.from_dict(data)
    logger.debug(
        "loaded %s: input %dx%d, grid %dx%d, %d boxes, %d classes",
        path.name,
        metadata.input_width,
        metadata.input_height,
        metadata.grid_width,
        metadata.grid_height,
        metadata.num_boxes,
        metadata.num_classes,
    )
    return metadata
