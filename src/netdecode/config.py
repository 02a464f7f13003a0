"""Decoder parameters and JSON configuration loading.

A configuration file holds an optional section per decoder; missing sections and
keys fall back to the defaults below:

    {
        "pose": {"output_stride": 16, "max_pose_detections": 15,
                 "score_threshold": 0.1, "nms_radius": 20},
        "detection": {"threshold": 0.25, "overlap_threshold": 0.3,
                      "symmetric_scaling": false}
    }
"""

import json
import logging
from dataclasses import asdict, dataclass, field, replace
from pathlib import Path
from typing import Any

import jsonschema

logger = logging.getLogger(__name__)

VALID_OUTPUT_STRIDES = (8, 16, 32)

CONFIG_SCHEMA = {
    "type": "object",
    "properties": {
        "pose": {
            "type": "object",
            "properties": {
                "output_stride": {"enum": list(VALID_OUTPUT_STRIDES)},
                "max_pose_detections": {"type": "integer", "minimum": 0},
                "score_threshold": {"type": "number", "minimum": 0, "maximum": 1},
                "nms_radius": {"type": "number", "minimum": 0},
            },
            "additionalProperties": False,
        },
        "detection": {
            "type": "object",
            "properties": {
                "threshold": {"type": "number", "minimum": 0, "maximum": 1},
                "overlap_threshold": {"type": "number", "minimum": 0},
                "symmetric_scaling": {"type": "boolean"},
            },
            "additionalProperties": False,
        },
    },
    "additionalProperties": False,
}


@dataclass(frozen=True)
class PoseDecoderConfig:
    """Parameters for decode_multiple_poses."""

    output_stride: int = 16
    max_pose_detections: int = 15
    score_threshold: float = 0.1
    nms_radius: float = 20

    def __post_init__(self):
        if self.output_stride not in VALID_OUTPUT_STRIDES:
            raise ValueError(
                f"output_stride must be one of {VALID_OUTPUT_STRIDES}, got {self.output_stride}"
            )


@dataclass(frozen=True)
class DetectionDecoderConfig:
    """Parameters for detect_objects."""

    threshold: float = 0.25
    overlap_threshold: float = 0.3
    symmetric_scaling: bool = False


@dataclass(frozen=True)
class DecoderConfig:
    """Parameters for both decoders."""

    pose: PoseDecoderConfig = field(default_factory=PoseDecoderConfig)
    detection: DetectionDecoderConfig = field(default_factory=DetectionDecoderConfig)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "DecoderConfig":
        """build a config from a parsed configuration document

        Raises:
            ValueError: if the document doesn't match CONFIG_SCHEMA
        """
        try:
            jsonschema.validate(data, CONFIG_SCHEMA)
        except jsonschema.ValidationError as e:
            raise ValueError(f"Invalid decoder config: {e.message}") from e

        return cls(
            pose=PoseDecoderConfig(**data.get("pose", {})),
            detection=DetectionDecoderConfig(**data.get("detection", {})),
        )

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)

    def with_overrides(self, section: str, **overrides) -> "DecoderConfig":
        """return a copy with some values of one section replaced, None values are ignored"""
        overrides = {k: v for k, v in overrides.items() if v is not None}
        if not overrides:
            return self
        return replace(self, **{section: replace(getattr(self, section), **overrides)})


def load_config(path: Path) -> DecoderConfig:
    """load decoder parameters from a JSON file"""
    path = Path(path)
    with path.open() as f:
        data = json.load(f)

    config = DecoderConfig.from_dict(data)
    logger.debug("loaded decoder config from %s: %s", path, config)
    return config
