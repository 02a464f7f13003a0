from __future__ import annotations

from dataclasses import dataclass
from typing import NamedTuple


class Color(NamedTuple):
    """RGBA display color, components in [0, 1]."""

    r: float
    g: float
    b: float
    a: float = 1.0

    @classmethod
    def from_rgb255(cls, rgb) -> Color:
        """Build a color from an (r, g, b) triple of 0-255 values."""
        r, g, b = rgb
        return cls(r / 255.0, g / 255.0, b / 255.0, 1.0)


DEFAULT_CLASS_COLOR = Color(0.0, 1.0, 1.0, 1.0)


@dataclass(frozen=True)
class YoloObject:
    """A detected object.

    Attributes:
        class_index: index of the most probable class
        class_conf: probability of that class, scaled by the box objectness
        class_label: display label of the class
        class_color: display color of the class
        box_left: left edge in detection network input pixels
        box_right: right edge
        box_top: top edge
        box_bottom: bottom edge
    """

    class_index: int
    class_conf: float
    class_label: str
    class_color: Color
    box_left: float
    box_right: float
    box_top: float
    box_bottom: float

    @property
    def width(self) -> float:
        return self.box_right - self.box_left + 1.0

    @property
    def height(self) -> float:
        return self.box_bottom - self.box_top + 1.0

    @property
    def area(self) -> float:
        """box area, counting edges as whole pixels (+1 on each side length)"""
        return self.width * self.height

    def describe(self) -> str:
        """one line summary, e.g. 'dog 87%, box(12, 40, 200, 310)'"""
        return (
            f"{self.class_label} {self.class_conf * 100:.0f}%, box({self.box_left:.0f}, "
            f"{self.box_top:.0f}, {self.box_right:.0f}, {self.box_bottom:.0f})"
        )
