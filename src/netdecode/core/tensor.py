"""Read-only view over a single-batch NHWC network output tensor."""

from __future__ import annotations

import numpy as np

from .exceptions import TensorShapeError


class TensorView:
    """Strided accessor for a 4-D float tensor laid out as [batch, row, col, channel].

    Network runtimes hand back their outputs as dense arrays with a leading batch
    dimension. The decoders only ever process one image at a time, so the batch
    dimension must be exactly 1. All element reads go through `get`, which keeps
    bounds checking in one place.

    Args:
        data: array-like of shape (1, height, width, channels)
        name: name used in error messages

    Raises:
        TensorShapeError: if data is not 4-D or the batch size is not 1
    """

    def __init__(self, data, name: str = "tensor"):
        array = np.asarray(data, dtype=np.float32)
        if array.ndim != 4:
            raise TensorShapeError(
                f"{name} must have 4 dimensions (batch, row, col, channel), got shape {array.shape}"
            )
        if array.shape[0] != 1:
            raise TensorShapeError(f"{name} must have a batch size of 1, got {array.shape[0]}")

        self._name = name
        self._shape: tuple[int, int, int, int] = tuple(int(d) for d in array.shape)
        self._buffer = np.ascontiguousarray(array).reshape(-1)
        _, height, width, channels = self._shape
        self._strides = (height * width * channels, width * channels, channels, 1)

    @classmethod
    def wrap(cls, data, name: str = "tensor") -> TensorView:
        """Return data unchanged if it is already a TensorView, otherwise build a new view."""
        if isinstance(data, TensorView):
            return data
        return cls(data, name)

    @property
    def name(self) -> str:
        return self._name

    @property
    def shape(self) -> tuple[int, int, int, int]:
        return self._shape

    @property
    def height(self) -> int:
        return self._shape[1]

    @property
    def width(self) -> int:
        return self._shape[2]

    @property
    def channels(self) -> int:
        return self._shape[3]

    def get(self, row: int, col: int, channel: int) -> float:
        """get a single element of the (only) batch entry

        Args:
            row: row index, 0 <= row < height
            col: column index, 0 <= col < width
            channel: channel index, 0 <= channel < channels

        Returns:
            element value as a Python float

        Raises:
            IndexError: if any index is out of range
        """
        if not (0 <= row < self.height and 0 <= col < self.width and 0 <= channel < self.channels):
            raise IndexError(
                f"index ({row}, {col}, {channel}) out of range for {self._name} "
                f"with shape {self._shape}"
            )
        _, row_stride, col_stride, _ = self._strides
        return float(self._buffer[row * row_stride + col * col_stride + channel])

    @property
    def frame(self) -> np.ndarray:
        """read-only (H, W, C) array view of the single batch entry"""
        view = self._buffer.reshape(self._shape)[0]
        view.flags.writeable = False
        return view

    def to_array(self) -> np.ndarray:
        """Return a copy of the underlying data as a (1, H, W, C) float32 array."""
        return self._buffer.reshape(self._shape).copy()

    def require_channels(self, expected: int) -> None:
        """Raise TensorShapeError unless this tensor has exactly `expected` channels."""
        if self.channels != expected:
            raise TensorShapeError(
                f"{self._name} must have {expected} channels, got {self.channels}"
            )

    def require_spatial(self, other: TensorView) -> None:
        """Raise TensorShapeError unless this tensor has the same height and width as `other`."""
        if (self.height, self.width) != (other.height, other.width):
            raise TensorShapeError(
                f"{self._name} spatial size {(self.height, self.width)} does not match "
                f"{other.name} spatial size {(other.height, other.width)}"
            )

    def __repr__(self) -> str:
        return f"TensorView(name={self._name!r}, shape={self._shape})"
