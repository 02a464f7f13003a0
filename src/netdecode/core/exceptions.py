class DecodeError(Exception):
    """Base class for errors raised while decoding network outputs."""

    pass


class TensorShapeError(DecodeError, ValueError):
    """Exception raised when an input tensor's layout doesn't match the declared part, edge, box or class counts."""

    pass


class TopologyError(DecodeError):
    """Exception raised when the skeleton tables reference unknown parts or are inconsistent with each other."""

    pass


class MetadataError(DecodeError, ValueError):
    """Exception raised when a detection model's metadata file is missing fields or has invalid values."""

    pass
