"""netdecode: decoding of pose and object detection network outputs."""

from netdecode.version import version_str

__version__ = version_str()
