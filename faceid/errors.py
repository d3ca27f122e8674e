"""Error taxonomy for gallery loading and per-frame recognition."""
from __future__ import annotations


class FaceIdError(Exception):
    """Base class for all errors raised by this package."""


class GalleryLoadError(FaceIdError):
    """The gallery source is unreachable or malformed. Fatal to starting a session."""


class DetectionError(FaceIdError):
    """A single frame's detector call failed. Recovered on the next tick."""


class DetectionTimeout(DetectionError):
    """The detector did not answer within the configured bound."""


class MalformedDescriptor(FaceIdError):
    """A candidate produced no usable finite descriptor components."""
