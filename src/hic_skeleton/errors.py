class SkeletonError(Exception):
    """Base class for errors raised while building interaction skeletons"""


class FormatError(SkeletonError, ValueError):
    """An input row could not be parsed or mapped onto the bin grid"""


class MissingCoordinateError(FormatError):
    """A matrix bin id has no entry in the coordinate table"""


class EmptyWindowSetError(SkeletonError):
    """No full-width window could be placed on the chromosome"""


class DegenerateVectorError(SkeletonError):
    """Every window of a chromosome was dropped by the zero-median filter"""
