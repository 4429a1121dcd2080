"""
Pipeline Errors

Every error raised by the compositing pipeline derives from FrameFlowError,
so collaborators can catch one type per composite or per export.
"""


class FrameFlowError(Exception):
    """Base class for pipeline errors"""
    pass


class DecodeError(FrameFlowError):
    """Raised when an input image cannot be decoded or loaded"""
    pass


class SinkError(FrameFlowError):
    """Raised when a finished image cannot be delivered"""
    pass


class TemplateNotFoundError(FrameFlowError, KeyError):
    """Raised when a template id or slug is not in the library"""

    def __str__(self) -> str:
        return Exception.__str__(self)
