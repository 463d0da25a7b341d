"""Exception classes for the FrameStag engine."""


class FrameStagError(Exception):
    """Base exception for FrameStag errors."""

    pass


class ResourceInitError(FrameStagError):
    """Raised when the rendering device or its resources cannot be created."""

    pass


class ProgramCompileError(FrameStagError):
    """Raised when a transform program fails to compile or link."""

    def __init__(self, message: str, source: str = ""):
        super().__init__(message)
        self.source = source


class InvalidParameterError(FrameStagError, ValueError):
    """Raised for stage or kernel parameters outside their valid range."""

    pass


class ReadbackError(FrameStagError):
    """Raised when the rendered output cannot be read back."""

    pass
