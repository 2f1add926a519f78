class ArError(Exception):
    """Base class for ar codec errors."""


class CorruptArchiveError(ArError):
    """The byte stream does not follow the ar format."""

    def __init__(self, reason: str):
        self.reason = reason
        super().__init__(f"corrupt archive: {reason}")


class FeatureNotImplementedError(ArError, NotImplementedError):
    """The archive is well formed but uses something this codec does not support."""

    def __init__(self, feature: str):
        self.feature = feature
        super().__init__(f"feature not implemented: {feature}")


class UnexpectedEOFError(ArError):
    """The stream ended in the middle of a structure.

    Not an EOFError: a clean end of stream and a truncated archive must stay
    distinguishable for callers.
    """

    def __init__(self, message: str = "unexpected end of stream"):
        super().__init__(message)


class NoActiveEntryError(ArError):
    def __init__(self, message: str = "no active entry"):
        super().__init__(message)
