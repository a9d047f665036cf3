"""
Exception types shared across the board.
"""


class LocusError(Exception):
    """Base class for board errors."""
    pass


class ScanError(LocusError):
    """A memory file could not be read; the whole scan is aborted."""
    pass


class SyncError(LocusError):
    """Loading issues from GitHub failed."""
    pass


class AuthRequired(LocusError, PermissionError):
    """A write was attempted without a GitHub credential."""

    def __init__(self, message: str = "Sign in with GitHub to move cards."):
        super().__init__(message)


class TokenExchangeError(LocusError):
    """The OAuth code could not be exchanged for an access token."""
    pass
