"""Exceptions raised by panewatch."""


class PanewatchError(Exception):
    """Base class for panewatch errors."""


class SessionNotFoundError(PanewatchError):
    """No conversation log or thread exists for the requested pane.

    Distinct from a session that exists but is idle.
    """

    def __init__(self, message: str, path: str | None = None):
        super().__init__(message)
        self.path = path
