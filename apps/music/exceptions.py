from __future__ import annotations


class DataUnavailable(Exception):
    """Raised when listening history or a profile could not be fetched."""


class InvalidProfileState(Exception):
    """Raised when an external profile has no artists and no genre weights."""

    def __init__(self, message: str = "Profile has no artists and no genre data.", *, source: str = "") -> None:
        super().__init__(message)
        self.source = source


class SpotifyAPIError(Exception):
    """Raised when the Spotify Web API fails."""

    def __init__(self, message: str, *, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code
