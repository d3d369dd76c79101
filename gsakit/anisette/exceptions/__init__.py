#  GSAKit - Python client for Apple's GrandSlam Authentication service
#  Copyright (C) 2024  Cypheriel
"""Exceptions raised while obtaining anisette data."""


class AnisetteError(Exception):
    """Base exception for anisette errors."""


class AnisetteFetchError(AnisetteError):
    """Exception raised when a remote anisette server request fails."""

    def __init__(self, url: str, reason: str) -> None:
        """Initialize the exception with the server URL and the failure reason."""
        self.url = url
        super().__init__(f"Failed to fetch anisette data from <{url}>: {reason}")


class MissingAnisetteHeadersError(AnisetteError):
    """Exception raised when anisette data lacks required headers."""

    def __init__(self, missing: set[str]) -> None:
        """Initialize the exception with the names of the missing headers."""
        self.missing = missing
        super().__init__(f"Anisette data is missing required headers: {', '.join(sorted(missing))}")
