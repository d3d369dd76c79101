#  GSAKit - Python client for Apple's GrandSlam Authentication service
#  Copyright (C) 2024  Cypheriel
from __future__ import annotations

from typing import Self


class GrandSlamError(Exception):
    """Base exception for errors raised during a GrandSlam operation."""

    default_message = "GrandSlam operation failed."

    def __init__(
        self: Self,
        message: str = "",
        error_code: int | None = None,
        error_message: str | None = None,
    ) -> None:
        self.error_code = error_code
        self.error_message = error_message

        status_message = ""
        if error_code is not None:
            status_message = f" ({error_code}: {error_message or 'Error message not supplied.'})"

        super().__init__(f"{message or self.default_message}{status_message}")


class HandshakeFailedError(GrandSlamError):
    """The SRP handshake could not be completed, or the server proof did not match."""

    default_message = "Authentication handshake failed."


class TransportFormatError(GrandSlamError):
    """A response was malformed or missing required fields."""

    default_message = "Received a malformed response from the server."


class IncorrectCredentialsError(GrandSlamError):
    """The Apple ID or password was rejected."""

    default_message = "Incorrect Apple ID or password."


class InvalidAnisetteDataError(GrandSlamError):
    """The device attestation (anisette) data was rejected."""

    default_message = "Apple rejected the anisette data. Please re-provision this device."


class RequiresTwoFactorError(GrandSlamError):
    """Two-factor authentication is required but no verification code was provided."""

    default_message = "Two-factor authentication is required."


class IncorrectVerificationCodeError(GrandSlamError):
    """The two-factor verification code was rejected."""

    default_message = "Incorrect verification code."


class ServerError(GrandSlamError):
    """The server reported an error with no more specific mapping."""

    default_message = "The server returned an error."
