#  GSAKit - Python client for Apple's GrandSlam Authentication service
#  Copyright (C) 2024  Cypheriel
"""Mapping of GrandSlam status blocks onto exceptions."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import StrEnum
from typing import TYPE_CHECKING, Any, Final, Self

from ._exceptions import (
    GrandSlamError,
    IncorrectCredentialsError,
    IncorrectVerificationCodeError,
    InvalidAnisetteDataError,
    ServerError,
    TransportFormatError,
)

if TYPE_CHECKING:
    from collections.abc import Mapping

APPLE_INCORRECT_CREDENTIALS_ERROR: Final = -20101
APPLE_INCORRECT_PASSWORD_ERROR: Final = -22406
APPLE_REJECT_DEVICE_ERROR: Final = -22421
APPLE_INCORRECT_VERIFICATION_CODE_ERROR: Final = -21669

STATUS_ERRORS: Final[Mapping[int, type[GrandSlamError]]] = {
    APPLE_INCORRECT_CREDENTIALS_ERROR: IncorrectCredentialsError,
    APPLE_INCORRECT_PASSWORD_ERROR: IncorrectCredentialsError,
    APPLE_REJECT_DEVICE_ERROR: InvalidAnisetteDataError,
}

# Two-factor validation only distinguishes a rejected code.
VALIDATE_STATUS_ERRORS: Final[Mapping[int, type[GrandSlamError]]] = {
    APPLE_INCORRECT_VERIFICATION_CODE_ERROR: IncorrectVerificationCodeError,
}

logger = logging.getLogger(__name__)


class AUStatus(StrEnum):
    UNKNOWN = "UNKNOWN"
    TRUSTED_DEVICE = "trustedDeviceSecondaryAuth"
    SMS = "secondaryAuth"
    COMPLETE = "COMPLETE"

    @classmethod
    def _missing_(cls: type[Self], _value: object) -> AUStatus:
        return cls.UNKNOWN


@dataclass(frozen=True)
class GSAResponseStatus:
    status_code: int
    status_message: str | None = None
    au: str | None = None

    @property
    def is_success(self: Self) -> bool:
        return self.status_code == 0

    @property
    def au_status(self: Self) -> AUStatus:
        return AUStatus.COMPLETE if self.au is None else AUStatus(self.au)

    @classmethod
    def from_dict(cls: type[Self], response: Mapping[str, Any]) -> Self:
        """
        Read the status block of a response.

        Two-factor validation responses carry `ec`/`em` at the top level rather than under `Status`.

        >>> GSAResponseStatus.from_dict({"Status": {"ec": -20101, "em": "Nope"}}).status_code
        -20101
        >>> GSAResponseStatus.from_dict({}).is_success
        True
        """
        status = response.get("Status", response)
        if not isinstance(status, dict):
            msg = "Response status block is not a dictionary."
            raise TransportFormatError(msg)

        status_code = status.get("ec", 0)
        if not isinstance(status_code, int):
            msg = f"Response status code is not an integer: {status_code!r}"
            raise TransportFormatError(msg)

        status_message = status.get("em")
        au = status.get("au")

        return cls(
            status_code,
            status_message if isinstance(status_message, str) else None,
            au if isinstance(au, str) else None,
        )


def raise_for_status(
    status: GSAResponseStatus,
    errors: Mapping[int, type[GrandSlamError]] = STATUS_ERRORS,
) -> None:
    """
    Raise the exception matching a non-zero status code.

    :param status: The status block to check.
    :param errors: The code-to-exception table of the endpoint that produced `status`.
    :raises GrandSlamError: The mapped exception, or `ServerError` for codes missing from `errors`.
    """
    if status.is_success:
        return

    error_type = errors.get(status.status_code, ServerError)
    logger.debug(f"Mapped status {status.status_code} ({status.status_message}) to {error_type.__name__}.")

    raise error_type(error_code=status.status_code, error_message=status.status_message)
