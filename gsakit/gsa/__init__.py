#  GSAKit - Python client for Apple's GrandSlam Authentication service
#  Copyright (C) 2024  Cypheriel
"""Package containing a client implementation for Apple's GrandSlam Authentication (GSA) service."""

from ._client import MAX_CHALLENGE_RESTARTS, GSAClient
from ._context import GSAContext
from ._developer import Account, DeveloperServicesClient
from ._exceptions import (
    GrandSlamError,
    HandshakeFailedError,
    IncorrectCredentialsError,
    IncorrectVerificationCodeError,
    InvalidAnisetteDataError,
    RequiresTwoFactorError,
    ServerError,
    TransportFormatError,
)
from ._session import Session
from ._status import AUStatus
from ._two_factor import VerificationHandler, VerificationKind, VerificationRequest

__all__ = [
    "MAX_CHALLENGE_RESTARTS",
    "AUStatus",
    "Account",
    "DeveloperServicesClient",
    "GSAClient",
    "GSAContext",
    "GrandSlamError",
    "HandshakeFailedError",
    "IncorrectCredentialsError",
    "IncorrectVerificationCodeError",
    "InvalidAnisetteDataError",
    "RequiresTwoFactorError",
    "ServerError",
    "Session",
    "TransportFormatError",
    "VerificationHandler",
    "VerificationKind",
    "VerificationRequest",
]
