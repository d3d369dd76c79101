#  GSAKit - Python client for Apple's GrandSlam Authentication service
#  Copyright (C) 2024  Cypheriel
"""Trusted device and SMS second-factor challenges."""

from __future__ import annotations

import asyncio
import logging
from abc import ABC, abstractmethod
from collections.abc import Awaitable, Callable
from enum import StrEnum
from typing import TYPE_CHECKING, Final, Self, TypeAlias

from .._util.aio import maybe_await
from ._exceptions import IncorrectVerificationCodeError, RequiresTwoFactorError
from ._responses import load_plist_dict
from ._status import VALIDATE_STATUS_ERRORS, GSAResponseStatus, raise_for_status
from ._transport import GSA_BASE_URL, GSA_SERVICE_URL, two_factor_headers

if TYPE_CHECKING:
    from ..anisette import AnisetteData
    from ._transport import GSATransport

GSA_TRUSTED_DEVICE_URL: Final = f"{GSA_BASE_URL}/auth/verify/trusteddevice"
GSA_VALIDATE_2FA_URL: Final = f"{GSA_SERVICE_URL}/validate"
GSA_SMS_REQUEST_URL: Final = f"{GSA_BASE_URL}/auth/verify/phone/put?mode=sms"
GSA_SMS_VALIDATE_URL: Final = f"{GSA_BASE_URL}/auth/verify/phone/securitycode?referrer=/auth/verify/phone/put"

SMS_PHONE_NUMBER_ID: Final = "1"
PE_TOKEN_HEADER: Final = "X-Apple-PE-Token"

logger = logging.getLogger(__name__)


class VerificationKind(StrEnum):
    TRUSTED_DEVICE = "trusted-device"
    SMS = "sms"


class VerificationRequest:
    """
    A pending request for a two-factor verification code.

    The verification handler receives this object and resolves it, either right away or later from another task,
    with `submit(code)` or `cancel()`. Authentication stays suspended until it is resolved.
    """

    def __init__(self: Self, kind: VerificationKind) -> None:
        self.kind = kind
        self._future: asyncio.Future[str | None] = asyncio.get_running_loop().create_future()

    @property
    def done(self: Self) -> bool:
        return self._future.done()

    def submit(self: Self, code: str) -> None:
        """Provide the verification code."""
        if not self._future.done():
            self._future.set_result(code)

    def cancel(self: Self) -> None:
        """Signal that no code is available, aborting authentication."""
        if not self._future.done():
            self._future.set_result(None)

    async def wait(self: Self) -> str | None:
        return await asyncio.shield(self._future)


VerificationHandler: TypeAlias = Callable[[VerificationRequest], Awaitable[None] | None]


class TwoFactorChallenge(ABC):
    """A second-factor challenge: `initiate()` sends the code to the user, `submit()` validates it."""

    kind: VerificationKind

    def __init__(
        self: Self,
        transport: GSATransport,
        identity_token: str,
        anisette_data: AnisetteData,
    ) -> None:
        self._transport = transport
        self._headers = two_factor_headers(identity_token, anisette_data)

    @abstractmethod
    async def initiate(self: Self) -> None:
        """Ask Apple to deliver a verification code."""

    @abstractmethod
    async def submit(self: Self, code: str) -> None:
        """
        Validate a verification code.

        :raises IncorrectVerificationCodeError: If the code was rejected.
        """

    async def run(self: Self, handler: VerificationHandler) -> None:
        """
        Initiate the challenge, obtain a code through `handler`, and submit it.

        :raises RequiresTwoFactorError: If the handler cancels the request.
        """
        await self.initiate()

        request = VerificationRequest(self.kind)
        await maybe_await(handler(request))

        code = await request.wait()
        if code is None:
            msg = "No verification code was provided."
            raise RequiresTwoFactorError(msg)

        await self.submit(code)


class TrustedDeviceChallenge(TwoFactorChallenge):
    kind = VerificationKind.TRUSTED_DEVICE

    async def initiate(self: Self) -> None:
        logger.info("Requesting a verification code on trusted devices.")
        # The response is an HTML form meant for a web view.
        await self._transport.get(GSA_TRUSTED_DEVICE_URL, self._headers)

    async def submit(self: Self, code: str) -> None:
        response = await self._transport.get(GSA_VALIDATE_2FA_URL, self._headers | {"security-code": code})

        status = GSAResponseStatus.from_dict(load_plist_dict(response.content))
        raise_for_status(status, VALIDATE_STATUS_ERRORS)

        logger.info("Trusted device verification code accepted.")


class SMSChallenge(TwoFactorChallenge):
    kind = VerificationKind.SMS

    async def initiate(self: Self) -> None:
        logger.info("Requesting a verification code by SMS.")
        await self._transport.post(
            GSA_SMS_REQUEST_URL,
            {"serverInfo": {"phoneNumber.id": SMS_PHONE_NUMBER_ID}},
            self._headers,
        )

    async def submit(self: Self, code: str) -> None:
        response = await self._transport.post(
            GSA_SMS_VALIDATE_URL,
            {
                "securityCode.code": code,
                "serverInfo": {"mode": "sms", "phoneNumber.id": SMS_PHONE_NUMBER_ID},
            },
            self._headers,
        )

        # Success is only signalled by the PE token header; the body is not a status dictionary.
        if response.status_code != 200 or PE_TOKEN_HEADER not in response.headers:  # noqa: PLR2004
            raise IncorrectVerificationCodeError

        logger.info("SMS verification code accepted.")
