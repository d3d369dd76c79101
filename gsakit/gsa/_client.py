#  GSAKit - Python client for Apple's GrandSlam Authentication service
#  Copyright (C) 2024  Cypheriel

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING, Final, Self

from httpx import AsyncClient

from ._context import GSAContext
from ._developer import DeveloperServicesClient
from ._exceptions import HandshakeFailedError, RequiresTwoFactorError, TransportFormatError
from ._responses import CompleteResponse, InitResponse, ServerProvidedData, load_plist_dict
from ._session import Session
from ._status import AUStatus, GSAResponseStatus
from ._token import fetch_app_token
from ._transport import GSATransport
from ._two_factor import SMSChallenge, TrustedDeviceChallenge, TwoFactorChallenge

if TYPE_CHECKING:
    from types import TracebackType

    from ..anisette import AnisetteData
    from ._developer import Account
    from ._two_factor import VerificationHandler

MAX_CHALLENGE_RESTARTS: Final = 1

CHALLENGES: Final[dict[AUStatus, type[TwoFactorChallenge]]] = {
    AUStatus.TRUSTED_DEVICE: TrustedDeviceChallenge,
    AUStatus.SMS: SMSChallenge,
}

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class _Handshake:
    context: GSAContext
    spd: ServerProvidedData
    status: GSAResponseStatus


class GSAClient:
    """
    Client for GrandSlam authentication.

    A single client may run several `authenticate()` calls concurrently; each call owns its own handshake state.
    """

    def __init__(self: Self, client: AsyncClient | None = None) -> None:
        """
        Initialize a new instance of the GSAClient class.

        :param client: The HTTP client to use. If omitted, the GSAClient creates and owns one.
        """
        self._owns_client = client is None
        self._client = client or AsyncClient(
            verify=False,  # noqa: S501
        )

        self._transport = GSATransport(self._client)
        self._developer_services = DeveloperServicesClient(self._client)

    async def __aenter__(self: Self) -> Self:
        return self

    async def __aexit__(
        self: Self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: TracebackType | None,
    ) -> None:
        await self.aclose()

    async def aclose(self: Self) -> None:
        if self._owns_client:
            await self._client.aclose()

    async def _perform_handshake(self: Self, apple_id: str, password: str, anisette_data: AnisetteData) -> _Handshake:
        """Run the `init`/`complete` SRP exchange and decrypt the server-provided data."""
        context = GSAContext(apple_id, password)

        try:
            public_key = context.start()
        except ValueError as e:
            msg = "Failed to generate the client's public ephemeral value."
            raise HandshakeFailedError(msg) from e

        client_info = anisette_data.client_info

        logger.info("Starting authentication with GrandSlam.")
        init_response = InitResponse.from_dict(
            await self._transport.request(
                {
                    "A2k": public_key,
                    "cpd": client_info,
                    "ps": ["s2k", "s2k_fo"],
                    "o": "init",
                    "u": apple_id,
                },
                anisette_data,
            ),
        )

        logger.debug(f"Server selected protocol {init_response.sp!r} with {init_response.iterations} iterations.")
        context.salt = init_response.salt
        context.server_public_key = init_response.server_public_key

        verification_message = context.make_verification_message(
            init_response.iterations,
            is_hexadecimal=init_response.is_hexadecimal,
        )

        logger.debug("Sending confirmation response with proof to GrandSlam.")
        complete_response = CompleteResponse.from_dict(
            await self._transport.request(
                {
                    "c": init_response.c,
                    "cpd": client_info,
                    "M1": verification_message,
                    "o": "complete",
                    "u": apple_id,
                },
                anisette_data,
            ),
        )

        if not context.verify_server_verification_message(complete_response.server_proof):
            msg = "Failed to verify user SRP session."
            raise HandshakeFailedError(msg)

        spd = ServerProvidedData.from_dict(
            load_plist_dict(context.decrypt_cbc(complete_response.spd), prepend_header=True),
        )
        context.dsid = spd.adsid

        return _Handshake(context, spd, complete_response.status)

    async def _exchange_token(self: Self, handshake: _Handshake, anisette_data: AnisetteData) -> Session:
        spd = handshake.spd
        if spd.session_key is None or spd.c is None:
            msg = "Server-provided data is missing `sk` or `c`."
            raise TransportFormatError(msg)

        handshake.context.session_key = spd.session_key
        token = await fetch_app_token(self._transport, handshake.context, anisette_data, spd.c, spd.idms_token)

        return Session(dsid=spd.adsid, auth_token=token, anisette_data=anisette_data)

    async def authenticate(
        self: Self,
        apple_id: str,
        password: str,
        anisette_data: AnisetteData,
        verification_handler: VerificationHandler | None = None,
    ) -> tuple[Account, Session]:
        """
        Authenticate with GrandSlam and fetch the associated developer account.

        If a second factor is required, `verification_handler` is called with a `VerificationRequest` that must be
        resolved with a code (or cancelled). Once the code is accepted, authentication starts over, as the server
        invalidates the original handshake when it poses a challenge.

        :param apple_id: The Apple ID. Authentication only works with the lowercase form.
        :param password: The account password.
        :param anisette_data: The anisette data to send with every request.
        :param verification_handler: Called when a verification code is needed.
        :return: The developer account and the authenticated session.
        :raises GrandSlamError: If any step fails.
        """
        apple_id = apple_id.lower()
        restarts = 0

        while True:
            handshake = await self._perform_handshake(apple_id, password, anisette_data)
            au_status = handshake.status.au_status

            match au_status:
                case AUStatus.TRUSTED_DEVICE | AUStatus.SMS:
                    logger.warning(f"Secondary authentication required ({au_status.value}).")

                    if verification_handler is None:
                        raise RequiresTwoFactorError

                    if restarts >= MAX_CHALLENGE_RESTARTS:
                        msg = "Server posed another challenge after a successful verification."
                        raise RequiresTwoFactorError(msg)

                    challenge = CHALLENGES[au_status](self._transport, handshake.spd.identity_token, anisette_data)
                    await challenge.run(verification_handler)

                    restarts += 1
                    logger.info("Verification succeeded. Restarting authentication.")
                    continue

                case AUStatus.UNKNOWN:
                    logger.warning(f"Unknown authentication status {handshake.status.au!r}. Assuming complete.")

                case AUStatus.COMPLETE:
                    logger.info("Authentication complete.")

            session = await self._exchange_token(handshake, anisette_data)
            account = await self._developer_services.fetch_account(session)

            return account, session
