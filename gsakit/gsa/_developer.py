#  GSAKit - Python client for Apple's GrandSlam Authentication service
#  Copyright (C) 2024  Cypheriel
"""Developer account lookup performed with the Xcode app token after authentication."""

from __future__ import annotations

import logging
import plistlib
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, Final, Self
from uuid import uuid4

from ._exceptions import ServerError, TransportFormatError
from ._responses import load_plist_dict
from ._transport import XCODE_APP_INFO, XCODE_VERSION

if TYPE_CHECKING:
    from collections.abc import Mapping

    from httpx import AsyncClient

    from ._session import Session

DEVELOPER_SERVICES_PROTOCOL: Final = "QH65B2"
DEVELOPER_SERVICES_CLIENT_ID: Final = "XABBG36SBA"
DEVELOPER_SERVICES_URL: Final = f"https://developerservices2.apple.com/services/{DEVELOPER_SERVICES_PROTOCOL}"

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Account:
    """A developer account, as returned by `viewDeveloper.action`."""

    apple_id: str
    identifier: str
    first_name: str
    last_name: str

    @property
    def name(self: Self) -> str:
        return f"{self.first_name} {self.last_name}".strip()

    @classmethod
    def from_dict(cls: type[Self], data: Mapping[str, Any]) -> Self:
        """
        Parse the `developer` dictionary.

        >>> Account.from_dict({"email": "a@b.c", "personId": 42, "firstName": "Ada", "lastName": "L"}).identifier
        '42'
        """
        apple_id = data.get("email")
        identifier = data.get("personId")
        if not isinstance(apple_id, str) or not isinstance(identifier, (int, str)):
            msg = "Developer account is missing `email` or `personId`."
            raise TransportFormatError(msg)

        return cls(
            apple_id=apple_id,
            identifier=str(identifier),
            first_name=data.get("firstName") or "",
            last_name=data.get("lastName") or "",
        )


class DeveloperServicesClient:
    """Minimal client for Apple's developer services, authenticated with an Xcode app token."""

    def __init__(self: Self, client: AsyncClient) -> None:
        self._client = client

    @staticmethod
    def _headers(session: Session) -> dict[str, str]:
        return {
            "Content-Type": "text/x-xml-plist",
            "Accept": "text/x-xml-plist",
            "Accept-Language": "en-us",
            "User-Agent": "Xcode",
            "X-Apple-App-Info": XCODE_APP_INFO,
            "X-Xcode-Version": XCODE_VERSION,
            "X-Apple-I-Identity-Id": session.dsid,
            "X-Apple-GS-Token": session.auth_token,
            **session.anisette_data.headers,
        }

    async def request(self: Self, action: str, session: Session) -> dict[str, Any]:
        """
        Send a developer services request.

        :param action: The action to call, such as `viewDeveloper.action`.
        :param session: The authenticated session.
        :return: The response dictionary.
        :raises ServerError: If the response carries a non-zero `resultCode`.
        """
        body = {
            "clientId": DEVELOPER_SERVICES_CLIENT_ID,
            "protocolVersion": DEVELOPER_SERVICES_PROTOCOL,
            "requestId": str(uuid4()).upper(),
            "userLocale": [session.anisette_data.locale],
        }

        response = await self._client.post(
            f"{DEVELOPER_SERVICES_URL}/{action}",
            params={"clientId": DEVELOPER_SERVICES_CLIENT_ID},
            content=plistlib.dumps(body),
            headers=self._headers(session),
        )
        logger.debug(f"{action} -> {response.status_code} {response.reason_phrase}")

        response_data = load_plist_dict(response.content)

        result_code = response_data.get("resultCode", 0)
        if result_code != 0:
            message = response_data.get("userString") or response_data.get("resultString")
            msg = f"Developer services request `{action}` failed."
            raise ServerError(msg, error_code=result_code, error_message=message)

        return response_data

    async def fetch_account(self: Self, session: Session) -> Account:
        """Fetch the developer account associated with `session`."""
        response_data = await self.request("viewDeveloper.action", session)

        developer = response_data.get("developer")
        if not isinstance(developer, dict):
            msg = "Developer services response is missing the `developer` dictionary."
            raise TransportFormatError(msg)

        account = Account.from_dict(developer)
        logger.info(f"Fetched developer account {account.identifier}.")
        return account
