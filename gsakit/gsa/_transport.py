#  GSAKit - Python client for Apple's GrandSlam Authentication service
#  Copyright (C) 2024  Cypheriel
from __future__ import annotations

import logging
import plistlib
from base64 import b64encode
from typing import TYPE_CHECKING, Any, Final, Self

from httpx import AsyncClient, Response

from ._exceptions import TransportFormatError
from ._responses import load_plist_dict
from ._status import GSAResponseStatus, raise_for_status

if TYPE_CHECKING:
    from ..anisette import AnisetteData

GSA_BASE_URL: Final = "https://gsa.apple.com"
GSA_SERVICE_URL: Final = f"{GSA_BASE_URL}/grandslam/GsService2"

GSA_PROTOCOL_VERSION: Final = "1.0.1"
GSA_USER_AGENT: Final = "akd/1.0 CFNetwork/978.0.7 Darwin/18.7.0"

XCODE_APP_INFO: Final = "com.apple.gs.xcode.auth"
XCODE_VERSION: Final = "11.2 (11B41)"

logger = logging.getLogger(__name__)


def two_factor_headers(identity_token: str, anisette_data: AnisetteData) -> dict[str, str]:
    """
    Build the headers shared by all two-factor requests.

    :param identity_token: The `dsid:idmsToken` pair, which is sent base64-encoded.
    :param anisette_data: The anisette data of the current attempt.
    """
    return {
        "Accept": "application/x-buddyml",
        "Accept-Language": "en-us",
        "Content-Type": "application/x-plist",
        "User-Agent": "Xcode",
        "X-Apple-App-Info": XCODE_APP_INFO,
        "X-Xcode-Version": XCODE_VERSION,
        "X-Apple-Identity-Token": b64encode(identity_token.encode()).decode(),
        **anisette_data.headers,
    }


class GSATransport:
    """Sends requests to GrandSlam and unwraps the property list envelope of its responses."""

    def __init__(self: Self, client: AsyncClient) -> None:
        self._client = client

    async def request(self: Self, parameters: dict[str, Any], anisette_data: AnisetteData) -> dict[str, Any]:
        """
        Send a request to the GrandSlam service.

        :param parameters: The step-specific fields of the `Request` dictionary.
        :param anisette_data: The anisette data of the current attempt.
        :return: The `Response` dictionary.
        :raises GrandSlamError: If the response is malformed or carries a non-zero status code.
        """
        payload = {
            "Header": {"Version": GSA_PROTOCOL_VERSION},
            "Request": parameters,
        }

        headers = {
            "Content-Type": "text/x-xml-plist",
            "X-MMe-Client-Info": anisette_data.device_description,
            "Accept": "*/*",
            "User-Agent": GSA_USER_AGENT,
        }

        logger.debug(f"Sending GrandSlam `{parameters.get('o')}` request.")
        response = await self._client.post(GSA_SERVICE_URL, content=plistlib.dumps(payload), headers=headers)
        logger.debug(f"{response.http_version} {response.status_code} {response.reason_phrase}")

        response_data = load_plist_dict(response.content).get("Response")
        if not isinstance(response_data, dict) or not isinstance(response_data.get("Status"), dict):
            msg = f"GrandSlam response is missing its `Response` or `Status` dictionary (HTTP {response.status_code})."
            raise TransportFormatError(msg)

        raise_for_status(GSAResponseStatus.from_dict(response_data))

        return response_data

    async def get(self: Self, url: str, headers: dict[str, str]) -> Response:
        response = await self._client.get(url, headers=headers)
        logger.debug(f"GET {url} -> {response.status_code} {response.reason_phrase}")
        return response

    async def post(self: Self, url: str, body: dict[str, Any], headers: dict[str, str]) -> Response:
        response = await self._client.post(url, content=plistlib.dumps(body), headers=headers)
        logger.debug(f"POST {url} -> {response.status_code} {response.reason_phrase}")
        return response
