#  GSAKit - Python client for Apple's GrandSlam Authentication service
#  Copyright (C) 2024  Cypheriel
from __future__ import annotations

from logging import getLogger
from typing import Final

from httpx import AsyncClient, HTTPError

from ._data import AnisetteData
from .exceptions import AnisetteFetchError

DEFAULT_ANISETTE_SERVER: Final = "https://ani.sidestore.io"

logger = getLogger(__name__)


async def fetch_anisette_data(url: str = DEFAULT_ANISETTE_SERVER, client: AsyncClient | None = None) -> AnisetteData:
    """
    Fetch anisette data from a remote anisette server.

    The server is expected to answer a plain GET with a JSON dictionary of anisette headers, as omnisette and
    SideStore's anisette servers do.

    :param url: The anisette server to query.
    :param client: The HTTP client to use. A temporary client is created if omitted.
    :raises AnisetteFetchError: If the request fails or the response is not a JSON dictionary.
    :raises MissingAnisetteHeadersError: If required headers are absent from the response.
    """
    owns_client = client is None
    if client is None:
        client = AsyncClient()

    try:
        response = await client.get(url)
    except HTTPError as e:
        raise AnisetteFetchError(url, str(e)) from e
    finally:
        if owns_client:
            await client.aclose()

    if response.is_error:
        raise AnisetteFetchError(url, f"HTTP {response.status_code}")

    try:
        response_data = response.json()
    except ValueError as e:
        raise AnisetteFetchError(url, "response is not valid JSON") from e

    if not isinstance(response_data, dict):
        raise AnisetteFetchError(url, f"expected a JSON object, got {type(response_data).__name__}")

    logger.debug(f"Received anisette headers: {sorted(response_data)}")
    return AnisetteData.from_headers(response_data)
