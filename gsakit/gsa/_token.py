#  GSAKit - Python client for Apple's GrandSlam Authentication service
#  Copyright (C) 2024  Cypheriel
from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Final

from ._responses import AppTokensResponse, app_token_from_dict, load_plist_dict

if TYPE_CHECKING:
    from ..anisette import AnisetteData
    from ._context import GSAContext
    from ._transport import GSATransport

XCODE_APP: Final = "com.apple.gs.xcode.auth"

logger = logging.getLogger(__name__)


async def fetch_app_token(
    transport: GSATransport,
    context: GSAContext,
    anisette_data: AnisetteData,
    c: bytes,
    idms_token: str,
    app: str = XCODE_APP,
) -> str:
    """
    Exchange an authenticated GrandSlam session for an application token.

    :param transport: The transport of the current attempt.
    :param context: The attempt's context, with `session_key` and `dsid` set.
    :param anisette_data: The anisette data of the current attempt.
    :param c: The continuation token from the server-provided data.
    :param idms_token: The `GsIdmsToken` from the server-provided data.
    :param app: The application to request a token for.
    :return: The application token.
    """
    checksum = context.make_checksum(app)

    response = await transport.request(
        {
            "app": [app],
            "c": c,
            "checksum": checksum,
            "cpd": anisette_data.client_info,
            "o": "apptokens",
            "t": idms_token,
            "u": context.dsid,
        },
        anisette_data,
    )

    encrypted_token = AppTokensResponse.from_dict(response).encrypted_token
    tokens = load_plist_dict(context.decrypt_gcm(encrypted_token), prepend_header=True)

    token = app_token_from_dict(tokens, app)
    logger.info(f"Received app token for {app}.")
    return token
