#  GSAKit - Python client for Apple's GrandSlam Authentication service
#  Copyright (C) 2024  Cypheriel
from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from ..anisette import AnisetteData


@dataclass(frozen=True)
class Session:
    """An authenticated session: the account's DSID and an app token, bound to the anisette data used to get it."""

    dsid: str
    auth_token: str = field(repr=False)
    anisette_data: AnisetteData = field(repr=False)
