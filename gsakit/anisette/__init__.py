#  GSAKit - Python client for Apple's GrandSlam Authentication service
#  Copyright (C) 2024  Cypheriel
"""Package containing the device attestation ("anisette") data model and a remote anisette provider."""

from ._data import AnisetteData
from ._remote import DEFAULT_ANISETTE_SERVER, fetch_anisette_data

__all__ = [
    "DEFAULT_ANISETTE_SERVER",
    "AnisetteData",
    "fetch_anisette_data",
]
