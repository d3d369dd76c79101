#  GSAKit - Python client for Apple's GrandSlam Authentication service
#  Copyright (C) 2024  Cypheriel
from typing import TypedDict

AnisetteHeaders = TypedDict(
    "AnisetteHeaders",
    {
        "X-Apple-I-MD-M": str,
        "X-Apple-I-MD": str,
        "X-Apple-I-MD-LU": str,
        "X-Apple-I-MD-RINFO": str,
        "X-Mme-Device-Id": str,
        "X-MMe-Client-Info": str,
        "X-Apple-I-Client-Time": str,
        "X-Apple-Locale": str,
        "X-Apple-I-TimeZone": str,
    },
)

ClientInfo = TypedDict(
    "ClientInfo",
    {
        "bootstrap": bool,
        "icscrec": bool,
        "pbe": bool,
        "prkgen": bool,
        "svct": str,
        "loc": str,
        "X-Apple-I-MD-M": str,
        "X-Apple-I-MD": str,
        "X-Apple-I-MD-LU": str,
        "X-Apple-I-MD-RINFO": str,
        "X-Mme-Device-Id": str,
        "X-Apple-I-Client-Time": str,
        "X-Apple-Locale": str,
        "X-Apple-I-TimeZone": str,
        "X-Apple-I-SRL-NO": str,
    },
)
