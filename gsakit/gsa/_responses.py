#  GSAKit - Python client for Apple's GrandSlam Authentication service
#  Copyright (C) 2024  Cypheriel
"""Schemas for the responses of each GrandSlam step, validated as they are received."""

from __future__ import annotations

import plistlib
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, Final, Self, TypeVar
from xml.parsers.expat import ExpatError

from ._exceptions import TransportFormatError
from ._status import GSAResponseStatus

if TYPE_CHECKING:
    from collections.abc import Mapping

APPLE_PLIST_HEADER: Final = (
    b"<?xml version='1.0' encoding='UTF-8'?>\n"
    b"<!DOCTYPE plist PUBLIC '-//Apple//DTD PLIST 1.0//EN' 'https://www.apple.com/DTDs/PropertyList-1.0.dtd'>"
)

HEXADECIMAL_PROTOCOL: Final = "s2k_fo"

_T = TypeVar("_T")


def _require(data: Mapping[str, Any], key: str, expected_type: type[_T], step: str) -> _T:
    value = data.get(key)
    if not isinstance(value, expected_type):
        msg = f"{step} response is missing `{key}` ({expected_type.__name__})."
        raise TransportFormatError(msg)

    return value


def load_plist_dict(data: bytes, *, prepend_header: bool = False) -> dict[str, Any]:
    """
    Parse a property list that must contain a dictionary at its root.

    Decrypted server payloads are sent without an XML prolog, which `plistlib` needs to detect the format.

    :raises TransportFormatError: If the data is not a property list dictionary.
    """
    if prepend_header and not data.lstrip().startswith(b"<?xml"):
        data = APPLE_PLIST_HEADER + data

    try:
        result = plistlib.loads(data)
    except (ExpatError, ValueError) as e:
        msg = "Response body is not a valid property list."
        raise TransportFormatError(msg) from e

    if not isinstance(result, dict):
        msg = f"Expected a property list dictionary, got {type(result).__name__}."
        raise TransportFormatError(msg)

    return result


@dataclass(frozen=True)
class InitResponse:
    """Response to the `init` step: the server's SRP challenge."""

    c: str
    salt: bytes
    iterations: int
    server_public_key: bytes
    sp: str | None = None

    @property
    def is_hexadecimal(self: Self) -> bool:
        return self.sp == HEXADECIMAL_PROTOCOL

    @classmethod
    def from_dict(cls: type[Self], data: Mapping[str, Any]) -> Self:
        sp = data.get("sp")
        return cls(
            c=_require(data, "c", str, "init"),
            salt=_require(data, "s", bytes, "init"),
            iterations=_require(data, "i", int, "init"),
            server_public_key=_require(data, "B", bytes, "init"),
            sp=sp if isinstance(sp, str) else None,
        )


@dataclass(frozen=True)
class CompleteResponse:
    """Response to the `complete` step: the server proof and the encrypted server-provided data."""

    server_proof: bytes
    spd: bytes
    status: GSAResponseStatus

    @classmethod
    def from_dict(cls: type[Self], data: Mapping[str, Any]) -> Self:
        server_proof = _require(data, "M2", bytes, "complete")
        spd = _require(data, "spd", bytes, "complete")
        _require(data, "Status", dict, "complete")

        return cls(server_proof, spd, GSAResponseStatus.from_dict(data))


@dataclass(frozen=True)
class ServerProvidedData:
    """The decrypted `spd` dictionary."""

    adsid: str
    idms_token: str
    session_key: bytes | None = None
    c: bytes | None = None

    @property
    def identity_token(self: Self) -> str:
        """The `dsid:idmsToken` pair, as sent (base64-encoded) in two-factor requests."""
        return f"{self.adsid}:{self.idms_token}"

    @classmethod
    def from_dict(cls: type[Self], data: Mapping[str, Any]) -> Self:
        session_key = data.get("sk")
        c = data.get("c")

        return cls(
            adsid=_require(data, "adsid", str, "Server-provided data"),
            idms_token=_require(data, "GsIdmsToken", str, "Server-provided data"),
            session_key=session_key if isinstance(session_key, bytes) else None,
            c=c if isinstance(c, bytes) else None,
        )


@dataclass(frozen=True)
class AppTokensResponse:
    """Response to the `apptokens` step."""

    encrypted_token: bytes

    @classmethod
    def from_dict(cls: type[Self], data: Mapping[str, Any]) -> Self:
        return cls(_require(data, "et", bytes, "apptokens"))


def app_token_from_dict(data: Mapping[str, Any], app: str) -> str:
    """
    Extract an application token from the decrypted `et` dictionary.

    >>> app_token_from_dict({"t": {"com.example": {"token": "abc"}}}, "com.example")
    'abc'
    """
    tokens = _require(data, "t", dict, "apptokens")
    app_tokens = _require(tokens, app, dict, "apptokens")
    return _require(app_tokens, "token", str, "apptokens")
