#  GSAKit - Python client for Apple's GrandSlam Authentication service
#  Copyright (C) 2024  Cypheriel
from __future__ import annotations

from dataclasses import dataclass, field
from datetime import UTC, datetime
from logging import getLogger
from typing import TYPE_CHECKING, Any, Final, Self
from uuid import uuid4

from .exceptions import MissingAnisetteHeadersError

if TYPE_CHECKING:
    from collections.abc import Mapping

    from ._types import AnisetteHeaders, ClientInfo

DEFAULT_DEVICE_DESCRIPTION: Final = (
    "<MacBookPro13,2> <macOS;13.1;22C65> <com.apple.AuthKit/1 (com.apple.dt.Xcode/3594.4.19)>"
)
DEFAULT_LOCALE: Final = "en_US"
DEFAULT_TIME_ZONE: Final = "UTC"

REQUIRED_HEADERS: Final = frozenset({"X-Apple-I-MD-M", "X-Apple-I-MD"})

logger = getLogger(__name__)


def format_client_time(date: datetime) -> str:
    """
    Format a timestamp the way Apple expects in `X-Apple-I-Client-Time`.

    >>> format_client_time(datetime(2024, 1, 2, 3, 4, 5, 678, tzinfo=UTC))
    '2024-01-02T03:04:05Z'
    """
    return date.astimezone(UTC).replace(microsecond=0, tzinfo=None).isoformat() + "Z"


def _parse_client_time(value: str | None) -> datetime:
    if not value:
        return datetime.now(tz=UTC)

    try:
        return datetime.fromisoformat(value.replace("Z", "+00:00"))
    except ValueError:
        logger.warning(f"Ignoring unparseable client time {value!r}.")
        return datetime.now(tz=UTC)


@dataclass(frozen=True, kw_only=True)
class AnisetteData:
    """Device attestation data sent along with every request of an authentication attempt."""

    machine_id: str
    one_time_password: str
    local_user_id: str
    routing_info: str
    device_unique_identifier: str = field(default_factory=lambda: str(uuid4()).upper())
    device_serial_number: str = "0"
    device_description: str = DEFAULT_DEVICE_DESCRIPTION
    date: datetime = field(default_factory=lambda: datetime.now(tz=UTC))
    locale: str = DEFAULT_LOCALE
    time_zone: str = DEFAULT_TIME_ZONE

    @classmethod
    def from_headers(cls: type[Self], headers: Mapping[str, Any]) -> Self:
        """
        Build anisette data from the header dictionary served by anisette servers.

        Header names are matched case-insensitively. Only the machine ID and one-time password are required.

        :raises MissingAnisetteHeadersError: If a required header is missing.
        """
        normalized = {key.lower(): str(value) for key, value in headers.items() if value is not None}

        missing = {name for name in REQUIRED_HEADERS if not normalized.get(name.lower())}
        if missing:
            raise MissingAnisetteHeadersError(missing)

        optional = {
            "device_unique_identifier": normalized.get("x-mme-device-id"),
            "device_serial_number": normalized.get("x-apple-i-srl-no"),
            "device_description": normalized.get("x-mme-client-info"),
            "locale": normalized.get("x-apple-locale"),
            "time_zone": normalized.get("x-apple-i-timezone"),
        }

        return cls(
            machine_id=normalized["x-apple-i-md-m"],
            one_time_password=normalized["x-apple-i-md"],
            local_user_id=normalized.get("x-apple-i-md-lu", ""),
            routing_info=normalized.get("x-apple-i-md-rinfo", "17106176"),
            date=_parse_client_time(normalized.get("x-apple-i-client-time")),
            **{key: value for key, value in optional.items() if value},
        )

    @property
    def client_time(self: Self) -> str:
        return format_client_time(self.date)

    @property
    def headers(self: Self) -> AnisetteHeaders:
        """The attestation headers shared by every request."""
        return {
            "X-Apple-I-MD-M": self.machine_id,
            "X-Apple-I-MD": self.one_time_password,
            "X-Apple-I-MD-LU": self.local_user_id,
            "X-Apple-I-MD-RINFO": self.routing_info,
            "X-Mme-Device-Id": self.device_unique_identifier,
            "X-MMe-Client-Info": self.device_description,
            "X-Apple-I-Client-Time": self.client_time,
            "X-Apple-Locale": self.locale,
            "X-Apple-I-TimeZone": self.time_zone,
        }

    @property
    def client_info(self: Self) -> ClientInfo:
        """The `cpd` dictionary embedded in every GrandSlam request body: the attestation headers plus flags."""
        return {
            "bootstrap": True,
            "icscrec": True,
            "pbe": False,
            "prkgen": True,
            "svct": "iCloud",
            "loc": self.locale,
            "X-Apple-I-MD-M": self.machine_id,
            "X-Apple-I-MD": self.one_time_password,
            "X-Apple-I-MD-LU": self.local_user_id,
            "X-Apple-I-MD-RINFO": self.routing_info,
            "X-Mme-Device-Id": self.device_unique_identifier,
            "X-Apple-I-Client-Time": self.client_time,
            "X-Apple-Locale": self.locale,
            "X-Apple-I-TimeZone": self.time_zone,
            "X-Apple-I-SRL-NO": self.device_serial_number,
        }
