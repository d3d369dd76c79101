#  GSAKit - Python client for Apple's GrandSlam Authentication service
#  Copyright (C) 2024  Cypheriel
from datetime import UTC, datetime

import httpx
import pytest

from gsakit.anisette import AnisetteData, fetch_anisette_data
from gsakit.anisette._types import AnisetteHeaders, ClientInfo
from gsakit.anisette.exceptions import AnisetteFetchError, MissingAnisetteHeadersError

ANISETTE_URL = "https://anisette.example.com"
SERVER_HEADERS = {
    "X-Apple-I-Client-Time": "2024-01-02T03:04:05Z",
    "X-Apple-I-MD": "T05FVElNRQ==",
    "X-Apple-I-MD-LU": "4C4F43414C55534552",
    "X-Apple-I-MD-M": "TUFDSElORUlE",
    "X-Apple-I-MD-RINFO": "17106176",
    "X-Apple-I-SRL-NO": "0",
    "X-Apple-I-TimeZone": "PST",
    "X-Apple-Locale": "en_US",
    "X-MMe-Client-Info": "<iMac20,2> <Mac OS X;13.1;22C65> <com.apple.AuthKit/1 (com.apple.dt.Xcode/3594.4.19)>",
    "X-Mme-Device-Id": "00000000-0000-0000-0000-000000000001",
}


def test_from_headers():
    anisette_data = AnisetteData.from_headers({key.lower(): value for key, value in SERVER_HEADERS.items()})

    assert anisette_data.machine_id == "TUFDSElORUlE"
    assert anisette_data.one_time_password == "T05FVElNRQ=="
    assert anisette_data.device_unique_identifier == "00000000-0000-0000-0000-000000000001"
    assert anisette_data.time_zone == "PST"
    assert anisette_data.date == datetime(2024, 1, 2, 3, 4, 5, tzinfo=UTC)
    assert anisette_data.headers["X-Apple-I-Client-Time"] == "2024-01-02T03:04:05Z"


def test_from_headers_defaults():
    anisette_data = AnisetteData.from_headers({"X-Apple-I-MD-M": "M", "X-Apple-I-MD": "OTP"})

    assert anisette_data.routing_info == "17106176"
    assert anisette_data.local_user_id == ""
    assert anisette_data.locale == "en_US"
    assert anisette_data.device_unique_identifier


def test_from_headers_missing():
    with pytest.raises(MissingAnisetteHeadersError) as exc_info:
        AnisetteData.from_headers({"X-Apple-I-MD-M": "M", "X-Apple-I-MD": ""})

    assert exc_info.value.missing == {"X-Apple-I-MD"}


def test_headers(anisette_data):
    headers = anisette_data.headers

    assert headers["X-Apple-I-MD-M"] == anisette_data.machine_id
    assert headers["X-Apple-I-MD"] == anisette_data.one_time_password
    assert headers["X-Mme-Device-Id"] == "00000000-0000-0000-0000-000000000000"
    assert headers["X-Apple-I-Client-Time"] == "2024-01-02T03:04:05Z"
    assert headers["X-MMe-Client-Info"] == anisette_data.device_description


def test_client_info(anisette_data):
    client_info = anisette_data.client_info

    assert client_info["bootstrap"] is True
    assert client_info["svct"] == "iCloud"
    assert client_info["X-Apple-I-SRL-NO"] == "C02XXXXXXXXX"
    assert client_info["X-Apple-I-MD-M"] == anisette_data.machine_id
    assert "X-MMe-Client-Info" not in client_info


def test_declared_keys(anisette_data):
    assert set(anisette_data.headers) == set(AnisetteHeaders.__annotations__)
    assert set(anisette_data.client_info) == set(ClientInfo.__annotations__)

    # The attestation part of `cpd` is the header set, minus the device description, plus the serial.
    assert set(ClientInfo.__annotations__) - set(AnisetteHeaders.__annotations__) >= {"X-Apple-I-SRL-NO", "bootstrap"}
    assert set(AnisetteHeaders.__annotations__) - set(ClientInfo.__annotations__) == {"X-MMe-Client-Info"}


@pytest.mark.asyncio()
async def test_fetch_anisette_data():
    def handler(request: httpx.Request) -> httpx.Response:
        assert request.url.host == "anisette.example.com"
        return httpx.Response(200, json=SERVER_HEADERS)

    async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as client:
        anisette_data = await fetch_anisette_data(ANISETTE_URL, client)

    assert anisette_data.machine_id == "TUFDSElORUlE"
    assert anisette_data.device_description == SERVER_HEADERS["X-MMe-Client-Info"]


@pytest.mark.asyncio()
@pytest.mark.parametrize(
    "response",
    [
        httpx.Response(502),
        httpx.Response(200, text="<html></html>"),
        httpx.Response(200, json=["X-Apple-I-MD"]),
    ],
)
async def test_fetch_anisette_data_invalid_response(response):
    async with httpx.AsyncClient(transport=httpx.MockTransport(lambda _: response)) as client:
        with pytest.raises(AnisetteFetchError, match=ANISETTE_URL):
            await fetch_anisette_data(ANISETTE_URL, client)


@pytest.mark.asyncio()
async def test_fetch_anisette_data_connection_error():
    def handler(request: httpx.Request) -> httpx.Response:
        msg = "Connection refused"
        raise httpx.ConnectError(msg, request=request)

    async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as client:
        with pytest.raises(AnisetteFetchError):
            await fetch_anisette_data(ANISETTE_URL, client)
