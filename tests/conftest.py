#  GSAKit - Python client for Apple's GrandSlam Authentication service
#  Copyright (C) 2024  Cypheriel
from __future__ import annotations

import hmac
import os
import plistlib
from base64 import b64encode
from dataclasses import dataclass
from datetime import UTC, datetime
from hashlib import pbkdf2_hmac, sha256
from typing import Any

import httpx
import pytest
from cryptography.hazmat.primitives.ciphers import Cipher
from cryptography.hazmat.primitives.ciphers.aead import AESGCM
from cryptography.hazmat.primitives.ciphers.algorithms import AES
from cryptography.hazmat.primitives.ciphers.modes import CBC
from cryptography.hazmat.primitives.padding import PKCS7

from gsakit.anisette import AnisetteData
from gsakit.gsa import GSAClient
from gsakit.gsa._srp import _hash, _to_bytes, load_group

APPLE_ID = "ada@example.com"
PASSWORD = "correct horse battery staple"
DSID = "000123-45-6789abcd"
IDMS_TOKEN = "idms-token"
APP_TOKEN = "xcode-app-token"
VERIFICATION_CODE = "123456"
CONTINUATION = b"continuation-token"
PE_TOKEN = "pe-token"


def _strip_prolog(data: bytes) -> bytes:
    return data[data.index(b"<plist") :]


@dataclass(frozen=True)
class _Handshake:
    username: str
    client_public: bytes
    verifier: int
    private_ephemeral: int
    public_ephemeral: bytes


def _envelope(response: dict[str, Any]) -> httpx.Response:
    return httpx.Response(200, content=plistlib.dumps({"Response": response}))


class FakeGrandSlam:
    """An in-process GrandSlam server that performs the server side of the SRP handshake."""

    def __init__(self) -> None:
        self.password = PASSWORD
        self.protocol = "s2k"
        self.iterations = 1000
        self.salt = os.urandom(16)
        self.session_key = os.urandom(32)

        self.au_sequence: list[str] = []
        self.verification_code = VERIFICATION_CODE
        self.omit_init_fields: set[str] = set()
        self.omit_spd_fields: set[str] = set()
        self.init_error: int | None = None
        self.corrupt_server_proof = False
        self.developer_result_code = 0
        self.validate_error: int | None = None
        self.send_pe_token = True

        self.calls: list[str] = []
        self.usernames: list[str] = []
        self.requests: list[httpx.Request] = []

        self.safe_prime, self.generator = load_group()
        self.width = len(_to_bytes(self.safe_prime))

        self._handshakes: dict[str, _Handshake] = {}

    def password_key(self) -> bytes:
        digest = sha256(self.password.encode()).digest()
        if self.protocol == "s2k_fo":
            digest = digest.hex().encode()

        return pbkdf2_hmac("sha256", digest, self.salt, self.iterations, dklen=32)

    def challenge(self, username: str, client_public: bytes) -> _Handshake:
        """Generate the server's public ephemeral value (`B`) for the current password."""
        private_key = int.from_bytes(sha256(self.salt + sha256(b":" + self.password_key()).digest()).digest())
        verifier = pow(self.generator, private_key, self.safe_prime)

        multiplier = _hash(self.safe_prime, self.generator, width=self.width)
        private_ephemeral = int.from_bytes(os.urandom(32))
        public_ephemeral = _to_bytes(
            (multiplier * verifier + pow(self.generator, private_ephemeral, self.safe_prime)) % self.safe_prime,
        )

        return _Handshake(username, client_public, verifier, private_ephemeral, public_ephemeral)

    def shared_key(self, handshake: _Handshake) -> bytes:
        scrambling = _hash(handshake.client_public, handshake.public_ephemeral, width=self.width)
        premaster_secret = pow(
            int.from_bytes(handshake.client_public) * pow(handshake.verifier, scrambling, self.safe_prime),
            handshake.private_ephemeral,
            self.safe_prime,
        )
        return sha256(_to_bytes(premaster_secret)).digest()

    def client_proof(self, handshake: _Handshake, shared_key: bytes) -> bytes:
        prime_hashed = sha256(_to_bytes(self.safe_prime)).digest()
        generator_hashed = sha256(self.generator.to_bytes(self.width)).digest()
        group_hash = bytes(a ^ b for a, b in zip(prime_hashed, generator_hashed, strict=True))

        return sha256(
            group_hash
            + sha256(handshake.username.encode()).digest()
            + self.salt
            + handshake.client_public
            + handshake.public_ephemeral
            + shared_key,
        ).digest()

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)

        if request.url.host == "developerservices2.apple.com":
            self.calls.append("viewDeveloper")
            return self._view_developer(request)

        match request.url.path:
            case "/grandslam/GsService2":
                parameters = plistlib.loads(request.content)["Request"]
                self.calls.append(parameters["o"])
                return getattr(self, f"_{parameters['o']}")(parameters)
            case "/auth/verify/trusteddevice":
                self.calls.append("trusteddevice")
                return httpx.Response(200, text="<html></html>")
            case "/grandslam/GsService2/validate":
                self.calls.append("validate")
                return self._validate(request)
            case "/auth/verify/phone/put":
                self.calls.append("sms-request")
                return httpx.Response(200, content=plistlib.dumps({}))
            case "/auth/verify/phone/securitycode":
                self.calls.append("sms-validate")
                return self._sms_validate(request)

        return httpx.Response(404)

    def _init(self, parameters: dict[str, Any]) -> httpx.Response:
        self.usernames.append(parameters["u"])

        if self.init_error is not None:
            return _envelope({"Status": {"ec": self.init_error, "em": "Rejected."}})

        continuation = os.urandom(8).hex()
        handshake = self.challenge(parameters["u"], parameters["A2k"])
        self._handshakes[continuation] = handshake

        response = {
            "c": continuation,
            "s": self.salt,
            "i": self.iterations,
            "B": handshake.public_ephemeral,
            "sp": self.protocol,
            "Status": {"ec": 0},
        }
        for field in self.omit_init_fields:
            del response[field]

        return _envelope(response)

    def _complete(self, parameters: dict[str, Any]) -> httpx.Response:
        handshake = self._handshakes.pop(parameters["c"])
        shared_key = self.shared_key(handshake)
        client_proof = self.client_proof(handshake, shared_key)

        if parameters["u"] != handshake.username or parameters["M1"] != client_proof:
            return _envelope({"Status": {"ec": -20101, "em": "Your Apple ID or password was incorrect."}})

        server_proof = sha256(handshake.client_public + client_proof + shared_key).digest()
        if self.corrupt_server_proof:
            server_proof = bytes(len(server_proof))

        spd = {"adsid": DSID, "GsIdmsToken": IDMS_TOKEN, "sk": self.session_key, "c": CONTINUATION}
        for field in self.omit_spd_fields:
            del spd[field]

        padder = PKCS7(128).padder()
        padded = padder.update(_strip_prolog(plistlib.dumps(spd))) + padder.finalize()
        encryptor = Cipher(
            AES(hmac.new(shared_key, b"extra data key:", sha256).digest()),
            CBC(hmac.new(shared_key, b"extra data iv:", sha256).digest()[:16]),
        ).encryptor()

        status: dict[str, Any] = {"ec": 0}
        if self.au_sequence:
            status["au"] = self.au_sequence.pop(0)

        return _envelope(
            {
                "M2": server_proof,
                "spd": encryptor.update(padded) + encryptor.finalize(),
                "Status": status,
            },
        )

    def _apptokens(self, parameters: dict[str, Any]) -> httpx.Response:
        app = parameters["app"][0]
        checksum = hmac.new(self.session_key, b"apptokens" + DSID.encode() + app.encode(), sha256).digest()

        if (parameters["checksum"], parameters["c"], parameters["t"], parameters["u"]) != (
            checksum,
            CONTINUATION,
            IDMS_TOKEN,
            DSID,
        ):
            return _envelope({"Status": {"ec": -1, "em": "Invalid app token request."}})

        tokens = _strip_prolog(plistlib.dumps({"t": {app: {"token": APP_TOKEN, "duration": 3600}}}))
        iv = os.urandom(16)
        encrypted_token = b"XYZ" + iv + AESGCM(self.session_key).encrypt(iv, tokens, b"XYZ")

        return _envelope({"et": encrypted_token, "Status": {"ec": 0}})

    def _validate(self, request: httpx.Request) -> httpx.Response:
        if self.validate_error is not None:
            return httpx.Response(200, content=plistlib.dumps({"ec": self.validate_error, "em": "Rejected."}))

        if request.headers.get("security-code") == self.verification_code:
            return httpx.Response(200, content=plistlib.dumps({"ec": 0}))

        return httpx.Response(200, content=plistlib.dumps({"ec": -21669, "em": "Incorrect verification code."}))

    def _sms_validate(self, request: httpx.Request) -> httpx.Response:
        if plistlib.loads(request.content).get("securityCode.code") == self.verification_code:
            headers = {"X-Apple-PE-Token": PE_TOKEN} if self.send_pe_token else {}
            return httpx.Response(200, headers=headers, content=plistlib.dumps({}))

        return httpx.Response(400, content=plistlib.dumps({}))

    def _view_developer(self, request: httpx.Request) -> httpx.Response:
        if request.headers.get("X-Apple-GS-Token") != APP_TOKEN:
            return httpx.Response(200, content=plistlib.dumps({"resultCode": 1100, "resultString": "Bad token."}))

        if self.developer_result_code != 0:
            return httpx.Response(
                200,
                content=plistlib.dumps(
                    {"resultCode": self.developer_result_code, "userString": "Your session has expired."},
                ),
            )

        developer = {"email": APPLE_ID, "personId": 1234567890, "firstName": "Ada", "lastName": "Lovelace"}
        return httpx.Response(200, content=plistlib.dumps({"resultCode": 0, "developer": developer}))

    @property
    def identity_token(self) -> str:
        return b64encode(f"{DSID}:{IDMS_TOKEN}".encode()).decode()


@pytest.fixture()
def fake_server() -> FakeGrandSlam:
    return FakeGrandSlam()


@pytest.fixture()
def http_client(fake_server: FakeGrandSlam) -> httpx.AsyncClient:
    return httpx.AsyncClient(transport=httpx.MockTransport(fake_server))


@pytest.fixture()
def gsa_client(http_client: httpx.AsyncClient) -> GSAClient:
    return GSAClient(http_client)


@pytest.fixture()
def anisette_data() -> AnisetteData:
    return AnisetteData(
        machine_id="TUFDSElORUlE",
        one_time_password="T05FVElNRQ==",
        local_user_id="4C4F43414C55534552",
        routing_info="17106176",
        device_unique_identifier="00000000-0000-0000-0000-000000000000",
        device_serial_number="C02XXXXXXXXX",
        date=datetime(2024, 1, 2, 3, 4, 5, tzinfo=UTC),
    )
