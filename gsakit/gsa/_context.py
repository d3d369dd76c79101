#  GSAKit - Python client for Apple's GrandSlam Authentication service
#  Copyright (C) 2024  Cypheriel
from __future__ import annotations

from hashlib import pbkdf2_hmac, sha256
from typing import Self

from cryptography.exceptions import InvalidTag

from .._util.crypto import decrypt_aes_cbc, decrypt_aes_gcm, hmac_sha256
from ._exceptions import HandshakeFailedError
from ._srp import SRPUser


class GSAContext:
    """
    Key material for a single authentication attempt.

    A context is populated progressively: `start()` produces the client's public ephemeral value, `salt` and
    `server_public_key` are set from the server's challenge, the SRP key is derived by
    `make_verification_message()`, and `dsid`/`session_key` are set from the decrypted server-provided data.
    """

    def __init__(self: Self, username: str, password: str) -> None:
        self.username = username
        self._password = password

        self.salt: bytes | None = None
        self.server_public_key: bytes | None = None

        self.dsid: str | None = None
        self.session_key: bytes | None = None
        """The `sk` value delivered in the server-provided data, used for app token requests."""

        self._srp_user: SRPUser | None = None

    def start(self: Self) -> bytes:
        """Generate the client's public ephemeral value (`A`)."""
        self._srp_user = SRPUser(self.username)
        return self._srp_user.public_ephemeral

    def _password_key(self: Self, iterations: int, *, is_hexadecimal: bool) -> bytes:
        digest = sha256(self._password.encode()).digest()
        if is_hexadecimal:
            digest = digest.hex().encode()

        return pbkdf2_hmac("sha256", digest, self.salt, iterations, dklen=32)

    def make_verification_message(self: Self, iterations: int, *, is_hexadecimal: bool) -> bytes:
        """
        Compute the client proof (`M1`).

        :param iterations: The PBKDF2 iteration count chosen by the server.
        :param is_hexadecimal: Whether the server selected the `s2k_fo` protocol, which feeds the hex-encoded
            password digest into PBKDF2.
        :raises HandshakeFailedError: If the challenge is incomplete or invalid.
        """
        if self._srp_user is None or self.salt is None or self.server_public_key is None:
            msg = "Cannot compute a verification message before receiving the server's challenge."
            raise HandshakeFailedError(msg)

        if iterations <= 0:
            msg = f"Invalid iteration count: {iterations}"
            raise HandshakeFailedError(msg)

        try:
            return self._srp_user.process_challenge(
                self._password_key(iterations, is_hexadecimal=is_hexadecimal),
                self.salt,
                self.server_public_key,
            )
        except ValueError as e:
            raise HandshakeFailedError(str(e)) from e

    def verify_server_verification_message(self: Self, message: bytes) -> bool:
        """Check the server proof (`M2`)."""
        return self._srp_user is not None and self._srp_user.verify_session(message)

    def _derived_key(self: Self, name: str) -> bytes:
        if self._srp_user is None or self._srp_user.shared_key is None:
            msg = "SRP session key has not been derived yet."
            raise HandshakeFailedError(msg)

        return hmac_sha256(self._srp_user.shared_key, name.encode())

    def decrypt_cbc(self: Self, data: bytes) -> bytes:
        """Decrypt the server-provided data (`spd`) with keys derived from the SRP session key."""
        extra_data_key = self._derived_key("extra data key:")
        extra_data_iv = self._derived_key("extra data iv:")[:16]

        try:
            return decrypt_aes_cbc(extra_data_key, extra_data_iv, data)
        except ValueError as e:
            msg = "Failed to decrypt server-provided data."
            raise HandshakeFailedError(msg) from e

    def decrypt_gcm(self: Self, data: bytes) -> bytes:
        """Decrypt an encrypted app token blob (`et`) with the session key."""
        if self.session_key is None:
            msg = "Session key is required to decrypt app tokens."
            raise HandshakeFailedError(msg)

        try:
            return decrypt_aes_gcm(self.session_key, data)
        except (InvalidTag, ValueError) as e:
            msg = "Failed to decrypt app token."
            raise HandshakeFailedError(msg) from e

    def make_checksum(self: Self, app_name: str) -> bytes:
        """Compute the app token request checksum, `HMAC(sk, "apptokens" || dsid || app)`."""
        if self.session_key is None or self.dsid is None:
            msg = "Session key and DSID are required to compute an app checksum."
            raise HandshakeFailedError(msg)

        return hmac_sha256(self.session_key, b"apptokens", self.dsid.encode(), app_name.encode())
