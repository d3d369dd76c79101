"""
Copyright (c) 2024  Cypheriel.

Client side of the Secure Remote Password protocol, as spoken by GrandSlam.

GrandSlam uses SRP-6a over the 2048-bit group from RFC 5054 with SHA-256, except that the username is
left out of the private key derivation (`x = H(s, H(":", P))`) and `P` is not the plain password but a
PBKDF2-derived key (see `GSAContext.make_verification_message`).

See:
  - https://datatracker.ietf.org/doc/html/rfc5054
"""

from __future__ import annotations

import hmac
from functools import cache
from hashlib import sha256
from importlib import resources
from typing import TYPE_CHECKING, Self

from cryptography.hazmat.primitives import serialization

from .._util.crypto import randbytes

if TYPE_CHECKING:
    from importlib.resources.abc import Traversable


def _byte_length(value: int) -> int:
    """
    Calculate the byte length of an integer.

    >>> _byte_length(255)
    1

    >>> _byte_length(256)
    2
    """
    return (value.bit_length() + 7) // 8


def _to_bytes(value: int) -> bytes:
    r"""
    Convert an integer to a minimal big-endian bytes object.

    >>> _to_bytes(255)
    b'\xff'

    >>> _to_bytes(256)
    b'\x01\x00'
    """
    return value.to_bytes(_byte_length(value))


@cache
def load_group(path: Traversable | None = None) -> tuple[int, int]:
    """
    Load the SRP group (safe prime and generator) from a DH parameters PEM file.

    By default, the RFC 5054 2048-bit group bundled with the package is loaded.

    :param path: The path to the DH parameters PEM file.
    :return: The safe prime and generator.
    """
    if path is None:
        path = resources.files(__package__) / "params.pem"

    numbers = serialization.load_pem_parameters(path.read_bytes()).parameter_numbers()
    return numbers.p, numbers.g


def _hash(*args: int | bytes, width: int | None = None) -> int:
    """
    Hash the provided arguments using SHA-256.

    When `width` is given, each argument is left-padded with zeroes to `width` bytes (`PAD()` in RFC 5054).

    :return: The digest, as an integer.
    """
    hash_data = sha256()

    for arg in args:
        if not isinstance(arg, (int, bytes)):
            msg = f"Expected int | bytes, got {type(arg)}."
            raise TypeError(msg)

        arg_data = _to_bytes(arg) if isinstance(arg, int) else arg

        if width is not None:
            hash_data.update(bytes(width - len(arg_data)))

        hash_data.update(arg_data)

    return int.from_bytes(hash_data.digest())


class SRPUser:
    """Generates the client proof (`M1`) and verifies the server proof (`M2`)."""

    def __init__(self: Self, username: str, private_ephemeral: int | None = None) -> None:
        self.username = username.encode()
        self.safe_prime, self.generator = load_group()
        self._width = _byte_length(self.safe_prime)

        # k = H(N, PAD(g))
        self.multiplier = _hash(self.safe_prime, self.generator, width=self._width)

        # a = random(32), A = g^a % N
        self.private_ephemeral: int = private_ephemeral or int.from_bytes(randbytes(32))
        self.public_ephemeral: bytes = _to_bytes(pow(self.generator, self.private_ephemeral, self.safe_prime))

        self.salt: bytes | None = None
        self.server_public_ephemeral: int | None = None

        self.shared_key: bytes | None = None
        """The SRP session key, `K = H(S)`."""

        self.client_proof: bytes | None = None
        self.server_proof: bytes | None = None

    def private_key(self: Self, password: bytes, salt: bytes) -> int:
        """Derive `x = H(s, H(":", P))`."""
        return int.from_bytes(sha256(salt + sha256(b":" + password).digest()).digest())

    def _group_hash(self: Self) -> bytes:
        """Compute `H(N) XOR H(PAD(g))`."""
        prime_hashed = sha256(_to_bytes(self.safe_prime)).digest()
        generator_hashed = sha256(self.generator.to_bytes(self._width)).digest()

        return bytes(p_byte ^ g_byte for p_byte, g_byte in zip(prime_hashed, generator_hashed, strict=True))

    def process_challenge(self: Self, password: bytes, salt: bytes, server_public_ephemeral: bytes) -> bytes:
        """
        Process the server's challenge and generate the client proof.

        :param password: The derived password key.
        :param salt: The salt provided by the server.
        :param server_public_ephemeral: The server's public ephemeral value (`B`).
        :return: The client proof, `M1 = H(H(N) XOR H(g), H(I), s, A, B, K)`.
        :raises ValueError: If `B % N == 0`.
        """
        server_public = int.from_bytes(server_public_ephemeral)
        if server_public % self.safe_prime == 0:
            msg = "Server public ephemeral is invalid."
            raise ValueError(msg)

        self.salt = salt
        self.server_public_ephemeral = server_public

        scrambling_parameter = _hash(self.public_ephemeral, server_public, width=self._width)
        if scrambling_parameter == 0:
            msg = "Scrambling parameter is zero."
            raise ValueError(msg)

        private_key = self.private_key(password, salt)
        verifier = pow(self.generator, private_key, self.safe_prime)

        # S = (B - k * g^x) ^ (a + u * x) % N
        premaster_secret = pow(
            server_public - self.multiplier * verifier,
            self.private_ephemeral + scrambling_parameter * private_key,
            self.safe_prime,
        )
        self.shared_key = sha256(_to_bytes(premaster_secret)).digest()

        self.client_proof = sha256(
            self._group_hash()
            + sha256(self.username).digest()
            + salt
            + self.public_ephemeral
            + _to_bytes(server_public)
            + self.shared_key,
        ).digest()

        # M2 = H(A, M1, K)
        self.server_proof = sha256(self.public_ephemeral + self.client_proof + self.shared_key).digest()

        return self.client_proof

    def verify_session(self: Self, server_proof: bytes) -> bool:
        """Check the server proof against the expected value."""
        return self.server_proof is not None and hmac.compare_digest(server_proof, self.server_proof)
