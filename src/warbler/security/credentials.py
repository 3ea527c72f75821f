"""Credential codec — signed bearer tokens carrying a claim payload.

Tokens are the claim mapping plus an ``exp`` horizon, serialized as
JSON and signed with ``itsdangerous``. The codec is a pure function of
its secret: the same payload, secret, and expiry always produce the same
token.

Usage::

    codec = CredentialCodec("s3cr3t")
    token = codec.issue({"id": "42", "name": "Ada"}, ttl=3600)
    credential = codec.verify(token)
    credential.claims  # {"id": "42", "name": "Ada"}

Verification failures raise ``CredentialError``. Callers branch on
``exc.reason`` (expired vs. invalid signature), never on the class.
"""

from __future__ import annotations

import time
from collections.abc import Callable, Mapping
from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from itsdangerous import BadData, URLSafeSerializer

from warbler.errors import ConfigurationError, ErrorKind, WarblerError

EXPIRY_CLAIM = "exp"


class CredentialFailure(Enum):
    """Why a token did not verify."""

    EXPIRED = "expired"
    INVALID_SIGNATURE = "invalid_signature"


class CredentialError(WarblerError):
    """A credential token failed verification."""

    kind = ErrorKind.AUTH_VERIFICATION

    def __init__(self, reason: CredentialFailure, message: str = "") -> None:
        super().__init__(message or reason.value)
        self.reason = reason


@dataclass(frozen=True, slots=True)
class Credential:
    """A verified token: the original claims and when they stop being valid."""

    claims: dict[str, Any] = field(default_factory=dict)
    expires_at: int = 0


class CredentialCodec:
    """Signs and verifies credential tokens with one secret.

    ``clock`` returns the current UNIX time; tests pass a fixed one.
    """

    __slots__ = ("_clock", "_serializer")

    def __init__(
        self,
        secret: str,
        *,
        salt: str = "warbler.credential",
        clock: Callable[[], float] = time.time,
    ) -> None:
        if not secret:
            msg = "Credential secret must not be empty. Set WARBLER_SECRET."
            raise ConfigurationError(msg)
        self._serializer = URLSafeSerializer(secret, salt=salt)
        self._clock = clock

    def issue(self, payload: Mapping[str, Any], ttl: int) -> str:
        """Sign *payload* into a token that expires *ttl* seconds from now.

        The expiry is truncated to whole seconds.
        """
        if EXPIRY_CLAIM in payload:
            msg = f"Credential payload must not carry its own {EXPIRY_CLAIM!r} claim."
            raise ValueError(msg)
        body = {**payload, EXPIRY_CLAIM: int(self._clock() + ttl)}
        return self._serializer.dumps(body)

    def verify(self, token: str) -> Credential:
        """Check the signature and expiry of *token*.

        Raises ``CredentialError`` with ``INVALID_SIGNATURE`` for tampered
        or malformed tokens and ``EXPIRED`` once ``exp`` has passed.
        """
        try:
            body = self._serializer.loads(token)
        except BadData as exc:
            raise CredentialError(CredentialFailure.INVALID_SIGNATURE, str(exc)) from None

        if not isinstance(body, dict):
            raise CredentialError(
                CredentialFailure.INVALID_SIGNATURE, "credential payload is not an object"
            )

        claims = dict(body)
        expires_at = claims.pop(EXPIRY_CLAIM, None)
        if not isinstance(expires_at, int) or isinstance(expires_at, bool):
            raise CredentialError(CredentialFailure.EXPIRED, "credential carries no expiry")
        if expires_at <= self._clock():
            raise CredentialError(CredentialFailure.EXPIRED, "credential has expired")

        return Credential(claims=claims, expires_at=expires_at)


def issue(payload: Mapping[str, Any], secret: str, ttl: int) -> str:
    """Sign *payload* with *secret*; see ``CredentialCodec.issue``."""
    return CredentialCodec(secret).issue(payload, ttl)


def verify(token: str, secret: str) -> Credential:
    """Verify *token* against *secret*; see ``CredentialCodec.verify``."""
    return CredentialCodec(secret).verify(token)
