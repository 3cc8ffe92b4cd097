"""Virgil JWT value object."""

import math
from datetime import UTC, datetime

from vcred.auth import codec
from vcred.auth.types import ISSUER_PREFIX, SUBJECT_PREFIX, JwtBody, JwtHeader
from vcred.core.errors import TokenFormatError


class Jwt:
    """Immutable JWT granting access to the Virgil Security APIs.

    The string form is ``base64url(header).base64url(body).base64url(signature)``,
    with the last part omitted for unsigned tokens.
    """

    __slots__ = ("_header", "_body", "_signature", "_unsigned_data", "_string")

    def __init__(
        self,
        header: JwtHeader,
        body: JwtBody,
        signature: bytes | None = None,
    ) -> None:
        self._init(header, body, signature, codec.encode(header, body))

    def _init(
        self,
        header: JwtHeader,
        body: JwtBody,
        signature: bytes | None,
        unsigned: str,
    ) -> None:
        self._header = header
        self._body = body
        self._signature = bytes(signature) if signature is not None else None
        self._unsigned_data = unsigned.encode("utf-8")
        if self._signature is None:
            self._string = unsigned
        else:
            self._string = unsigned + "." + codec.encode_segment(self._signature)

    @classmethod
    def from_string(cls, token: str) -> "Jwt":
        """Parse a token string.

        The original header and body segments are kept as they are, so the
        signature stays valid whatever key order the issuer serialized.

        Raises:
            MalformedTokenError: if the string is not a well-formed token.
        """
        decoded = codec.decode(token)
        jwt = cls.__new__(cls)
        jwt._init(decoded.header, decoded.body, decoded.signature, decoded.unsigned)
        return jwt

    @property
    def header(self) -> JwtHeader:
        return self._header

    @property
    def body(self) -> JwtBody:
        return self._body

    @property
    def signature(self) -> bytes | None:
        return self._signature

    @property
    def unsigned_data(self) -> bytes:
        """The bytes the signature is calculated over."""
        return self._unsigned_data

    def to_string(self) -> str:
        """Return the token in its compact wire form."""
        return self._string

    def identity(self) -> str:
        """Return the user identity this token was issued for."""
        if not self._body.subject.startswith(SUBJECT_PREFIX):
            raise TokenFormatError("wrong sub format")
        return self._body.subject[len(SUBJECT_PREFIX) :]

    def app_id(self) -> str:
        """Return the application ID that issued this token."""
        if not self._body.issuer.startswith(ISSUER_PREFIX):
            raise TokenFormatError("wrong iss format")
        return self._body.issuer[len(ISSUER_PREFIX) :]

    def is_expired(self, at: datetime | None = None) -> bool:
        """Return True if the token is (or will be) expired at ``at``.

        A token whose expiry equals ``at`` is still valid at that second.
        """
        moment = at if at is not None else datetime.now(UTC)
        return self._body.expires_at < math.floor(moment.timestamp())

    def __str__(self) -> str:
        return self._string

    def __repr__(self) -> str:
        return (
            f"Jwt(kid={self._header.key_id!r}, sub={self._body.subject!r}, "
            f"exp={self._body.expires_at}, signed={self._signature is not None})"
        )

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Jwt):
            return NotImplemented
        return self._string == other._string

    def __hash__(self) -> int:
        return hash(self._string)
