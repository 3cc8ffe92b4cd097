"""Encoding and decoding of the three-part JWT wire string."""

import json
from typing import NamedTuple

from jwt.utils import base64url_decode, base64url_encode
from pydantic import BaseModel

from vcred.auth.types import JwtBody, JwtHeader
from vcred.core.errors import MalformedTokenError

TOKEN_PARTS = 3


class DecodedJwt(NamedTuple):
    """Parts of a parsed token string."""

    header: JwtHeader
    body: JwtBody
    signature: bytes
    unsigned: str


def _to_json(model: BaseModel) -> bytes:
    data = model.model_dump(by_alias=True, exclude_none=True)
    return json.dumps(data, separators=(",", ":"), ensure_ascii=False).encode()


def encode_segment(data: bytes) -> str:
    """Encode bytes as base64url without padding."""
    return base64url_encode(data).decode("ascii")


def encode(header: JwtHeader, body: JwtBody) -> str:
    """Build the unsigned ``header.body`` part of a token."""
    return encode_segment(_to_json(header)) + "." + encode_segment(_to_json(body))


def decode(token: str) -> DecodedJwt:
    """Split and decode a signed token string.

    Raises:
        MalformedTokenError: if the string is not three non-empty parts or
            any part fails to decode.
    """
    if not isinstance(token, str):
        raise MalformedTokenError()

    parts = token.split(".")
    if len(parts) != TOKEN_PARTS or not all(parts):
        raise MalformedTokenError()

    try:
        header = JwtHeader.model_validate_json(base64url_decode(parts[0]))
        body = JwtBody.model_validate_json(base64url_decode(parts[1]))
        signature = base64url_decode(parts[2])
    except (ValueError, TypeError) as exc:
        raise MalformedTokenError() from exc

    return DecodedJwt(
        header=header,
        body=body,
        signature=signature,
        unsigned=parts[0] + "." + parts[1],
    )
