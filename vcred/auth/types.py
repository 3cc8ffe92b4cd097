"""Type definitions for Virgil JWT header, body and token context."""

from pydantic import BaseModel, ConfigDict, Field

SUBJECT_PREFIX = "identity-"
ISSUER_PREFIX = "virgil-"
VIRGIL_CONTENT_TYPE = "virgil-jwt;v=1"
JWT_TYPE = "JWT"


class JwtHeader(BaseModel):
    """JOSE header of a Virgil JWT."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    algorithm: str = Field(alias="alg")
    type: str = Field(default=JWT_TYPE, alias="typ")
    content_type: str = Field(default=VIRGIL_CONTENT_TYPE, alias="cty")
    key_id: str = Field(alias="kid")


class JwtBody(BaseModel):
    """Claims of a Virgil JWT."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    issuer: str = Field(alias="iss")
    subject: str = Field(alias="sub")
    issued_at: int = Field(alias="iat")
    expires_at: int = Field(alias="exp")
    additional_data: dict[str, str] | None = Field(default=None, alias="ada")


class TokenContext(BaseModel):
    """Describes the request a token is being obtained for."""

    identity: str | None = None
    operation: str = ""
    service: str | None = None
    force_reload: bool = False
