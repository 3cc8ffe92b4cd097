"""Integration test: issue, cache and verify tokens with a stored signing key."""

import asyncio
import time
from pathlib import Path

import jwt as pyjwt
import pytest
from cryptography.hazmat.primitives import hashes, serialization
from cryptography.hazmat.primitives.asymmetric import padding, rsa
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from vcred.auth.jwt import Jwt
from vcred.auth.providers import CachingJwtProvider
from vcred.auth.types import JwtBody, JwtHeader, TokenContext
from vcred.crypto.keys import EncryptedStorageAdapter, generate_encryption_key
from vcred.db.repo_entries import SqlStorageAdapter
from vcred.storage.adapters import FileSystemStorageAdapter, StorageAdapterConfig
from vcred.storage.key_entry_storage import KeyEntryStorage

APP_ID = "integration-app"
KEY_ID = "signing-key-1"
KEY_NAME = "app-signing-key"


def _generate_private_pem() -> bytes:
    key = rsa.generate_private_key(public_exponent=65537, key_size=2048)
    return key.private_bytes(
        serialization.Encoding.PEM,
        serialization.PrivateFormat.PKCS8,
        serialization.NoEncryption(),
    )


def _issue(private_pem: bytes, identity: str, ttl: int = 600) -> Jwt:
    """Sign a token the way a Virgil application backend would."""
    now = int(time.time())
    header = JwtHeader(alg="RS256", kid=KEY_ID)
    body = JwtBody(
        iss=f"virgil-{APP_ID}",
        sub=f"identity-{identity}",
        iat=now,
        exp=now + ttl,
        ada={"role": "reader"},
    )
    unsigned = Jwt(header, body)
    key = serialization.load_pem_private_key(private_pem, password=None)
    signature = key.sign(unsigned.unsigned_data, padding.PKCS1v15(), hashes.SHA256())
    return Jwt(header, body, signature)


def _public_key(private_pem: bytes):
    return serialization.load_pem_private_key(private_pem, password=None).public_key()


@pytest.fixture(params=["fs", "sql", "encrypted"])
async def key_storage(
    request: pytest.FixtureRequest,
    tmp_path: Path,
    session_factory: async_sessionmaker[AsyncSession],
) -> KeyEntryStorage:
    if request.param == "fs":
        adapter = FileSystemStorageAdapter(
            StorageAdapterConfig(dir=str(tmp_path), name="BackendKeys")
        )
    elif request.param == "sql":
        adapter = SqlStorageAdapter(session_factory, "BackendKeys")
    else:
        adapter = EncryptedStorageAdapter(
            SqlStorageAdapter(session_factory, "BackendKeys"),
            generate_encryption_key(),
        )
    return KeyEntryStorage(adapter)


async def test_tokens_signed_with_stored_key(key_storage: KeyEntryStorage) -> None:
    await key_storage.save(KEY_NAME, _generate_private_pem(), meta={"kid": KEY_ID})
    issued: list[Jwt] = []

    async def renew(context: TokenContext) -> str:
        entry = await key_storage.load(KEY_NAME)
        assert entry is not None
        token = _issue(entry.value, context.identity)
        issued.append(token)
        return str(token)

    provider = CachingJwtProvider(renew)
    context = TokenContext(identity="alice", operation="get", service="cards")

    tokens = await asyncio.gather(*(provider.get_token(context) for _ in range(5)))

    assert len(issued) == 1
    assert all(t is tokens[0] for t in tokens)
    token = tokens[0]
    assert token.identity() == "alice"
    assert token.app_id() == APP_ID

    entry = await key_storage.load(KEY_NAME)
    assert entry is not None
    assert entry.meta == {"kid": KEY_ID}
    public_key = _public_key(entry.value)
    public_key.verify(
        token.signature, token.unsigned_data, padding.PKCS1v15(), hashes.SHA256()
    )

    claims = pyjwt.decode(str(token), public_key, algorithms=["RS256"])
    assert claims["sub"] == "identity-alice"
    assert claims["ada"] == {"role": "reader"}


async def test_rotated_key_is_used_after_forced_reload(
    key_storage: KeyEntryStorage,
) -> None:
    original_pem = _generate_private_pem()
    await key_storage.save(KEY_NAME, original_pem)

    async def renew(context: TokenContext) -> Jwt:
        entry = await key_storage.load(KEY_NAME)
        assert entry is not None
        return _issue(entry.value, context.identity)

    provider = CachingJwtProvider(renew)
    first = await provider.get_token(TokenContext(identity="bob"))

    rotated_pem = _generate_private_pem()
    updated = await key_storage.update(KEY_NAME, value=rotated_pem)
    assert updated.modification_date >= updated.creation_date

    cached = await provider.get_token(TokenContext(identity="bob"))
    assert cached is first

    second = await provider.get_token(TokenContext(identity="bob", force_reload=True))
    assert second is not first
    pyjwt.decode(str(second), _public_key(rotated_pem), algorithms=["RS256"])
    with pytest.raises(pyjwt.InvalidSignatureError):
        pyjwt.decode(str(second), _public_key(original_pem), algorithms=["RS256"])


async def test_tokens_from_other_issuers_keep_their_signature() -> None:
    private_pem = _generate_private_pem()
    now = int(time.time())
    foreign = pyjwt.encode(
        {"iss": f"virgil-{APP_ID}", "sub": "identity-carol", "iat": now, "exp": now + 60},
        serialization.load_pem_private_key(private_pem, password=None),
        algorithm="RS256",
        headers={"kid": KEY_ID, "cty": "virgil-jwt;v=1"},
    )

    provider = CachingJwtProvider(lambda context: foreign)
    token = await provider.get_token(TokenContext(identity="carol"))

    assert str(token) == foreign
    assert token.header.key_id == KEY_ID
    _public_key(private_pem).verify(
        token.signature, token.unsigned_data, padding.PKCS1v15(), hashes.SHA256()
    )
