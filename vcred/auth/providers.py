"""Access token providers, including the caching single-flight provider."""

import asyncio
import inspect
from collections.abc import Awaitable, Callable
from datetime import UTC, datetime, timedelta
from typing import Protocol, runtime_checkable

import structlog

from vcred.auth.jwt import Jwt
from vcred.auth.types import TokenContext
from vcred.core.errors import MalformedTokenError
from vcred.core.settings import TokenSettings

logger = structlog.get_logger(__name__)

TokenOrString = Jwt | str
GetJwtCallback = Callable[[TokenContext], Awaitable[TokenOrString] | TokenOrString]


@runtime_checkable
class AccessTokenProvider(Protocol):
    """Port for obtaining the access token attached to outgoing requests."""

    async def get_token(self, context: TokenContext) -> Jwt:
        ...


def coerce_token(token: object) -> Jwt:
    """Normalize a callback result to a ``Jwt``."""
    if isinstance(token, Jwt):
        return token
    if isinstance(token, str):
        return Jwt.from_string(token)
    raise TypeError(
        f"Expected the token to be a string or an instance of Jwt, got {type(token).__name__}"
    )


async def _call(fn: GetJwtCallback, context: TokenContext) -> Jwt:
    result = fn(context)
    if inspect.isawaitable(result):
        result = await result
    return coerce_token(result)


def _require_callable(fn: object, arg_name: str) -> None:
    if not callable(fn):
        raise TypeError(f"`{arg_name}` must be a function")


class ConstAccessTokenProvider:
    """Returns the same token for every request."""

    def __init__(self, token: TokenOrString) -> None:
        self._token = coerce_token(token)

    async def get_token(self, context: TokenContext) -> Jwt:
        return self._token


class CallbackJwtProvider:
    """Calls the user-provided callback for every request, without caching."""

    def __init__(self, get_jwt_fn: GetJwtCallback) -> None:
        _require_callable(get_jwt_fn, "get_jwt_fn")
        self._get_jwt = get_jwt_fn

    async def get_token(self, context: TokenContext) -> Jwt:
        return await _call(self._get_jwt, context)


class CachingJwtProvider:
    """Caches the JWT while it is fresh and renews it through a callback.

    Concurrent ``get_token`` calls made while a renewal is running all wait
    on that single renewal. The renewal callback may return the token or its
    string form. For compatibility with older servers, a callback that raises
    an exception whose only argument is a valid token string is treated as a
    successful renewal.
    """

    def __init__(
        self,
        renew_jwt_fn: GetJwtCallback,
        initial_token: TokenOrString | None = None,
        *,
        expiration_margin: int | None = None,
        clock: Callable[[], datetime] | None = None,
    ) -> None:
        _require_callable(renew_jwt_fn, "renew_jwt_fn")
        if initial_token is not None and not isinstance(initial_token, (Jwt, str)):
            raise TypeError(
                "Expected `initial_token` to be a string or an instance of Jwt, "
                f"got {type(initial_token).__name__}"
            )

        if expiration_margin is None:
            expiration_margin = TokenSettings().expiration_margin

        self._renew_jwt = renew_jwt_fn
        self._margin = timedelta(seconds=expiration_margin)
        self._clock = clock or (lambda: datetime.now(UTC))
        self._cached: Jwt | None = coerce_token(initial_token) if initial_token else None
        self._renewal: asyncio.Task[Jwt] | None = None

    @property
    def cached_token(self) -> Jwt | None:
        return self._cached

    async def get_token(self, context: TokenContext) -> Jwt:
        """Return the cached token if fresh, otherwise a renewed one.

        ``context.force_reload`` skips the cache, e.g. after the server
        rejected the cached token.
        """
        cached = self._cached
        if (
            not context.force_reload
            and cached is not None
            and not cached.is_expired(self._clock() + self._margin)
        ):
            return cached

        if self._renewal is None:
            logger.debug("jwt_provider.renewal_started", operation=context.operation)
            self._renewal = asyncio.ensure_future(self._renew(context))
            self._renewal.add_done_callback(_retrieve_exception)

        return await asyncio.shield(self._renewal)

    async def _renew(self, context: TokenContext) -> Jwt:
        try:
            jwt = await _call(self._renew_jwt, context)
        except Exception as exc:
            jwt = _token_from_error(exc)
            if jwt is None:
                logger.warning(
                    "jwt_provider.renewal_failed",
                    error_type=type(exc).__name__,
                )
                raise
        finally:
            self._renewal = None

        self._cached = jwt
        logger.debug("jwt_provider.renewed", expires_at=jwt.body.expires_at)
        return jwt


def _token_from_error(exc: Exception) -> Jwt | None:
    if len(exc.args) != 1 or not isinstance(exc.args[0], str):
        return None
    try:
        return Jwt.from_string(exc.args[0])
    except MalformedTokenError:
        logger.debug("jwt_provider.error_not_a_token", error_type=type(exc).__name__)
        return None


def _retrieve_exception(task: asyncio.Task[Jwt]) -> None:
    # Marks the exception as retrieved when every waiter was cancelled.
    if not task.cancelled():
        task.exception()
