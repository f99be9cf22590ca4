"""Bluesky publisher speaking XRPC over httpx.

# ─── ARCHITECTURE ────────────────────────────────────────────────────
#
#   connect()  → com.atproto.server.createSession   (handle + app password)
#   post()     → com.atproto.repo.createRecord      (app.bsky.feed.post)
#                  └─ ExpiredToken → refreshSession, retry once
#   close()    → drop session, close owned httpx client
#
# Every failure leaving this module is a PublishError tagged with a
# PublishErrorKind (transport boundary).  post() routes failures through
# the error classifier, which decides between suppress and propagate.
#
# Layer: Providers (depends on httpx, structlog, services.error_classifier)
# ─────────────────────────────────────────────────────────────────────
"""

from __future__ import annotations

import base64
import binascii
import json
from dataclasses import dataclass
from typing import Any

import httpx
import structlog

from ossky.interfaces.publisher import IPublisher
from ossky.models.post import POST_COLLECTION
from ossky.services.error_classifier import PublishOutcome, resolve_publish_error
from ossky.utils.errors import ConfigurationError, PublishError, PublishErrorKind
from ossky.utils.logging import get_logger

DEFAULT_SERVER = "https://bsky.social"
_DEFAULT_TIMEOUT = 30.0
_PROVIDER = "bluesky"

# Full-access sessions carry this scope; app passwords do not.
_FULL_ACCESS_SCOPE = "com.atproto.access"

_RATE_LIMIT_ERRORS = frozenset({"RateLimitExceeded"})
_AUTH_ERRORS = frozenset(
    {"AuthRequired", "AuthenticationRequired", "InvalidToken", "ExpiredToken", "AccountTakedown"}
)
_MALFORMED_ERRORS = frozenset({"InvalidRequest", "PayloadTooLarge", "InvalidSwap"})

# Failures where the request may or may not have reached the server and a
# later attempt is expected to work.
_TRANSIENT_TRANSPORT_ERRORS = (
    httpx.TimeoutException,
    httpx.ReadError,
    httpx.WriteError,
    httpx.RemoteProtocolError,
)


@dataclass(frozen=True)
class _Session:
    did: str
    handle: str
    access_jwt: str
    refresh_jwt: str


def error_from_response(response: httpx.Response) -> PublishError:
    """Build a classified :class:`PublishError` from a non-2xx XRPC response."""
    try:
        body = response.json()
    except ValueError:
        body = {}
    if not isinstance(body, dict):
        body = {}

    status = response.status_code
    error_name = body.get("error")
    message = body.get("message") or response.reason_phrase or "XRPC request failed"

    if status == 429 or error_name in _RATE_LIMIT_ERRORS:
        kind = PublishErrorKind.RATE_LIMITED
    elif status in (401, 403) or error_name in _AUTH_ERRORS:
        kind = PublishErrorKind.UNAUTHORIZED
    elif status in (400, 413) or error_name in _MALFORMED_ERRORS:
        kind = PublishErrorKind.MALFORMED
    else:
        kind = PublishErrorKind.PROTOCOL

    return PublishError(
        kind,
        message=f"{error_name or 'HTTP ' + str(status)}: {message}",
        provider_name=_PROVIDER,
        status_code=status,
        error_name=error_name,
    )


def error_from_transport(exc: httpx.RequestError) -> PublishError:
    """Build a classified :class:`PublishError` from an httpx transport failure."""
    if isinstance(exc, _TRANSIENT_TRANSPORT_ERRORS):
        kind = PublishErrorKind.TRANSIENT_NETWORK
    else:
        kind = PublishErrorKind.NETWORK
    return PublishError(
        kind,
        message=f"{type(exc).__name__}: {exc}",
        provider_name=_PROVIDER,
    )


def _token_scope(jwt: str) -> str | None:
    """Return the ``scope`` claim of *jwt* without verifying it."""
    try:
        payload = jwt.split(".")[1]
        payload += "=" * (-len(payload) % 4)
        claims = json.loads(base64.urlsafe_b64decode(payload))
    except (IndexError, ValueError, binascii.Error):
        return None
    scope = claims.get("scope") if isinstance(claims, dict) else None
    return scope if isinstance(scope, str) else None


class BlueskyPublisher(IPublisher):
    """Publishes post records to a Bluesky PDS.

    Parameters
    ----------
    handle:
        Account handle or e-mail used to log in.
    app_key:
        An app password.  Full-access passwords are refused.
    server:
        PDS base URL.
    http_client:
        Optional shared client; when omitted the publisher creates and
        closes its own.
    """

    def __init__(
        self,
        handle: str,
        app_key: str,
        server: str = DEFAULT_SERVER,
        http_client: httpx.AsyncClient | None = None,
    ) -> None:
        self._handle = handle
        self._app_key = app_key
        self._server = server.rstrip("/")
        self._owns_client = http_client is None
        self._client = http_client or httpx.AsyncClient(timeout=httpx.Timeout(_DEFAULT_TIMEOUT))
        self._session: _Session | None = None
        self._logger: structlog.BoundLogger = get_logger(__name__)

    @property
    def did(self) -> str | None:
        return self._session.did if self._session else None

    # ------------------------------------------------------------------
    # IPublisher implementation
    # ------------------------------------------------------------------

    async def connect(self) -> None:
        """Log in and keep the session tokens."""
        try:
            data = await self._xrpc(
                "com.atproto.server.createSession",
                payload={"identifier": self._handle, "password": self._app_key},
            )
        except PublishError as exc:
            if exc.kind is PublishErrorKind.UNAUTHORIZED:
                raise PublishError(
                    PublishErrorKind.UNAUTHORIZED,
                    message="username or application password seems incorrect, please double check",
                    provider_name=_PROVIDER,
                    status_code=exc.status_code,
                    error_name=exc.error_name,
                ) from exc
            raise

        session = self._session_from(data)
        if _token_scope(session.access_jwt) == _FULL_ACCESS_SCOPE:
            raise ConfigurationError(
                message="you're not allowed to use your full-access credentials, please create an app password",
                provider_name=_PROVIDER,
            )

        self._session = session
        self._logger.info("bluesky_connected", handle=session.handle, did=session.did)

    async def post(self, record: dict[str, Any]) -> None:
        """Create *record* in the account's post collection.

        Rate-limit and transient network failures are logged and swallowed;
        everything else is raised.
        """
        try:
            result = await self._create_record(record)
        except Exception as exc:
            if resolve_publish_error(exc, self._logger) is PublishOutcome.PROPAGATE:
                raise
            return
        self._logger.info("post_published", uri=result.get("uri"), cid=result.get("cid"))

    async def close(self) -> None:
        self._session = None
        if self._owns_client:
            await self._client.aclose()

    # ------------------------------------------------------------------
    # Private helpers
    # ------------------------------------------------------------------

    async def _create_record(self, record: dict[str, Any]) -> dict[str, Any]:
        session = self._require_session()
        self._logger.debug("post_record", record=json.dumps(record, ensure_ascii=False))
        payload = {"repo": session.did, "collection": POST_COLLECTION, "record": record}
        try:
            return await self._xrpc(
                "com.atproto.repo.createRecord", payload=payload, token=session.access_jwt
            )
        except PublishError as exc:
            if exc.error_name != "ExpiredToken":
                raise
        await self._refresh_session()
        return await self._xrpc(
            "com.atproto.repo.createRecord",
            payload=payload,
            token=self._require_session().access_jwt,
        )

    async def _refresh_session(self) -> None:
        session = self._require_session()
        data = await self._xrpc("com.atproto.server.refreshSession", token=session.refresh_jwt)
        self._session = self._session_from(data)
        self._logger.debug("bluesky_session_refreshed", did=self._session.did)

    def _require_session(self) -> _Session:
        if self._session is None:
            raise PublishError(
                PublishErrorKind.UNAUTHORIZED,
                message="not connected, call connect() first",
                provider_name=_PROVIDER,
            )
        return self._session

    def _session_from(self, data: dict[str, Any]) -> _Session:
        try:
            return _Session(
                did=data["did"],
                handle=data.get("handle", self._handle),
                access_jwt=data["accessJwt"],
                refresh_jwt=data["refreshJwt"],
            )
        except (KeyError, TypeError) as exc:
            raise PublishError(
                PublishErrorKind.PROTOCOL,
                message=f"unexpected session response: missing {exc}",
                provider_name=_PROVIDER,
            ) from exc

    async def _xrpc(
        self,
        nsid: str,
        payload: dict[str, Any] | None = None,
        token: str | None = None,
    ) -> dict[str, Any]:
        """POST an XRPC procedure and return its JSON body."""
        headers = {"Authorization": f"Bearer {token}"} if token else {}
        try:
            response = await self._client.post(
                f"{self._server}/xrpc/{nsid}", json=payload, headers=headers
            )
        except httpx.RequestError as exc:
            raise error_from_transport(exc) from exc

        if response.is_error:
            raise error_from_response(response)

        try:
            data = response.json()
        except ValueError as exc:
            raise PublishError(
                PublishErrorKind.PROTOCOL,
                message=f"{nsid} returned a non-JSON body",
                provider_name=_PROVIDER,
                status_code=response.status_code,
            ) from exc
        return data if isinstance(data, dict) else {}
