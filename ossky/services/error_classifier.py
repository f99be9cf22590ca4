"""Decides whether a publish failure is suppressed or propagated.

This is the single place where retry-versus-abort policy lives.  The
transport layer tags every failure with a :class:`PublishErrorKind`; this
module logs it at the right level and returns a :class:`PublishOutcome`.

    kind                log level   outcome
    ------------------  ---------   ---------
    MALFORMED           warning     propagate  (do not retry blindly)
    UNAUTHORIZED        error       propagate  (reconnect / re-login)
    RATE_LIMITED        info        suppress   (next poll is the back-off)
    PROTOCOL            error       propagate  (kept for diagnosis)
    TRANSIENT_NETWORK   info        suppress   (expected to self-resolve)
    NETWORK             error       propagate
    anything else       error       propagate
"""

from __future__ import annotations

from enum import Enum

import structlog

from ossky.utils.errors import PublishError, PublishErrorKind


class PublishOutcome(str, Enum):
    SUPPRESS = "suppress"
    PROPAGATE = "propagate"


_SUPPRESSED_KINDS = frozenset({PublishErrorKind.RATE_LIMITED, PublishErrorKind.TRANSIENT_NETWORK})


def classify_publish_error(exc: BaseException) -> PublishErrorKind | None:
    """Return the kind carried by *exc*, or ``None`` for unclassified errors."""
    if isinstance(exc, PublishError):
        return exc.kind
    return None


def resolve_publish_error(exc: BaseException, logger: structlog.BoundLogger) -> PublishOutcome:
    """Log *exc* according to its kind and decide what the caller does next."""
    kind = classify_publish_error(exc)
    context = {"error": str(exc), "kind": kind.value if kind else "other"}
    if isinstance(exc, PublishError) and exc.status_code is not None:
        context["status_code"] = exc.status_code

    if kind is PublishErrorKind.MALFORMED:
        logger.warning("publish_rejected_malformed", **context)
    elif kind is PublishErrorKind.UNAUTHORIZED:
        logger.error("publish_unauthorized", **context)
    elif kind is PublishErrorKind.RATE_LIMITED:
        logger.info("publish_rate_limited", **context)
    elif kind is PublishErrorKind.PROTOCOL:
        logger.error("publish_protocol_error", error_name=getattr(exc, "error_name", None), **context)
    elif kind is PublishErrorKind.TRANSIENT_NETWORK:
        logger.info("publish_network_transient", **context)
    elif kind is PublishErrorKind.NETWORK:
        logger.error("publish_network_error", **context)
    else:
        logger.error("publish_failed", error_type=type(exc).__name__, **context)

    if kind in _SUPPRESSED_KINDS:
        return PublishOutcome.SUPPRESS
    return PublishOutcome.PROPAGATE
