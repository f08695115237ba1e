"""Caller authentication and write throttling for the registry API.

Every accepted audit is signed with the registry authority key and claims
its asset id on the ledger for good, so the API key gates all ledger
traffic and writes get a smaller per-caller budget than reads
(``ASSETREG_WRITE_RATE_LIMIT`` / ``ASSETREG_READ_RATE_LIMIT`` per minute).

Callers are identified in logs and rate-limit buckets by a short
fingerprint of their key, never by the key itself.
"""

import hashlib
import hmac
import logging
import math
import re
import threading
import time
import uuid
from collections import defaultdict

from fastapi import Depends, HTTPException, Request, Response
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from assetreg.config import get_config

logger = logging.getLogger(__name__)

_bearer_scheme = HTTPBearer(auto_error=False)

RATE_WINDOW_SECONDS = 60

# Accept caller-supplied request ids only if they are short and log-safe.
_REQUEST_ID_RE = re.compile(r"^[A-Za-z0-9._-]{1,64}$")


def _fingerprint(value: str | None) -> str:
    if not value:
        return "unknown"
    return hashlib.sha256(value.encode()).hexdigest()[:12]


def require_api_key(
    request: Request,
    credentials: HTTPAuthorizationCredentials | None = Depends(_bearer_scheme),
) -> str:
    """Check the Bearer token against ``ASSETREG_API_KEY``.

    Returns the caller fingerprint used for throttling. With
    ``ASSETREG_DEMO_MODE=true`` every caller shares the ``demo`` identity.
    """
    cfg = get_config()

    if cfg.demo_mode:
        request.state.caller = "demo"
        return "demo"

    if not cfg.api_key:
        raise HTTPException(
            status_code=500,
            detail="Server misconfiguration: ASSETREG_API_KEY is not set.",
        )

    if credentials is None or not hmac.compare_digest(credentials.credentials, cfg.api_key):
        raise HTTPException(
            status_code=401,
            detail="Invalid or missing API key. Provide 'Authorization: Bearer <key>' header.",
        )
    caller = _fingerprint(credentials.credentials)
    request.state.caller = caller
    return caller


# Sliding-window buckets: "<scope>:<caller>" -> request timestamps.
_rate_buckets: dict[str, list[float]] = defaultdict(list)
_rate_lock = threading.Lock()


def _check_rate_limit(key: str, max_requests: int, window_seconds: int = RATE_WINDOW_SECONDS):
    """Admit one request for ``key`` or raise 429 with a ``Retry-After`` hint."""
    with _rate_lock:
        now = time.monotonic()
        bucket = [ts for ts in _rate_buckets[key] if now - ts < window_seconds]
        _rate_buckets[key] = bucket

        if len(bucket) >= max_requests:
            retry_after = max(1, math.ceil(window_seconds - (now - bucket[0])))
            logger.warning("Throttled %s (%d requests in %ds)", key, len(bucket), window_seconds)
            raise HTTPException(
                status_code=429,
                detail=f"Rate limit exceeded. Max {max_requests} requests per {window_seconds}s.",
                headers={"Retry-After": str(retry_after)},
            )
        bucket.append(now)


def rate_limit_writes(caller: str = Depends(require_api_key)):
    """Throttle ledger writes (audits) per caller."""
    _check_rate_limit(f"write:{caller}", max_requests=get_config().write_rate_limit)


def rate_limit_reads(caller: str = Depends(require_api_key)):
    """Throttle lookups, verifications and status reads per caller."""
    _check_rate_limit(f"read:{caller}", max_requests=get_config().read_rate_limit)


def _hash_ip(ip: str | None) -> str:
    return _fingerprint(ip)


async def request_logging_middleware(request: Request, call_next):
    """Tag each request with an id and log one line per request.

    A valid inbound ``X-Request-ID`` is kept so ids can be followed
    across a gateway; otherwise a fresh one is issued. The id is exposed on
    ``request.state.request_id`` for error logging.
    """
    inbound = request.headers.get("X-Request-ID", "")
    request_id = inbound if _REQUEST_ID_RE.match(inbound) else uuid.uuid4().hex
    request.state.request_id = request_id
    start = time.monotonic()

    response: Response = await call_next(request)

    elapsed_ms = int((time.monotonic() - start) * 1000)
    response.headers["X-Request-ID"] = request_id

    logger.info(
        "request_id=%s ip=%s caller=%s %s %s -> %d (%dms)",
        request_id,
        _hash_ip(request.client.host if request.client else None),
        getattr(request.state, "caller", "-"),
        request.method,
        request.url.path,
        response.status_code,
        elapsed_ms,
    )
    return response
