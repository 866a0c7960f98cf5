import hashlib
import json
import logging
from datetime import timedelta
from decimal import Decimal
from typing import Callable, Optional, Tuple

from django.conf import settings
from django.db import IntegrityError, transaction
from django.utils import timezone

from .models import IdempotencyKey

logger = logging.getLogger("pawmart.orders")


def idempotency_scope(*, user=None, session_key: Optional[str] = None) -> str:
    """Scope for stored responses: "user:<id>", "session:<token>" or "anon"."""

    if getattr(user, "id", None):
        return f"user:{user.id}"
    if session_key:
        return f"session:{session_key}"
    return "anon"


def _json_safe(value):
    if isinstance(value, Decimal):
        return str(value)
    if isinstance(value, dict):
        return {k: _json_safe(v) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return [_json_safe(v) for v in value]
    return value


def with_idempotency(
    *,
    key: str,
    user,
    path: str,
    method: str,
    handler: Callable[[], Tuple[dict, int]],
    request_hash: Optional[str] = None,
    session_key: Optional[str] = None,
) -> Tuple[dict, int]:
    """Run handler idempotently and persist its response for the given key and scope.

    - Scope is derived from the caller: "user:<id>" for authenticated users,
      "session:<token>" for guests with a session header, otherwise "anon".
    - If a record exists and the stored `request_hash` differs from the provided one, returns 409.
    - If a record exists but response is not yet stored, returns 409 to indicate in-progress.
    - If the handler raises, the record is dropped so the client can retry.
    """

    scope = idempotency_scope(user=user, session_key=session_key)
    method = str(method).upper()
    path = str(path)
    ttl = int(getattr(settings, "IDEMPOTENCY_TTL_HOURS", 24))

    try:
        with transaction.atomic():
            idem = IdempotencyKey.objects.create(
                key=key,
                user=user if getattr(user, "id", None) else None,
                scope=scope,
                path=path,
                method=method,
                request_hash=request_hash,
                expires_at=timezone.now() + timedelta(hours=ttl),
            )
    except IntegrityError:
        idem = IdempotencyKey.objects.get(key=key, scope=scope, path=path, method=method)
        # Guard against key reuse with different fingerprints
        if idem.request_hash and request_hash and idem.request_hash != request_hash:
            return {"detail": "Idempotency key reused with different request payload"}, 409
        if idem.response_json is not None and idem.response_code is not None:
            logger.info(
                "idempotency.replayed",
                extra={"event": "idempotency.replayed", "scope": scope, "path": path, "method": method},
            )
            return idem.response_json, int(idem.response_code)
        return {"detail": "Request in progress"}, 409

    try:
        body, code = handler()
    except Exception:
        IdempotencyKey.objects.filter(id=idem.id).delete()
        raise

    IdempotencyKey.objects.filter(id=idem.id).update(response_json=_json_safe(body), response_code=code)
    return body, code


def compute_request_hash(data: Optional[dict]) -> Optional[str]:
    """Compute a canonical SHA256 hash of the request body.

    Uses sorted keys JSON representation to stabilize the hash across equivalent payloads.
    Returns None when data is falsy or not JSON serializable.
    """
    if not data:
        return None
    try:
        payload = json.dumps(data, sort_keys=True, separators=(",", ":"))
    except (TypeError, ValueError):
        return None
    return hashlib.sha256(payload.encode("utf-8")).hexdigest()


def purge_expired_keys(now=None) -> int:
    """Delete idempotency records past their expiry; returns how many were removed."""

    now = now or timezone.now()
    deleted, _ = IdempotencyKey.objects.filter(expires_at__lt=now).delete()
    return deleted


def run_idempotent(request, handler: Callable[[], Tuple[dict, int]], *, session_key: Optional[str] = None):
    """Run a view handler through `with_idempotency` when the request carries an Idempotency-Key."""

    idem_key = request.headers.get("Idempotency-Key")
    if not idem_key:
        return handler()
    user = request.user if request.user.is_authenticated else None
    return with_idempotency(
        key=idem_key,
        user=user,
        session_key=None if user else session_key,
        path=str(request.path),
        method=str(request.method),
        request_hash=compute_request_hash(getattr(request, "data", None)),
        handler=handler,
    )
