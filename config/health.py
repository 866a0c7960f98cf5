from django.core.cache import cache
from django.db import DatabaseError, connection
from drf_spectacular.utils import extend_schema
from rest_framework.decorators import api_view
from rest_framework.response import Response


@extend_schema(tags=["Health Endpoint"], summary="Health check")
@api_view(["GET"])
def health(request):
    """Report database and cache reachability; guest carts depend on the cache."""
    checks = {"database": "ok", "cache": "ok"}
    try:
        with connection.cursor() as cursor:
            cursor.execute("SELECT 1")
    except DatabaseError:
        checks["database"] = "error"
    cache.set("health:ping", "pong", timeout=5)
    if cache.get("health:ping") != "pong":
        checks["cache"] = "error"
    ok = all(value == "ok" for value in checks.values())
    return Response({"status": "ok" if ok else "degraded", **checks}, status=200 if ok else 503)
