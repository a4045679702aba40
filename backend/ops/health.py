"""
Health check endpoints for operations monitoring.

Endpoints:
- /_health/live    - liveness probe (is the process running?)
- /_health/ready   - readiness probe (database answers and ledger tables are migrated)
"""
import logging
import time
from typing import Dict, Any

from django.conf import settings
from django.db import DatabaseError, connections
from django.http import JsonResponse
from django.views import View

logger = logging.getLogger(__name__)

LEDGER_TABLES = (
    "accounting_account",
    "accounting_accountingperiod",
    "accounting_journalentry",
    "accounting_journalentryline",
)


def _elapsed_ms(start: float) -> float:
    return round((time.time() - start) * 1000, 2)


class HealthCheck:
    """Probes used by the readiness endpoint."""

    @staticmethod
    def check_database(alias: str = "default") -> Dict[str, Any]:
        """Round-trip a trivial query."""
        start = time.time()
        conn = connections[alias]
        try:
            conn.ensure_connection()
            with conn.cursor() as cursor:
                cursor.execute("SELECT 1")
                cursor.fetchone()
        except DatabaseError as e:
            logger.error("Database health check failed", extra={"alias": alias, "error": str(e)})
            return {"status": "unhealthy", "alias": alias, "error": str(e), "duration_ms": _elapsed_ms(start)}
        return {"status": "healthy", "alias": alias, "vendor": conn.vendor, "duration_ms": _elapsed_ms(start)}

    @staticmethod
    def check_ledger_tables(alias: str = "default") -> Dict[str, Any]:
        """A reachable database without the ledger schema cannot post entries."""
        conn = connections[alias]
        try:
            with conn.cursor() as cursor:
                existing = set(conn.introspection.table_names(cursor))
        except DatabaseError as e:
            return {"status": "unhealthy", "error": str(e)}

        missing = [table for table in LEDGER_TABLES if table not in existing]
        if missing:
            logger.error("Ledger tables missing", extra={"alias": alias, "missing": missing})
            return {"status": "unhealthy", "missing": missing}
        return {"status": "healthy"}


class LivenessView(View):
    """Returns 200 if the process is running."""

    def get(self, request):
        return JsonResponse({"status": "alive"})


class ReadinessView(View):
    """Returns 200 when the ledger can serve traffic, 503 otherwise."""

    def get(self, request):
        checks = {"database": HealthCheck.check_database("default")}
        if checks["database"]["status"] == "healthy":
            checks["ledger"] = HealthCheck.check_ledger_tables("default")

        ready = all(check["status"] == "healthy" for check in checks.values())
        return JsonResponse(
            {"status": "ready" if ready else "not_ready", "version": settings.VERSION, **checks},
            status=200 if ready else 503,
        )
