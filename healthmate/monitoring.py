"""
Health checks for the HealthMate API.
"""

import time
import inspect
import logging
from typing import Dict, Any
from datetime import datetime, timezone

from healthmate import secrets_manager

logger = logging.getLogger(__name__)


class HealthCheck:
    """Health check status aggregator."""

    def __init__(self):
        self.start_time = time.time()
        self.checks: Dict[str, Dict[str, Any]] = {}

    def register(self, name: str, check_fn, critical: bool = False):
        """Register a health check function.

        Args:
            name: Check name (e.g., 'completion_credentials')
            check_fn: Async or sync function returning (is_healthy: bool, details: dict)
            critical: If True, whole system unhealthy if this fails
        """
        self.checks[name] = {"fn": check_fn, "critical": critical}

    async def run_all(self) -> Dict[str, Any]:
        """Run all health checks.

        Returns:
            Health status dict with overall status and per-check details
        """
        results = {}
        critical_failed = False

        for name, check_data in self.checks.items():
            checked_at = datetime.now(timezone.utc).isoformat()
            try:
                outcome = check_data["fn"]()
                if inspect.isawaitable(outcome):
                    outcome = await outcome
                healthy, details = outcome
                results[name] = {"healthy": healthy, "details": details, "checked_at": checked_at}
            except Exception as e:
                logger.warning(f"Health check {name} raised: {e}")
                healthy = False
                results[name] = {"healthy": False, "error": str(e), "checked_at": checked_at}

            if check_data["critical"] and not healthy:
                critical_failed = True

        return {
            "healthy": not critical_failed,
            "uptime_seconds": round(time.time() - self.start_time, 3),
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "checks": results,
        }


def completion_credentials_check():
    """A missing key degrades chat and advice but does not take the API down."""
    configured = bool(secrets_manager.get_api_key())
    return configured, {
        "configured": configured,
        "base_url": secrets_manager.get_base_url(),
        "model": secrets_manager.get_model_name(),
    }


health_check = HealthCheck()
health_check.register("completion_credentials", completion_credentials_check)
