"""
Security Diagnostics API
========================

Read-mostly FastAPI surface over a SecurityContext for debugging tools:
- GET    /health                      Service and configuration status
- GET    /security/events             Events (optional type/severity filters)
- GET    /security/metrics            Rolling counters
- GET    /security/report             Exported report
- POST   /security/monitoring/toggle  Turn input monitoring on/off
- DELETE /security/events             Clear events and counters
- GET    /session                     Current session status (read-only)

There is deliberately no login endpoint. Every response carries the
security headers for the configured mode.

Author: jetgause
Created: 2025-12-12
Version: 1.0.0
"""

import logging
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from typing import Any, Dict, Optional

import uvicorn
from fastapi import FastAPI, Query, Request

from crm_security import __version__
from crm_security.context import SecurityContext, create_security_context
from crm_security.monitor import SecurityEventType, Severity

logger = logging.getLogger(__name__)

# Hardened mode
SECURITY_HEADERS: Dict[str, str] = {
    "X-Frame-Options": "DENY",
    "X-Content-Type-Options": "nosniff",
    "X-XSS-Protection": "1; mode=block",
    "Referrer-Policy": "strict-origin-when-cross-origin",
    "Strict-Transport-Security": "max-age=31536000; includeSubDomains",
    "Content-Security-Policy": "; ".join([
        "default-src 'self'",
        "script-src 'self'",
        "style-src 'self'",
        "img-src 'self' data: https:",
        "font-src 'self' data:",
        "connect-src 'self'",
        "frame-ancestors 'none'",
        "base-uri 'self'",
        "form-action 'self'",
    ]),
}

# Demo mode: permissive enough for local dev tooling
DEV_SECURITY_HEADERS: Dict[str, str] = {
    "X-Frame-Options": "SAMEORIGIN",
    "X-Content-Type-Options": "nosniff",
    "Referrer-Policy": "strict-origin-when-cross-origin",
    "Content-Security-Policy": "; ".join([
        "default-src 'self'",
        "script-src 'self' 'unsafe-inline' 'unsafe-eval'",
        "style-src 'self' 'unsafe-inline'",
        "img-src 'self' data: https: http:",
        "font-src 'self' data:",
        "connect-src 'self' ws: wss:",
        "frame-ancestors 'self'",
        "base-uri 'self'",
        "form-action 'self'",
    ]),
}


def get_security_headers(context: SecurityContext) -> Dict[str, str]:
    return SECURITY_HEADERS if context.config.is_hardened else DEV_SECURITY_HEADERS


def create_diagnostics_app(context: SecurityContext) -> FastAPI:
    """
    Build the diagnostics app for a context.

    Monitor housekeeping runs for the lifetime of the app.
    """

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        await context.start()
        try:
            yield
        finally:
            await context.stop()

    app = FastAPI(
        title="CRM Security Diagnostics",
        description="Security event monitoring and session status",
        version=__version__,
        lifespan=lifespan,
    )
    app.state.security = context
    headers = get_security_headers(context)

    @app.middleware("http")
    async def add_security_headers(request: Request, call_next):
        response = await call_next(request)
        for name, value in headers.items():
            if value:
                response.headers[name] = value
        return response

    @app.get("/health")
    async def health_check():
        """Service health with configuration checks."""
        config = context.config
        checks = {
            "hardened_mode": config.is_hardened,
            "real_encryption": context.secure_store.cipher.name != "reversible-encoding",
            "monitoring_enabled": context.monitor.is_monitoring,
        }
        return {
            "status": "healthy",
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "version": __version__,
            "environment": config.mode.value,
            "security": {
                "status": "secure" if all(checks.values()) else "warnings",
                "checks": checks,
            },
        }

    @app.get("/security/events")
    async def list_events(
        event_type: Optional[SecurityEventType] = Query(None, alias="type"),
        severity: Optional[Severity] = None
    ):
        events = context.monitor.events
        if event_type is not None:
            events = [e for e in events if e.type == event_type]
        if severity is not None:
            events = [e for e in events if e.severity == severity]
        return {"count": len(events), "events": [e.to_dict() for e in events]}

    @app.get("/security/metrics")
    async def get_metrics():
        return context.monitor.metrics.to_dict()

    @app.get("/security/report")
    async def get_report():
        return context.monitor.export_report().to_dict()

    @app.post("/security/monitoring/toggle")
    async def toggle_monitoring():
        return {"monitoring": context.monitor.toggle_monitoring()}

    @app.delete("/security/events")
    async def clear_events():
        context.monitor.clear_all_events()
        return {"cleared": True}

    @app.get("/session")
    async def session_status() -> Dict[str, Any]:
        session = context.session
        user = session.current_user
        return {
            "state": session.state.value,
            "is_authenticated": session.is_authenticated,
            "is_loading": session.is_loading,
            "user": user.model_dump(mode="json") if user else None,
            "permissions": sorted(session.permissions),
        }

    return app


def run():
    """Serve the diagnostics API (console script entry point)."""
    context = create_security_context()
    app = create_diagnostics_app(context)
    context.session.restore()
    logger.info(
        f"Starting diagnostics API on "
        f"{context.config.diagnostics_host}:{context.config.diagnostics_port}"
    )
    uvicorn.run(
        app,
        host=context.config.diagnostics_host,
        port=context.config.diagnostics_port,
        log_level=context.config.log_level.lower(),
        server_header=False,
    )


__all__ = [
    'SECURITY_HEADERS',
    'DEV_SECURITY_HEADERS',
    'get_security_headers',
    'create_diagnostics_app',
    'run',
]


if __name__ == "__main__":
    run()
