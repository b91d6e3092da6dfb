from __future__ import annotations

from dataclasses import dataclass
from datetime import timedelta

from fastapi import HTTPException, Request

from payslip_app.auth import SessionManager, api_sessions, payslip_sessions
from payslip_app.config import Settings
from payslip_app.storage import KvStore


@dataclass
class AppContext:
    """Everything a request handler needs that outlives a single request."""

    settings: Settings
    store: KvStore
    sessions: SessionManager
    api_sessions: SessionManager
    default_api_key: str | None = None


def build_context(settings: Settings, store: KvStore) -> AppContext:
    ttl = timedelta(hours=settings.session_ttl_hours)
    return AppContext(
        settings=settings,
        store=store,
        sessions=payslip_sessions(store, ttl),
        api_sessions=api_sessions(store, ttl),
    )


def get_context(request: Request) -> AppContext:
    context = getattr(request.app.state, "context", None)
    if not isinstance(context, AppContext):
        raise HTTPException(status_code=503, detail="Application is not initialised")
    return context
