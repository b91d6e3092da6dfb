from __future__ import annotations

import logging
import uuid
from datetime import timedelta

from fastapi import Request, Response

from payslip_app.core.models import Session, utcnow
from payslip_app.storage import KvStore

logger = logging.getLogger("payslip_app.auth")

PAYSLIP_SESSION_COOKIE = "payslip_session"
API_SESSION_COOKIE = "api_session"


class SessionManager:
    """Cookie-backed sessions persisted in the key-value store."""

    def __init__(self, store: KvStore, cookie_name: str, prefix: str, ttl: timedelta) -> None:
        self.store = store
        self.cookie_name = cookie_name
        self.prefix = prefix
        self.ttl = ttl

    def create_session(self, user_email: str, user_id: str | None = None) -> Session:
        now = utcnow()
        session = Session(
            id=str(uuid.uuid4()),
            user_email=user_email,
            user_id=user_id,
            created_at=now,
            expires_at=now + self.ttl,
        )
        self.store.set((self.prefix, session.id), session.to_record())
        return session

    def load(self, session_id: str | None) -> Session | None:
        if not session_id:
            return None
        raw = self.store.get((self.prefix, session_id))
        if raw is None:
            return None
        session = Session.model_validate(raw)
        if utcnow() > session.expires_at:
            logger.debug("Session %s expired", session.id)
            self.store.delete((self.prefix, session_id))
            return None
        return session

    def get_session(self, request: Request) -> Session | None:
        return self.load(request.cookies.get(self.cookie_name))

    def set_session_cookie(self, session: Session, response: Response) -> Response:
        response.set_cookie(
            self.cookie_name,
            session.id,
            expires=session.expires_at,
            path="/",
            httponly=True,
            samesite="lax",
        )
        return response

    def delete_session(self, request: Request) -> None:
        session_id = request.cookies.get(self.cookie_name)
        if session_id:
            self.store.delete((self.prefix, session_id))

    def clear_cookie(self, response: Response) -> Response:
        response.delete_cookie(self.cookie_name, path="/")
        return response


def payslip_sessions(store: KvStore, ttl: timedelta) -> SessionManager:
    return SessionManager(store, PAYSLIP_SESSION_COOKIE, "sessions", ttl)


def api_sessions(store: KvStore, ttl: timedelta) -> SessionManager:
    return SessionManager(store, API_SESSION_COOKIE, "apiSessions", ttl)
