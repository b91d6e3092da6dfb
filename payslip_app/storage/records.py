from __future__ import annotations

import hashlib
import time
import uuid
from typing import Any

from payslip_app.core.models import StoredPayslip, UserData

from .kv import KvStore

USERS = "users"
PAYSLIPS = "payslips"
USER_PAYSLIPS = "user-payslips"
DRAFTS = "drafts"


def generate_payslip_id() -> str:
    seed = f"{uuid.uuid4()}{time.time_ns()}".encode("utf-8")
    return hashlib.sha256(seed).hexdigest()[:16]


def save_user(store: KvStore, user: UserData) -> bool:
    return store.set((USERS, user.email), user.to_record())


def get_user_by_email(store: KvStore, email: str) -> UserData | None:
    raw = store.get((USERS, email))
    if raw is None:
        return None
    return UserData.model_validate(raw)


def save_payslip(store: KvStore, payslip: StoredPayslip) -> bool:
    record = payslip.to_record()
    store.set((PAYSLIPS, payslip.id), record)
    store.set((USER_PAYSLIPS, payslip.user_id, payslip.id), record)
    return True


def get_payslip_by_id(store: KvStore, payslip_id: str) -> StoredPayslip | None:
    raw = store.get((PAYSLIPS, payslip_id))
    if raw is None:
        return None
    return StoredPayslip.model_validate(raw)


def get_user_payslips(store: KvStore, user_id: str) -> list[StoredPayslip]:
    return [StoredPayslip.model_validate(raw) for raw in store.list((USER_PAYSLIPS, user_id))]


def get_payslips_by_user(store: KvStore, user_id: str | None) -> list[StoredPayslip]:
    if user_id:
        return get_user_payslips(store, user_id)
    return [StoredPayslip.model_validate(raw) for raw in store.list((PAYSLIPS,))]


def save_draft(store: KvStore, draft_id: str, state: dict[str, Any], step: str) -> bool:
    return store.set((DRAFTS, draft_id), {"state": state, "step": step})


def load_draft(store: KvStore, draft_id: str | None) -> tuple[dict[str, Any], str | None]:
    if not draft_id:
        return {}, None
    raw = store.get((DRAFTS, draft_id))
    if not isinstance(raw, dict):
        return {}, None
    state = raw.get("state")
    step = raw.get("step")
    return (state if isinstance(state, dict) else {}), (step if isinstance(step, str) else None)


def delete_draft(store: KvStore, draft_id: str | None) -> None:
    if draft_id:
        store.delete((DRAFTS, draft_id))
