from __future__ import annotations

import hashlib
import hmac
import logging
import secrets
import uuid
from typing import Any, Callable, TypeVar

from payslip_app.core.models import ApiKey, ApiUser, utcnow
from payslip_app.storage import KvStore

logger = logging.getLogger("payslip_app.auth")

API_USERS = "apiUsers"
API_USERS_BY_EMAIL = "apiUsersByEmail"
_PBKDF2_ROUNDS = 100_000

T = TypeVar("T")


class DuplicateUserError(Exception):
    pass


class UserNotFoundError(Exception):
    pass


def hash_password(password: str, *, salt: str | None = None) -> str:
    salt = salt or secrets.token_hex(16)
    digest = hashlib.pbkdf2_hmac("sha256", password.encode("utf-8"), salt.encode("utf-8"), _PBKDF2_ROUNDS)
    return f"pbkdf2_sha256${_PBKDF2_ROUNDS}${salt}${digest.hex()}"


def verify_password(password: str, stored: str) -> bool:
    try:
        _, rounds, salt, expected = stored.split("$", 3)
        digest = hashlib.pbkdf2_hmac("sha256", password.encode("utf-8"), salt.encode("utf-8"), int(rounds))
    except ValueError:
        return False
    return hmac.compare_digest(digest.hex().encode("utf-8"), expected.encode("utf-8"))


def mask_key(key: str) -> str:
    if len(key) <= 12:
        return key[:4] + "..."
    return f"{key[:8]}...{key[-4:]}"


def _save(store: KvStore, user: ApiUser) -> None:
    store.set((API_USERS, user.id), user.to_record())


def get_api_user_by_id(store: KvStore, user_id: str) -> ApiUser | None:
    raw = store.get((API_USERS, user_id))
    return None if raw is None else ApiUser.model_validate(raw)


def get_api_user_by_email(store: KvStore, email: str) -> ApiUser | None:
    user_id = store.get((API_USERS_BY_EMAIL, email))
    if not user_id:
        return None
    return get_api_user_by_id(store, user_id)


def get_all_users(store: KvStore) -> list[ApiUser]:
    return [ApiUser.model_validate(raw) for raw in store.list((API_USERS,))]


def create_api_user(store: KvStore, name: str, email: str, password: str) -> ApiUser:
    if get_api_user_by_email(store, email) is not None:
        raise DuplicateUserError("User with this email already exists")
    user = ApiUser(
        id=str(uuid.uuid4()),
        name=name,
        email=email,
        password_hash=hash_password(password),
    )
    _save(store, user)
    store.set((API_USERS_BY_EMAIL, email), user.id)
    logger.info("Created API user %s", user.id)
    return user


def verify_api_user(store: KvStore, email: str, password: str) -> ApiUser | None:
    user = get_api_user_by_email(store, email)
    if user is None:
        return None
    return user if verify_password(password, user.password_hash) else None


def _change_user(store: KvStore, user_id: str, change: Callable[[ApiUser], T]) -> T:
    """Apply ``change`` to the stored user and write it back under the store lock."""
    outcome: list[T] = []

    def apply(raw: Any | None) -> dict[str, Any]:
        if raw is None:
            raise UserNotFoundError("User not found")
        user = ApiUser.model_validate(raw)
        outcome.append(change(user))
        return user.to_record()

    store.update((API_USERS, user_id), apply)
    return outcome[0]


def generate_api_key(store: KvStore, user_id: str, name: str) -> ApiKey:
    api_key = ApiKey(
        id=str(uuid.uuid4()),
        name=name,
        key=uuid.uuid4().hex + uuid.uuid4().hex,
    )
    _change_user(store, user_id, lambda user: user.api_keys.append(api_key))
    logger.info("Issued API key %s (%s) for user %s", api_key.id, mask_key(api_key.key), user_id)
    return api_key


def revoke_api_key(store: KvStore, user_id: str, key_id: str) -> bool:
    def drop(user: ApiUser) -> bool:
        remaining = [key for key in user.api_keys if key.id != key_id]
        revoked = len(remaining) != len(user.api_keys)
        user.api_keys = remaining
        return revoked

    return _change_user(store, user_id, drop)


def _matches(api_key: ApiKey, key: str) -> bool:
    return hmac.compare_digest(api_key.key.encode("utf-8"), key.encode("utf-8"))


def record_api_key_usage(store: KvStore, key: str) -> bool:
    """Meter one request against ``key``; False when no user owns it."""
    if not key:
        return False
    owner = next(
        (user for user in get_all_users(store) if any(_matches(item, key) for item in user.api_keys)),
        None,
    )
    if owner is None:
        return False

    def bump(user: ApiUser) -> bool:
        for api_key in user.api_keys:
            if _matches(api_key, key):
                api_key.last_used = utcnow()
                api_key.usage_count += 1
                return True
        return False

    try:
        return _change_user(store, owner.id, bump)
    except UserNotFoundError:
        return False
