from __future__ import annotations

import logging

from payslip_app.config import Settings
from payslip_app.storage import KvStore

from .api_users import (
    DuplicateUserError,
    UserNotFoundError,
    create_api_user,
    generate_api_key,
    get_api_user_by_email,
    mask_key,
)

logger = logging.getLogger("payslip_app.auth")


class ApiKeyInitError(RuntimeError):
    pass


def initialize_default_api_key(store: KvStore, settings: Settings) -> str:
    """Make sure the admin account exists and owns the internal API key.

    The form pages call the JSON API with this key, so it is created on first
    start and reused afterwards.
    """
    admin = get_api_user_by_email(store, settings.admin_email)
    if admin is None:
        logger.info("Creating admin user %s", settings.admin_email)
        try:
            admin = create_api_user(store, settings.admin_name, settings.admin_email, settings.admin_password)
        except DuplicateUserError as exc:
            raise ApiKeyInitError("Could not initialize API key system - admin user creation failed") from exc

    existing = next((key for key in admin.api_keys if key.name == settings.default_api_key_name), None)
    if existing is not None:
        logger.info("Using existing default API key %s", mask_key(existing.key))
        return existing.key

    try:
        created = generate_api_key(store, admin.id, settings.default_api_key_name)
    except UserNotFoundError as exc:
        raise ApiKeyInitError("Could not initialize API key system - key generation failed") from exc
    logger.info("Generated default API key %s", mask_key(created.key))
    return created.key
