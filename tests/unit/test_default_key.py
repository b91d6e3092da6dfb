import pytest

from payslip_app.auth import ApiKeyInitError, get_api_user_by_email, initialize_default_api_key
from payslip_app.auth import api_users
from payslip_app.config import get_settings


def test_default_key_is_created_once(store):
    settings = get_settings()
    first = initialize_default_api_key(store, settings)
    second = initialize_default_api_key(store, settings)
    assert first == second
    admin = get_api_user_by_email(store, settings.admin_email)
    assert [item.name for item in admin.api_keys] == ["default-internal"]


def test_failed_admin_creation_raises_init_error(store, monkeypatch):
    def refuse(*args, **kwargs):
        raise api_users.DuplicateUserError("User with this email already exists")

    monkeypatch.setattr("payslip_app.auth.default_key.create_api_user", refuse)
    with pytest.raises(ApiKeyInitError, match="admin user creation failed"):
        initialize_default_api_key(store, get_settings())
