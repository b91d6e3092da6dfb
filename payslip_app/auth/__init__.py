from .api_users import (
    DuplicateUserError,
    UserNotFoundError,
    create_api_user,
    generate_api_key,
    get_all_users,
    get_api_user_by_email,
    get_api_user_by_id,
    mask_key,
    record_api_key_usage,
    revoke_api_key,
    verify_api_user,
)
from .default_key import ApiKeyInitError, initialize_default_api_key
from .sessions import API_SESSION_COOKIE, PAYSLIP_SESSION_COOKIE, SessionManager, api_sessions, payslip_sessions

__all__ = [
    "API_SESSION_COOKIE",
    "ApiKeyInitError",
    "DuplicateUserError",
    "PAYSLIP_SESSION_COOKIE",
    "SessionManager",
    "UserNotFoundError",
    "api_sessions",
    "create_api_user",
    "generate_api_key",
    "get_all_users",
    "get_api_user_by_email",
    "get_api_user_by_id",
    "initialize_default_api_key",
    "mask_key",
    "payslip_sessions",
    "record_api_key_usage",
    "revoke_api_key",
    "verify_api_user",
]
