from .http import install_error_handlers, require_api_key, router

__all__ = ["install_error_handlers", "require_api_key", "router"]
