from __future__ import annotations

import importlib
import inspect
import logging
from collections.abc import AsyncIterator, Awaitable, Callable
from contextlib import asynccontextmanager
from pathlib import Path
from typing import AsyncContextManager

from fastapi import FastAPI

from payslip_app.auth import ApiKeyInitError, initialize_default_api_key, mask_key
from payslip_app.config import Settings, get_settings
from payslip_app.context import build_context
from payslip_app.storage import KvStore, open_store

Hook = Callable[[FastAPI], Awaitable[None] | None]
StoreFactory = Callable[[Settings], KvStore]


def _require_multipart() -> None:
    try:
        importlib.import_module("python_multipart")
    except ImportError as exc:
        raise RuntimeError("python-multipart is required for form submissions") from exc


def _open_telemetry_sink(logger: logging.Logger, log_dir: str, app_label: str) -> logging.Handler | None:
    logs_dir = Path(log_dir)
    try:
        logs_dir.mkdir(parents=True, exist_ok=True)
    except OSError as exc:
        logger.warning("Unable to create logs directory %s: %s", logs_dir, exc)
        return None
    handler = logging.FileHandler(logs_dir / f"{app_label}.log", encoding="utf-8")
    handler.setLevel(logging.INFO)
    handler.setFormatter(logging.Formatter("%(asctime)s %(levelname)s %(name)s - %(message)s"))
    logger.addHandler(handler)
    return handler


async def _invoke_hook(hook: Hook | None, app: FastAPI) -> None:
    if hook is None:
        return
    try:
        result = hook(app)
        if inspect.isawaitable(result):
            await result  # type: ignore[func-returns-value]
    except Exception:  # pragma: no cover - hooks are user provided
        logging.getLogger("payslip_app").exception("Application lifecycle hook failed")


def build_application_lifespan(
    app_label: str,
    *,
    startup_hook: Hook | None = None,
    shutdown_hook: Hook | None = None,
    store_factory: StoreFactory = open_store,
) -> Callable[[FastAPI], AsyncContextManager[None]]:
    _require_multipart()
    base_logger = logging.getLogger("payslip_app")

    @asynccontextmanager
    async def _lifespan(app: FastAPI) -> AsyncIterator[None]:
        settings = get_settings()
        logger = base_logger.getChild(app_label)
        store = store_factory(settings)
        telemetry_handler: logging.Handler | None = None

        try:
            telemetry_handler = _open_telemetry_sink(base_logger, settings.log_dir, app_label)
            context = build_context(settings, store)
            try:
                context.default_api_key = initialize_default_api_key(store, settings)
                logger.info("Default API key initialised: %s", mask_key(context.default_api_key))
            except ApiKeyInitError as exc:
                logger.error("Failed to initialise default API key: %s", exc)

            app.state.context = context
            app.state.app_label = app_label
            logger.info("Startup complete: env=%s store=%s", settings.environment, settings.store_backend)
            await _invoke_hook(startup_hook, app)
            yield
        finally:
            await _invoke_hook(shutdown_hook, app)
            store.close()
            if telemetry_handler is not None:
                base_logger.removeHandler(telemetry_handler)
                telemetry_handler.close()
            for attr in ("context", "app_label"):
                if hasattr(app.state, attr):
                    delattr(app.state, attr)
            logger.info("Shutdown complete")

    return _lifespan
