from __future__ import annotations

import json
import logging
from typing import Any

from fastapi import APIRouter, Body, Depends, FastAPI, Query, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exception_handlers import request_validation_exception_handler
from fastapi.exceptions import RequestValidationError
from fastapi.responses import HTMLResponse, JSONResponse, Response
from pydantic import BaseModel, ConfigDict, Field

from payslip_app.auth import ApiKeyInitError, initialize_default_api_key, record_api_key_usage
from payslip_app.context import AppContext, get_context
from payslip_app.core.deductions import calculate_deductions, net_income, total_earnings
from payslip_app.core.models import PayslipData, StoredPayslip, Text, UserData, UserInfo
from payslip_app.core.validate import missing_preview_field
from payslip_app.printout import build_pdf_filename, render_payslip_html, render_payslip_pdf
from payslip_app.storage import (
    StoreError,
    generate_payslip_id,
    get_payslip_by_id,
    get_user_by_email,
    get_user_payslips,
    save_payslip,
    save_user,
)

logger = logging.getLogger("payslip_app.api")

router = APIRouter(prefix="/api", tags=["api"])

UNAUTHORIZED_MESSAGE = "Unauthorized. Invalid or missing API key"


class ApiKeyRejected(Exception):
    pass


class CalculateRequest(BaseModel):
    salary: float = Field(0, ge=0, strict=True, allow_inf_nan=False)
    bonus: float = Field(0, ge=0, strict=True, allow_inf_nan=False)
    epf_rate: Text = Field("11%", alias="epfRate")
    socso_type: Text = Field("both", alias="socsoType")
    eis_type: Text = Field("auto", alias="eisType")

    model_config = ConfigDict(populate_by_name=True, extra="ignore")


class SavePayslipRequest(BaseModel):
    user_id: str | None = Field(default=None, alias="userId")
    data: dict[str, Any] | None = None

    model_config = ConfigDict(populate_by_name=True, extra="ignore")


def _presented_key(request: Request) -> str | None:
    return request.headers.get("X-API-Key") or request.query_params.get("apiKey")


def require_api_key(request: Request, ctx: AppContext = Depends(get_context)) -> str:
    key = _presented_key(request)
    if not key or not record_api_key_usage(ctx.store, key):
        logger.warning("Rejected API request to %s", request.url.path)
        raise ApiKeyRejected()
    return key


def _error(status_code: int, message: str, **extra: Any) -> JSONResponse:
    return JSONResponse({"error": message, **extra}, status_code=status_code)


def _money(values: dict[str, Any]) -> dict[str, float]:
    return {name: float(value) for name, value in values.items()}


def _prepare_payslip(payload: dict[str, Any]) -> PayslipData:
    payslip = PayslipData.model_validate(payload)
    if payslip.needs_recalculation():
        payslip = payslip.with_deductions()
    return payslip


@router.post("/calculate")
def calculate(req: CalculateRequest, _: str = Depends(require_api_key)):
    result = calculate_deductions(req.salary, req.bonus, req.epf_rate, req.socso_type, req.eis_type)
    totals = {
        "totalEarnings": total_earnings(req.salary, req.bonus),
        "totalDeductions": result.employee_total,
        "netIncome": net_income(
            req.salary,
            req.bonus,
            result.pcb_deduction,
            result.epf_employee_deduction,
            result.socso_employee,
            result.eis_employee,
        ),
    }
    return {
        "input": {
            "salary": req.salary,
            "bonus": req.bonus,
            "epfRate": req.epf_rate,
            "socsoType": req.socso_type,
            "eisType": req.eis_type,
        },
        "calculations": {**result.to_payload(), **_money(totals)},
    }


@router.post("/preview-payslip")
def preview_payslip(
    payload: dict[str, Any] = Body(...),
    output: str = Query("html", alias="format"),
    _: str = Depends(require_api_key),
) -> Response:
    missing = missing_preview_field(payload)
    if missing:
        return _error(400, f"Missing required field: {missing}")
    payslip = _prepare_payslip(payload)
    if output == "json":
        return JSONResponse(
            {
                "payslipData": payslip.to_record(),
                "calculations": _money(payslip.totals()),
            }
        )
    return HTMLResponse(render_payslip_html(payslip))


@router.post("/download-pdf")
def download_pdf(payload: dict[str, Any] = Body(...), _: str = Depends(require_api_key)) -> Response:
    missing = missing_preview_field(payload)
    if missing:
        return _error(400, f"Missing required field: {missing}")
    payslip = _prepare_payslip(payload)
    filename = build_pdf_filename(payslip)
    return Response(
        render_payslip_pdf(payslip),
        media_type="application/pdf",
        headers={
            "X-API-Generated": "true",
            "Content-Disposition": f'attachment; filename="{filename}"',
        },
    )


@router.get("/download-payslip")
@router.get("/v1/download-payslip")
def download_payslip(
    id: str | None = Query(None),
    data: str | None = Query(None),
    ctx: AppContext = Depends(get_context),
    _: str = Depends(require_api_key),
) -> Response:
    if id:
        stored = get_payslip_by_id(ctx.store, id)
        if stored is None:
            return _error(404, "Payslip not found")
        payslip = stored.payslip()
    elif data:
        try:
            raw = json.loads(data)
        except json.JSONDecodeError:
            return _error(400, "Payslip data is not valid JSON")
        if not isinstance(raw, dict):
            return _error(400, "Payslip data must be a JSON object")
        payslip = PayslipData.model_validate(raw)
    else:
        return _error(400, "Missing payslip data or ID")
    return HTMLResponse(render_payslip_html(payslip))


def _find_payslips(ctx: AppContext, payslip_id: str | None, user_id: str | None) -> Response:
    if payslip_id:
        stored = get_payslip_by_id(ctx.store, payslip_id)
        if stored is None:
            return _error(404, "Payslip not found")
        return JSONResponse(stored.to_record())
    if user_id:
        return JSONResponse([item.to_record() for item in get_user_payslips(ctx.store, user_id)])
    return _error(400, "Either userId or id parameter is required")


def _store_payslip(ctx: AppContext, req: SavePayslipRequest) -> Response:
    if not req.user_id or not req.data:
        return _error(400, "Missing required fields")
    stored = StoredPayslip(id=generate_payslip_id(), user_id=req.user_id, data=req.data)
    save_payslip(ctx.store, stored)
    logger.info("Saved payslip %s", stored.id)
    return JSONResponse({"success": True, "id": stored.id})


def _find_user(ctx: AppContext, email: str | None) -> Response:
    if not email:
        return _error(400, "Email parameter is required")
    user = get_user_by_email(ctx.store, email)
    if user is None:
        return _error(404, "User not found")
    return JSONResponse(user.to_record())


def _store_user(ctx: AppContext, info: UserInfo) -> Response:
    if not info.name or not info.email or not info.phone:
        return _error(400, "Missing required fields")
    save_user(ctx.store, UserData(name=info.name, email=info.email, phone=info.phone))
    return JSONResponse({"success": True})


@router.get("/save-payslip")
def get_saved_payslips(
    id: str | None = Query(None),
    user_id: str | None = Query(None, alias="userId"),
    ctx: AppContext = Depends(get_context),
) -> Response:
    return _find_payslips(ctx, id, user_id)


@router.post("/save-payslip")
def post_payslip(req: SavePayslipRequest, ctx: AppContext = Depends(get_context)) -> Response:
    return _store_payslip(ctx, req)


@router.get("/v1/save-payslip")
def get_saved_payslips_v1(
    id: str | None = Query(None),
    user_id: str | None = Query(None, alias="userId"),
    ctx: AppContext = Depends(get_context),
) -> Response:
    return _find_payslips(ctx, id, user_id)


@router.post("/v1/save-payslip")
def post_payslip_v1(
    req: SavePayslipRequest,
    ctx: AppContext = Depends(get_context),
    _: str = Depends(require_api_key),
) -> Response:
    return _store_payslip(ctx, req)


@router.get("/save-user")
def get_user(email: str | None = Query(None), ctx: AppContext = Depends(get_context)) -> Response:
    return _find_user(ctx, email)


@router.post("/save-user")
def post_user(info: UserInfo, ctx: AppContext = Depends(get_context)) -> Response:
    return _store_user(ctx, info)


@router.get("/v1/save-user")
def get_user_v1(
    email: str | None = Query(None),
    ctx: AppContext = Depends(get_context),
    _: str = Depends(require_api_key),
) -> Response:
    return _find_user(ctx, email)


@router.post("/v1/save-user")
def post_user_v1(
    info: UserInfo,
    ctx: AppContext = Depends(get_context),
    _: str = Depends(require_api_key),
) -> Response:
    return _store_user(ctx, info)


@router.get("/v1/get-api-key")
def get_api_key(request: Request, ctx: AppContext = Depends(get_context)) -> Response:
    host = request.headers.get("host", "")
    referer = request.headers.get("referer", "")
    if "localhost" not in host and host not in referer:
        return _error(403, "Unauthorized request")
    if ctx.default_api_key is None:
        try:
            ctx.default_api_key = initialize_default_api_key(ctx.store, ctx.settings)
        except ApiKeyInitError as exc:
            logger.error("Error getting API key: %s", exc)
            return _error(500, "Failed to get API key", message=str(exc))
    return JSONResponse({"key": ctx.default_api_key})


async def _api_key_rejected(request: Request, exc: Exception) -> JSONResponse:
    return _error(401, UNAUTHORIZED_MESSAGE)


async def _validation_failed(request: Request, exc: RequestValidationError) -> Response:
    if request.url.path.startswith("/api/"):
        # Inputs such as Infinity cannot be serialised back to JSON.
        details = [{k: v for k, v in err.items() if k != "input"} for err in exc.errors()]
        return _error(400, "Invalid input", details=jsonable_encoder(details))
    return await request_validation_exception_handler(request, exc)


async def _store_failed(request: Request, exc: Exception) -> JSONResponse:
    logger.error("Storage failure on %s: %s", request.url.path, exc)
    return _error(500, "Internal server error", details=str(exc))


def install_error_handlers(app: FastAPI) -> None:
    app.add_exception_handler(ApiKeyRejected, _api_key_rejected)
    app.add_exception_handler(RequestValidationError, _validation_failed)
    app.add_exception_handler(StoreError, _store_failed)
