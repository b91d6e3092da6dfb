from __future__ import annotations

import logging
import uuid
from datetime import date
from pathlib import Path
from typing import Any

from fastapi import APIRouter, Depends, HTTPException, Query, Request
from fastapi.responses import HTMLResponse, RedirectResponse, Response
from fastapi.templating import Jinja2Templates
from starlette.datastructures import UploadFile as StarletteUploadFile

from payslip_app.context import AppContext, get_context
from payslip_app.core.models import PayslipData, StoredPayslip, UserData, UserInfo
from payslip_app.core.validate import is_valid_email, issues_by_field, validate_payslip_step, validate_user_info
from payslip_app.printout import build_payslip_view, build_pdf_filename, render_payslip_html, render_payslip_pdf
from payslip_app.storage import (
    delete_draft,
    generate_payslip_id,
    get_payslip_by_id,
    get_user_by_email,
    get_user_payslips,
    load_draft,
    save_draft,
    save_payslip,
    save_user,
)

logger = logging.getLogger("payslip_app.ui")

router = APIRouter(tags=["ui"])

UI_ROOT = Path(__file__).resolve().parent
TEMPLATES = Jinja2Templates(directory=str(UI_ROOT / "templates"))

DRAFT_COOKIE = "payslip_draft"

FORM_STEPS: list[dict[str, str]] = [
    {"slug": "company-info", "label": "Company Information"},
    {"slug": "employee-info", "label": "Employee Information"},
    {"slug": "personal-details", "label": "Personal Details"},
    {"slug": "pay-details", "label": "Pay Details"},
    {"slug": "deductions", "label": "Deductions"},
    {"slug": "previous-payslips", "label": "Previous Payslips"},
    {"slug": "user-info", "label": "Your Information"},
    {"slug": "preview", "label": "Preview"},
]
FORM_STEP_SLUGS = [step["slug"] for step in FORM_STEPS]
DEFAULT_FORM_STEP = FORM_STEP_SLUGS[0]

MONTHS = [date(2000, number, 1).strftime("%B") for number in range(1, 13)]


def _options(*values: str) -> list[dict[str, str]]:
    return [{"value": value, "label": value} for value in values]


STEP_FIELDS: dict[str, list[dict[str, Any]]] = {
    "company-info": [
        {"name": "companyName", "label": "Company Name"},
        {"name": "companyAddress", "label": "Company Address", "input_type": "textarea"},
    ],
    "employee-info": [
        {"name": "employeeName", "label": "Employee Name"},
        {"name": "employeePosition", "label": "Position"},
        {"name": "employeeId", "label": "IC/Passport Number"},
        {"name": "epfNumber", "label": "EPF Number"},
        {"name": "pcbNumber", "label": "PCB Number"},
    ],
    "personal-details": [
        {
            "name": "residenceStatus",
            "label": "Residence Status",
            "input_type": "radio",
            "options": [
                {"value": "resident", "label": "Resident"},
                {"value": "non-resident", "label": "Non-resident"},
            ],
        },
        {
            "name": "typeOfResident",
            "label": "Type of Resident",
            "input_type": "select",
            "options": _options("Normal", "Knowledge Worker", "Returning Expert"),
        },
        {
            "name": "marriedStatus",
            "label": "Marital Status",
            "input_type": "select",
            "options": _options("Single", "Married", "Divorced", "Widowed"),
        },
        {"name": "dependentChildren", "label": "Number of Dependent Children", "inputmode": "numeric", "min": 0},
    ],
    "pay-details": [
        {"name": "month", "label": "Month", "input_type": "select", "options": _options(*MONTHS)},
        {"name": "year", "label": "Year", "inputmode": "numeric"},
        {"name": "issueDate", "label": "Issue Date", "input_type": "date"},
        {"name": "basicSalary", "label": "Basic Salary (RM)", "inputmode": "decimal"},
        {"name": "bonus", "label": "Bonus (RM)", "inputmode": "decimal"},
    ],
    "deductions": [
        {
            "name": "epfRate",
            "label": "EPF Employee Rate",
            "input_type": "radio",
            "options": _options("0%", "9%", "5.5%", "11%"),
        },
        {
            "name": "socsoType",
            "label": "SOCSO Category",
            "input_type": "radio",
            "options": [
                {"value": "both", "label": "Employment Injury and Invalidity"},
                {"value": "injury", "label": "Employment Injury only"},
                {"value": "none", "label": "Not covered"},
            ],
        },
        {
            "name": "eisType",
            "label": "EIS",
            "input_type": "radio",
            "options": [
                {"value": "auto", "label": "Calculate automatically"},
                {"value": "none", "label": "Not covered"},
            ],
        },
    ],
    "previous-payslips": [
        {"name": "previousSalaryTotal", "label": "Total Salary This Year (RM)", "inputmode": "decimal"},
        {"name": "previousPcb", "label": "Total PCB This Year (RM)", "inputmode": "decimal"},
        {"name": "previousEmployeeEpf", "label": "Total Employee EPF This Year (RM)", "inputmode": "decimal"},
        {"name": "previousEmployeeSocso", "label": "Total Employee SOCSO This Year (RM)", "inputmode": "decimal"},
    ],
    "user-info": [
        {"name": "name", "label": "Your Name"},
        {"name": "email", "label": "Email Address", "input_type": "email"},
        {"name": "phone", "label": "Phone Number", "input_type": "tel"},
    ],
    "preview": [],
}


def _form_text(val: Any) -> str:
    if isinstance(val, StarletteUploadFile):
        return val.filename or ""
    if val is None:
        return ""
    return str(val)


def _normalize_step(step: str | None) -> str:
    if not step:
        return DEFAULT_FORM_STEP
    candidate = str(step).strip().lower()
    if candidate in FORM_STEP_SLUGS:
        return candidate
    return DEFAULT_FORM_STEP


def _neighbour_step(step: str, offset: int) -> str:
    index = FORM_STEP_SLUGS.index(step) + offset
    index = max(0, min(index, len(FORM_STEP_SLUGS) - 1))
    return FORM_STEP_SLUGS[index]


def _load_form_state(ctx: AppContext, draft_id: str | None) -> tuple[PayslipData, UserInfo, str | None]:
    state, step = load_draft(ctx.store, draft_id)
    payslip = PayslipData.model_validate(state.get("payslip") or {})
    user = UserInfo.model_validate(state.get("user") or {})
    return payslip, user, step


def _store_form_state(ctx: AppContext, draft_id: str, payslip: PayslipData, user: UserInfo, step: str) -> None:
    save_draft(ctx.store, draft_id, {"payslip": payslip.to_record(), "user": user.to_record()}, step)


def _attach_draft_cookie(response: Response, draft_id: str) -> Response:
    response.set_cookie(DRAFT_COOKIE, draft_id, path="/", httponly=True, samesite="lax")
    return response


def _render_step(
    request: Request,
    step: str,
    payslip: PayslipData,
    user: UserInfo,
    *,
    field_errors: dict[str, str] | None = None,
    status_code: int = 200,
) -> HTMLResponse:
    values = {**payslip.to_record(), **user.to_record()}
    context: dict[str, Any] = {
        "form_steps": FORM_STEPS,
        "current_step": step,
        "step_number": FORM_STEP_SLUGS.index(step) + 1,
        "fields": STEP_FIELDS[step],
        "values": values,
        "field_errors": field_errors or {},
        "is_first": step == FORM_STEP_SLUGS[0],
        "view": build_payslip_view(payslip) if step in ("deductions", "preview") else None,
        "user": user,
    }
    return TEMPLATES.TemplateResponse(request, "payslip_step.html", context, status_code=status_code)


@router.get("/", response_class=HTMLResponse)
def home(request: Request, ctx: AppContext = Depends(get_context)) -> HTMLResponse:
    session = ctx.sessions.get_session(request)
    return TEMPLATES.TemplateResponse(request, "index.html", {"session": session})


@router.get("/payslip", response_class=HTMLResponse)
def payslip_form(
    request: Request,
    step: str | None = Query(None),
    ctx: AppContext = Depends(get_context),
) -> HTMLResponse:
    draft_id = request.cookies.get(DRAFT_COOKIE)
    payslip, user, saved_step = _load_form_state(ctx, draft_id)
    current_step = _normalize_step(step or saved_step)
    response = _render_step(request, current_step, payslip, user)
    if not draft_id:
        _attach_draft_cookie(response, uuid.uuid4().hex)
    return response


@router.post("/payslip/save")
def save_payslip_form(request: Request, ctx: AppContext = Depends(get_context)) -> Response:
    draft_id = request.cookies.get(DRAFT_COOKIE)
    payslip, user, _ = _load_form_state(ctx, draft_id)
    if validate_user_info(user):
        return RedirectResponse(url="/payslip?step=user-info", status_code=303)
    if payslip.basic_salary > 0:
        payslip = payslip.with_deductions()
    stored = StoredPayslip(id=generate_payslip_id(), user_id=user.email, data=payslip.to_record())
    save_payslip(ctx.store, stored)
    logger.info("Saved payslip %s from form", stored.id)

    session = ctx.sessions.create_session(user.email, user.email)
    delete_draft(ctx.store, draft_id)
    response = RedirectResponse(url="/payslip/history", status_code=303)
    ctx.sessions.set_session_cookie(session, response)
    response.delete_cookie(DRAFT_COOKIE, path="/")
    return response


@router.get("/payslip/print", response_class=HTMLResponse)
def print_draft(request: Request, ctx: AppContext = Depends(get_context)) -> HTMLResponse:
    payslip, _, _ = _load_form_state(ctx, request.cookies.get(DRAFT_COOKIE))
    return HTMLResponse(render_payslip_html(payslip))


@router.get("/payslip/pdf")
def download_draft_pdf(request: Request, ctx: AppContext = Depends(get_context)) -> Response:
    payslip, _, _ = _load_form_state(ctx, request.cookies.get(DRAFT_COOKIE))
    if not payslip.company_name or not payslip.employee_name:
        return RedirectResponse(url="/payslip", status_code=303)
    filename = build_pdf_filename(payslip)
    return Response(
        render_payslip_pdf(payslip),
        media_type="application/pdf",
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )


@router.post("/payslip/{step_slug}")
async def submit_step(request: Request, step_slug: str, ctx: AppContext = Depends(get_context)) -> Response:
    step = _normalize_step(step_slug)
    draft_id = request.cookies.get(DRAFT_COOKIE) or uuid.uuid4().hex
    payslip, user, _ = _load_form_state(ctx, draft_id)

    form = await request.form()
    submitted = {
        field["name"]: _form_text(form.get(field["name"]))
        for field in STEP_FIELDS[step]
        if field["name"] in form
    }
    if step == "user-info":
        user = UserInfo.model_validate({**user.to_record(), **submitted})
    elif submitted:
        payslip = PayslipData.model_validate({**payslip.to_record(), **submitted})
    if payslip.basic_salary > 0:
        payslip = payslip.with_deductions()

    if _form_text(form.get("action")) == "back":
        target = _neighbour_step(step, -1)
        _store_form_state(ctx, draft_id, payslip, user, target)
        response = RedirectResponse(url=f"/payslip?step={target}", status_code=303)
        return _attach_draft_cookie(response, draft_id)

    issues = validate_user_info(user) if step == "user-info" else validate_payslip_step(step, payslip)
    if issues:
        _store_form_state(ctx, draft_id, payslip, user, step)
        response = _render_step(request, step, payslip, user, field_errors=issues_by_field(issues), status_code=400)
        return _attach_draft_cookie(response, draft_id)

    if step == "user-info":
        save_user(ctx.store, UserData(name=user.name, email=user.email, phone=user.phone))
        logger.info("Saved contact details for payslip user")

    target = _neighbour_step(step, 1)
    _store_form_state(ctx, draft_id, payslip, user, target)
    response = RedirectResponse(url=f"/payslip?step={target}", status_code=303)
    return _attach_draft_cookie(response, draft_id)


@router.get("/login", response_class=HTMLResponse)
def login_page(request: Request, error: str | None = Query(None)) -> HTMLResponse:
    return TEMPLATES.TemplateResponse(request, "login.html", {"error": error, "email": ""})


@router.post("/login")
async def login(request: Request, ctx: AppContext = Depends(get_context)) -> Response:
    form = await request.form()
    email = _form_text(form.get("email")).strip()
    error = None
    if not email:
        error = "Email is required"
    elif not is_valid_email(email) or get_user_by_email(ctx.store, email) is None:
        error = "No payslips found for this email. Please generate a payslip first."
    if error:
        return TEMPLATES.TemplateResponse(
            request, "login.html", {"error": error, "email": email}, status_code=400
        )
    session = ctx.sessions.create_session(email, email)
    response = RedirectResponse(url="/payslip/history", status_code=303)
    return ctx.sessions.set_session_cookie(session, response)


@router.get("/logout")
def logout(request: Request, ctx: AppContext = Depends(get_context)) -> Response:
    ctx.sessions.delete_session(request)
    response = RedirectResponse(url="/", status_code=303)
    return ctx.sessions.clear_cookie(response)


@router.get("/payslip/history", response_class=HTMLResponse)
def payslip_history(request: Request, ctx: AppContext = Depends(get_context)) -> Response:
    session = ctx.sessions.get_session(request)
    if session is None:
        return RedirectResponse(url="/login", status_code=303)
    user = get_user_by_email(ctx.store, session.user_email)
    entries = []
    stored_items = sorted(
        get_user_payslips(ctx.store, session.user_email),
        key=lambda item: item.created_at,
        reverse=True,
    )
    for stored in stored_items:
        payslip = stored.payslip()
        totals = payslip.totals()
        entries.append(
            {
                "id": stored.id,
                "period": f"{payslip.month} {payslip.year}",
                "company_name": payslip.company_name,
                "employee_name": payslip.employee_name,
                "net_income": totals["netIncome"],
                "created_at": stored.created_at,
            }
        )
    return TEMPLATES.TemplateResponse(
        request,
        "history.html",
        {"session": session, "user": user, "entries": entries},
    )


@router.get("/payslip/history/{payslip_id}", response_class=HTMLResponse)
def view_saved_payslip(request: Request, payslip_id: str, ctx: AppContext = Depends(get_context)) -> Response:
    session = ctx.sessions.get_session(request)
    if session is None:
        return RedirectResponse(url="/login", status_code=303)
    stored = get_payslip_by_id(ctx.store, payslip_id)
    if stored is None or stored.user_id != session.user_email:
        raise HTTPException(status_code=404, detail="Payslip not found")
    return HTMLResponse(render_payslip_html(stored.payslip()))
