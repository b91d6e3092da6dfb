from __future__ import annotations

import io
import re
from decimal import Decimal
from pathlib import Path
from typing import Any

from jinja2 import Environment, FileSystemLoader, select_autoescape
from reportlab.lib.pagesizes import A4
from reportlab.pdfgen import canvas

from payslip_app.core.models import PayslipData
from payslip_app.core.rates import MALAYSIA_RATES

TEMPLATE_ROOT = Path(__file__).resolve().parent / "templates"
_ENV = Environment(
    loader=FileSystemLoader(str(TEMPLATE_ROOT)),
    autoescape=select_autoescape(["html"]),
)

PAGE_WIDTH, PAGE_HEIGHT = A4
LEFT_MARGIN = 50
RIGHT_MARGIN = PAGE_WIDTH - LEFT_MARGIN
LINE_HEIGHT = 16

HEADER_FONT = "Helvetica-Bold"
BODY_FONT = "Helvetica"

EMPLOYER_ROWS = (
    ("epf_employer", "EPF"),
    ("socso_employer", "SOCSO"),
    ("eis_employer", "EIS"),
    ("hrdf", "HRDF"),
)

PREVIOUS_ROWS = (
    ("previous_salary_total", "Salary"),
    ("previous_pcb", "PCB"),
    ("previous_employee_epf", "Employee EPF"),
    ("previous_employee_socso", "Employee SOCSO"),
)


def format_amount(value: Decimal | float | int | None) -> str:
    if value is None:
        return ""
    if not isinstance(value, Decimal):
        value = Decimal(str(value))
    return f"{value.quantize(Decimal('0.01')):,.2f}"


def _percent(rate: Decimal) -> str:
    return f"{(rate * 100).quantize(Decimal('0.01'))}%"


def build_payslip_view(payslip: PayslipData) -> dict[str, Any]:
    totals = payslip.totals()
    residence = "Resident" if payslip.residence_status == "resident" else "Non-resident"
    earnings = [("Salary (Basic)", payslip.basic_salary)]
    if payslip.bonus > 0:
        earnings.append(("Bonus", payslip.bonus))
    deductions = [
        ("PCB", "1", payslip.pcb_deduction),
        ("Employee EPF", "2", payslip.epf_employee_deduction),
        ("Employee SOCSO", "", payslip.socso_employee),
        ("Employee EIS", "", payslip.eis_employee),
    ]
    previous: list[tuple[str, str]] = []
    if payslip.has_previous_totals():
        previous = [(label, format_amount(getattr(payslip, attr))) for attr, label in PREVIOUS_ROWS]
    return {
        "title": f"Payslip - {payslip.employee_name} - {payslip.month} {payslip.year}",
        "period": f"{payslip.month} {payslip.year}",
        "issue_date": payslip.issue_date,
        "company_name": payslip.company_name,
        "company_address_lines": [line for line in payslip.company_address.splitlines() if line.strip()],
        "employee_name": payslip.employee_name,
        "employee_position": payslip.employee_position,
        "employee_id": payslip.employee_id,
        "epf_number": payslip.epf_number,
        "pcb_number": payslip.pcb_number,
        "earnings": [(label, format_amount(amount)) for label, amount in earnings],
        "deductions": [(label, note, format_amount(amount)) for label, note, amount in deductions],
        "employer": [(label, format_amount(getattr(payslip, attr))) for attr, label in EMPLOYER_ROWS],
        "previous": previous,
        "total_earnings": format_amount(totals["totalEarnings"]),
        "total_deductions": format_amount(totals["totalDeductions"]),
        "net_income": format_amount(totals["netIncome"]),
        "taxable_income": format_amount(totals["totalEarnings"]),
        "footnotes": [
            (
                "1",
                "Tax calculations are based on employee attributes: "
                f"{residence}, {payslip.married_status}, Dependent Children: {payslip.dependent_children}",
            ),
            (
                "2",
                f"Contributions for EPF are calculated based on {payslip.epf_rate} employee rate "
                f"and {_percent(MALAYSIA_RATES.epf_employer)} employer rate",
            ),
            (
                "3",
                "SOCSO and EIS contributions are capped at a salary of "
                f"RM{MALAYSIA_RATES.contribution_cap:,.0f}",
            ),
        ],
    }


def render_payslip_html(payslip: PayslipData) -> str:
    template = _ENV.get_template("payslip.html")
    return template.render(view=build_payslip_view(payslip))


def _sanitize_segment(value: str, fallback: str) -> str:
    segment = re.sub(r"\s+", "_", value.strip())
    segment = re.sub(r"[^A-Za-z0-9_\-]+", "", segment)
    return segment or fallback


def build_pdf_filename(payslip: PayslipData) -> str:
    name = _sanitize_segment(payslip.employee_name, "employee")
    month = _sanitize_segment(payslip.month, "month")
    year = _sanitize_segment(payslip.year, "year")
    return f"payslip-{name}-{month}-{year}.pdf"


def _draw_row(pdf: canvas.Canvas, y: float, label: str, amount: str, *, bold: bool = False) -> float:
    pdf.setFont(HEADER_FONT if bold else BODY_FONT, 10)
    pdf.drawString(LEFT_MARGIN, y, label)
    pdf.drawRightString(RIGHT_MARGIN, y, amount)
    return y - LINE_HEIGHT


def _draw_heading(pdf: canvas.Canvas, y: float, text: str) -> float:
    pdf.setFont(HEADER_FONT, 12)
    pdf.drawString(LEFT_MARGIN, y, text)
    pdf.line(LEFT_MARGIN, y - 4, RIGHT_MARGIN, y - 4)
    return y - LINE_HEIGHT - 4


def render_payslip_pdf(payslip: PayslipData) -> bytes:
    view = build_payslip_view(payslip)
    buffer = io.BytesIO()
    pdf = canvas.Canvas(buffer, pagesize=A4)
    pdf.setTitle(view["title"])

    y = PAGE_HEIGHT - 60
    pdf.setFont(HEADER_FONT, 18)
    pdf.drawString(LEFT_MARGIN, y, "PAYSLIP")
    pdf.setFont(BODY_FONT, 10)
    pdf.drawRightString(RIGHT_MARGIN, y, view["period"])
    y -= LINE_HEIGHT
    pdf.drawRightString(RIGHT_MARGIN, y, f"Issue Date: {view['issue_date']}")
    y -= LINE_HEIGHT * 2

    pdf.setFont(HEADER_FONT, 11)
    pdf.drawString(LEFT_MARGIN, y, view["company_name"])
    pdf.drawString(PAGE_WIDTH / 2, y, view["employee_name"])
    pdf.setFont(BODY_FONT, 10)
    left_lines = list(view["company_address_lines"])
    right_lines = [
        view["employee_position"],
        f"IC/Passport: {view['employee_id']}",
        f"EPF Number: {view['epf_number']}",
        f"PCB Number: {view['pcb_number']}",
    ]
    for index in range(max(len(left_lines), len(right_lines))):
        y -= LINE_HEIGHT
        if index < len(left_lines):
            pdf.drawString(LEFT_MARGIN, y, left_lines[index])
        if index < len(right_lines):
            pdf.drawString(PAGE_WIDTH / 2, y, right_lines[index])
    y -= LINE_HEIGHT * 2

    y = _draw_heading(pdf, y, "Earnings (RM)")
    for label, amount in view["earnings"]:
        y = _draw_row(pdf, y, label, amount)
    y = _draw_row(pdf, y, "Total Earnings", view["total_earnings"], bold=True)
    y -= LINE_HEIGHT

    y = _draw_heading(pdf, y, "Deductions (RM)")
    for label, note, amount in view["deductions"]:
        y = _draw_row(pdf, y, f"{label} ({note})" if note else label, amount)
    y = _draw_row(pdf, y, "Total Deductions", view["total_deductions"], bold=True)
    y -= LINE_HEIGHT
    y = _draw_row(pdf, y, "Net Income", view["net_income"], bold=True)
    y = _draw_row(pdf, y, "Taxable Income", view["taxable_income"])
    y -= LINE_HEIGHT

    y = _draw_heading(pdf, y, "Employer Contributions (RM)")
    for label, amount in view["employer"]:
        y = _draw_row(pdf, y, label, amount)

    if view["previous"]:
        y -= LINE_HEIGHT
        y = _draw_heading(pdf, y, "Previous Payslips This Year (RM)")
        for label, amount in view["previous"]:
            y = _draw_row(pdf, y, label, amount)

    y -= LINE_HEIGHT
    pdf.setFont(BODY_FONT, 8)
    for marker, text in view["footnotes"]:
        pdf.drawString(LEFT_MARGIN, y, f"({marker}) {text}")
        y -= LINE_HEIGHT - 4

    pdf.showPage()
    pdf.save()
    return buffer.getvalue()
