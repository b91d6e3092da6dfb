from payslip_app.core.models import PayslipData
from payslip_app.printout import (
    build_payslip_view,
    build_pdf_filename,
    format_amount,
    render_payslip_html,
    render_payslip_pdf,
)
from tests.fixtures.payslips import make_payslip_payload


def _payslip(**overrides) -> PayslipData:
    return PayslipData.model_validate(make_payslip_payload(**overrides)).with_deductions()


def test_format_amount():
    assert format_amount(1234.5) == "1,234.50"
    assert format_amount(0) == "0.00"
    assert format_amount(None) == ""


def test_view_contains_totals_and_footnotes():
    view = build_payslip_view(_payslip())
    assert view["period"] == "March 2025"
    assert view["total_earnings"] == "6,000.00"
    assert view["total_deductions"] == "868.00"
    assert view["net_income"] == "5,132.00"
    assert view["company_address_lines"] == ["12 Jalan Ampang", "50450 Kuala Lumpur"]
    assert ("Bonus", "1,000.00") in view["earnings"]
    footnotes = dict(view["footnotes"])
    assert "Resident, Married, Dependent Children: 2" in footnotes["1"]
    assert "11% employee rate and 13.00% employer rate" in footnotes["2"]
    assert "RM4,000" in footnotes["3"]
    assert view["previous"] == []


def test_bonus_row_is_omitted_when_zero():
    view = build_payslip_view(_payslip(bonus=0))
    assert [label for label, _ in view["earnings"]] == ["Salary (Basic)"]


def test_html_rendering_escapes_and_shows_sections():
    html = render_payslip_html(_payslip(companyName="A&B <Holdings>", previousPcb=150))
    assert "A&amp;B &lt;Holdings&gt;" in html
    assert "Net Income" in html
    assert "5,132.00" in html
    assert "Employer Contributions" in html
    assert "Previous Payslips This Year" in html
    assert "window.print()" in html


def test_html_hides_previous_section_without_totals():
    assert "Previous Payslips This Year" not in render_payslip_html(_payslip())


def test_pdf_rendering_produces_pdf_bytes():
    pdf = render_payslip_pdf(_payslip(previousSalaryTotal=10000))
    assert pdf.startswith(b"%PDF")
    assert len(pdf) > 1000


def test_pdf_filename():
    assert build_pdf_filename(_payslip()) == "payslip-Siti_Aminah-March-2025.pdf"
    assert build_pdf_filename(_payslip(employeeName="  ")) == "payslip-employee-March-2025.pdf"
