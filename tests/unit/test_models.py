from datetime import date
from decimal import Decimal

from payslip_app.core.models import PayslipData, StoredPayslip, UserData
from tests.fixtures.payslips import make_payslip_payload


def test_payslip_accepts_camel_case_and_coerces_amounts():
    payslip = PayslipData.model_validate(
        make_payslip_payload(basicSalary="5,000.50", bonus=None, dependentChildren="3")
    )
    assert payslip.basic_salary == Decimal("5000.50")
    assert payslip.bonus == Decimal("0")
    assert payslip.dependent_children == 3
    assert payslip.company_name == "Syarikat Maju Sdn Bhd"


def test_payslip_defaults_to_current_period():
    payslip = PayslipData()
    today = date.today()
    assert payslip.month == today.strftime("%B")
    assert payslip.year == str(today.year)
    assert payslip.issue_date == today.isoformat()
    assert payslip.epf_rate == "11%"
    assert payslip.socso_type == "both"
    assert payslip.eis_type == "auto"


def test_with_deductions_fills_employee_and_employer_amounts():
    payslip = PayslipData.model_validate(make_payslip_payload())
    assert payslip.needs_recalculation()
    filled = payslip.with_deductions()
    assert not filled.needs_recalculation()
    assert filled.pcb_deduction == Decimal("180.00")
    assert filled.epf_employer == Decimal("780.00")
    assert filled.hrdf == Decimal("25.00")
    assert payslip.pcb_deduction == Decimal("0")


def test_totals_follow_stored_deductions():
    payslip = PayslipData.model_validate(make_payslip_payload()).with_deductions()
    assert payslip.totals() == {
        "totalEarnings": Decimal("6000.00"),
        "totalDeductions": Decimal("868.00"),
        "netIncome": Decimal("5132.00"),
    }


def test_to_record_uses_camel_case_and_floats():
    record = PayslipData.model_validate(make_payslip_payload()).with_deductions().to_record()
    assert record["basicSalary"] == 5000.0
    assert record["epfEmployeeDeduction"] == 660.0
    assert "basic_salary" not in record


def test_previous_totals_flag():
    payslip = PayslipData.model_validate(make_payslip_payload())
    assert not payslip.has_previous_totals()
    assert PayslipData.model_validate(make_payslip_payload(previousPcb=120)).has_previous_totals()


def test_stored_payslip_round_trips_through_record():
    stored = StoredPayslip(id="abc", user_id="siti@example.com", data=make_payslip_payload())
    restored = StoredPayslip.model_validate(stored.to_record())
    assert restored.user_id == "siti@example.com"
    assert restored.payslip().employee_name == "Siti Aminah"
    assert "createdAt" in stored.to_record()


def test_user_data_ignores_missing_values():
    user = UserData.model_validate({"name": None, "email": "a@b.co"})
    assert user.name == ""
    assert user.phone == ""
