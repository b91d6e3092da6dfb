from payslip_app.core.models import PayslipData, UserInfo
from payslip_app.core.validate import (
    is_valid_email,
    issues_by_field,
    missing_preview_field,
    validate_payslip_step,
    validate_user_info,
)
from tests.fixtures.payslips import make_payslip_payload


def _codes(issues):
    return [issue.code for issue in issues]


def test_company_step_requires_name():
    issues = validate_payslip_step("company-info", PayslipData(company_name="  "))
    assert _codes(issues) == ["company_name_missing"]
    assert issues_by_field(issues) == {"companyName": "Company name is required"}


def test_employee_step_requires_name():
    assert _codes(validate_payslip_step("employee-info", PayslipData())) == ["employee_name_missing"]
    assert validate_payslip_step("employee-info", PayslipData(employee_name="Ali")) == []


def test_pay_details_rejects_missing_or_negative_amounts():
    assert _codes(validate_payslip_step("pay-details", PayslipData())) == ["salary_missing"]
    negative = PayslipData(basic_salary=-1, bonus=-5)
    assert _codes(validate_payslip_step("pay-details", negative)) == ["salary_negative", "bonus_negative"]
    assert validate_payslip_step("pay-details", PayslipData(basic_salary=3000)) == []


def test_previous_payslips_reject_negative_amounts():
    issues = validate_payslip_step("previous-payslips", PayslipData(previous_pcb=-10))
    assert [issue.field for issue in issues] == ["previousPcb"]


def test_steps_without_rules_pass():
    assert validate_payslip_step("deductions", PayslipData()) == []
    assert validate_payslip_step("preview", PayslipData()) == []


def test_user_info_messages():
    issues = validate_user_info(UserInfo(name="", email="not-an-email", phone=""))
    assert issues_by_field(issues) == {
        "name": "Name is required",
        "email": "Invalid email format",
        "phone": "Phone number is required",
    }
    assert issues_by_field(validate_user_info(UserInfo()))["email"] == "Email is required"
    assert validate_user_info(UserInfo(name="Siti", email="siti@example.com", phone="0123456789")) == []


def test_email_pattern():
    assert is_valid_email("user@example.com")
    assert not is_valid_email("user@example")
    assert not is_valid_email("user example@test.com")
    assert not is_valid_email("")


def test_missing_preview_field_reports_first_gap():
    assert missing_preview_field(make_payslip_payload()) is None
    assert missing_preview_field(make_payslip_payload(companyName="")) == "companyName"
    payload = make_payslip_payload()
    del payload["employeeName"]
    assert missing_preview_field(payload) == "employeeName"
    assert missing_preview_field(make_payslip_payload(basicSalary=0)) == "basicSalary"
