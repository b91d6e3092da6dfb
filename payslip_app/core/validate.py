from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Any, Optional

from .models import PayslipData, UserInfo

_EMAIL_PATTERN = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")

PREVIEW_REQUIRED_FIELDS = ("companyName", "employeeName", "basicSalary")


@dataclass
class ValidationIssue:
    code: str
    message: str
    field: Optional[str] = None


def is_valid_email(value: str) -> bool:
    return bool(_EMAIL_PATTERN.match(value or ""))


def validate_payslip_step(step: str, payslip: PayslipData) -> list[ValidationIssue]:
    issues: list[ValidationIssue] = []
    if step == "company-info":
        if not payslip.company_name.strip():
            issues.append(ValidationIssue("company_name_missing", "Company name is required", "companyName"))
    elif step == "employee-info":
        if not payslip.employee_name.strip():
            issues.append(ValidationIssue("employee_name_missing", "Employee name is required", "employeeName"))
    elif step == "pay-details":
        if payslip.basic_salary < 0:
            issues.append(ValidationIssue("salary_negative", "Salary cannot be negative", "basicSalary"))
        elif not payslip.basic_salary:
            issues.append(ValidationIssue("salary_missing", "Salary is required", "basicSalary"))
        if payslip.bonus < 0:
            issues.append(ValidationIssue("bonus_negative", "Bonus cannot be negative", "bonus"))
    elif step == "previous-payslips":
        for name in ("previousSalaryTotal", "previousPcb", "previousEmployeeEpf", "previousEmployeeSocso"):
            if getattr(payslip, _snake(name)) < 0:
                issues.append(ValidationIssue("previous_negative", "Amounts cannot be negative", name))
    return issues


def validate_user_info(user: UserInfo) -> list[ValidationIssue]:
    issues: list[ValidationIssue] = []
    if not user.name.strip():
        issues.append(ValidationIssue("user_name_missing", "Name is required", "name"))
    if not user.email.strip():
        issues.append(ValidationIssue("user_email_missing", "Email is required", "email"))
    elif not is_valid_email(user.email.strip()):
        issues.append(ValidationIssue("user_email_invalid", "Invalid email format", "email"))
    if not user.phone.strip():
        issues.append(ValidationIssue("user_phone_missing", "Phone number is required", "phone"))
    return issues


def missing_preview_field(payload: dict[str, Any]) -> str | None:
    """Return the first required preview field that is absent or falsy."""
    for name in PREVIEW_REQUIRED_FIELDS:
        if not payload.get(name):
            return name
    return None


def issues_by_field(issues: list[ValidationIssue]) -> dict[str, str]:
    mapped: dict[str, str] = {}
    for issue in issues:
        mapped.setdefault(issue.field or "form", issue.message)
    return mapped


def _snake(name: str) -> str:
    return re.sub(r"(?<!^)(?=[A-Z])", "_", name).lower()
