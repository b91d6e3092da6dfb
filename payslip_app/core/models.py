from __future__ import annotations

from datetime import date, datetime, timezone
from decimal import Decimal
from typing import Annotated, Any

from pydantic import BaseModel, BeforeValidator, ConfigDict, Field, PlainSerializer
from pydantic.alias_generators import to_camel

from .deductions import calculate_deductions, coerce_amount, net_income, total_deductions, total_earnings


def _coerce_count(value: Any) -> int:
    amount = coerce_amount(value)
    return max(0, int(amount))


def _coerce_text(value: Any) -> str:
    if value is None:
        return ""
    return str(value)


Money = Annotated[
    Decimal,
    BeforeValidator(coerce_amount),
    PlainSerializer(float, return_type=float, when_used="json"),
]
Count = Annotated[int, BeforeValidator(_coerce_count)]
Text = Annotated[str, BeforeValidator(_coerce_text)]

_ZERO = Decimal("0")


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _current_month() -> str:
    return date.today().strftime("%B")


def _current_year() -> str:
    return str(date.today().year)


def _today() -> str:
    return date.today().isoformat()


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    def to_record(self) -> dict[str, Any]:
        return self.model_dump(mode="json", by_alias=True)


class PayslipData(CamelModel):
    company_name: Text = ""
    company_address: Text = ""

    employee_name: Text = ""
    employee_position: Text = ""
    employee_id: Text = ""
    epf_number: Text = ""
    pcb_number: Text = ""

    residence_status: Text = "resident"
    type_of_resident: Text = "Normal"
    married_status: Text = "Single"
    dependent_children: Count = 0

    month: Text = Field(default_factory=_current_month)
    year: Text = Field(default_factory=_current_year)
    issue_date: Text = Field(default_factory=_today)

    basic_salary: Money = _ZERO
    bonus: Money = _ZERO

    pcb_deduction: Money = _ZERO
    epf_employee_deduction: Money = _ZERO
    epf_rate: Text = "11%"
    socso_employee: Money = _ZERO
    socso_type: Text = "both"
    eis_employee: Money = _ZERO
    eis_type: Text = "auto"

    epf_employer: Money = _ZERO
    socso_employer: Money = _ZERO
    eis_employer: Money = _ZERO
    hrdf: Money = _ZERO

    previous_salary_total: Money = _ZERO
    previous_pcb: Money = _ZERO
    previous_employee_epf: Money = _ZERO
    previous_employee_socso: Money = _ZERO

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="ignore")

    def needs_recalculation(self) -> bool:
        return not all(
            (self.pcb_deduction, self.epf_employee_deduction, self.socso_employee, self.eis_employee)
        )

    def with_deductions(self) -> "PayslipData":
        result = calculate_deductions(
            self.basic_salary,
            self.bonus,
            self.epf_rate,
            self.socso_type,
            self.eis_type,
        )
        return self.model_copy(
            update={
                "pcb_deduction": result.pcb_deduction,
                "epf_employee_deduction": result.epf_employee_deduction,
                "socso_employee": result.socso_employee,
                "eis_employee": result.eis_employee,
                "epf_employer": result.epf_employer,
                "socso_employer": result.socso_employer,
                "eis_employer": result.eis_employer,
                "hrdf": result.hrdf,
            }
        )

    def totals(self) -> dict[str, Decimal]:
        return {
            "totalEarnings": total_earnings(self.basic_salary, self.bonus),
            "totalDeductions": total_deductions(
                self.pcb_deduction,
                self.epf_employee_deduction,
                self.socso_employee,
                self.eis_employee,
            ),
            "netIncome": net_income(
                self.basic_salary,
                self.bonus,
                self.pcb_deduction,
                self.epf_employee_deduction,
                self.socso_employee,
                self.eis_employee,
            ),
        }

    def has_previous_totals(self) -> bool:
        return any(
            (
                self.previous_salary_total,
                self.previous_pcb,
                self.previous_employee_epf,
                self.previous_employee_socso,
            )
        )


class UserInfo(CamelModel):
    name: Text = ""
    email: Text = ""
    phone: Text = ""


class UserData(UserInfo):
    created_at: datetime = Field(default_factory=utcnow)


class StoredPayslip(CamelModel):
    id: str
    user_id: str
    data: dict[str, Any]
    created_at: datetime = Field(default_factory=utcnow)

    def payslip(self) -> PayslipData:
        return PayslipData.model_validate(self.data)


class ApiKey(CamelModel):
    id: str
    name: str
    key: str
    last_used: datetime | None = None
    usage_count: int = 0
    created_at: datetime = Field(default_factory=utcnow)


class ApiUser(CamelModel):
    id: str
    name: str
    email: str
    password_hash: str
    api_keys: list[ApiKey] = Field(default_factory=list)
    created_at: datetime = Field(default_factory=utcnow)


class Session(CamelModel):
    id: str
    user_email: str
    user_id: str | None = None
    created_at: datetime
    expires_at: datetime
