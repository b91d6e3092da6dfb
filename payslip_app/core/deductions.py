"""Malaysian statutory payroll deductions.

Amounts are computed with :class:`~decimal.Decimal` and every output field is
rounded on its own to two places, half-up. EPF is charged on basic salary plus
bonus without a ceiling; SOCSO and EIS only see basic salary, capped at the
contribution ceiling of the rate table. PCB is a flat-rate approximation and
is not the monthly tax deduction schedule.
"""
from __future__ import annotations

from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from typing import Any

from .rates import MALAYSIA_RATES, EisType, EpfRate, RateTable, SocsoRates, SocsoType

_CENT = Decimal("0.01")
_ZERO = Decimal("0")

Amount = Decimal | float | int


def to_decimal(value: Amount) -> Decimal:
    return value if isinstance(value, Decimal) else Decimal(str(value))


def round2(value: Amount) -> Decimal:
    return to_decimal(value).quantize(_CENT, rounding=ROUND_HALF_UP)


def coerce_amount(value: Any) -> Decimal:
    """Turn a raw form or JSON value into an amount; anything unusable is zero."""
    if value is None or isinstance(value, bool):
        return _ZERO
    if isinstance(value, str):
        value = value.strip().replace(",", "")
        if not value:
            return _ZERO
    try:
        amount = to_decimal(value)
    except (InvalidOperation, ValueError, TypeError):
        return _ZERO
    if not amount.is_finite():
        return _ZERO
    return amount


@dataclass(frozen=True)
class DeductionResult:
    pcb_deduction: Decimal
    epf_employee_deduction: Decimal
    socso_employee: Decimal
    eis_employee: Decimal
    epf_employer: Decimal
    socso_employer: Decimal
    eis_employer: Decimal
    hrdf: Decimal

    def as_fields(self) -> dict[str, Decimal]:
        return {
            "pcbDeduction": self.pcb_deduction,
            "epfEmployeeDeduction": self.epf_employee_deduction,
            "socsoEmployee": self.socso_employee,
            "eisEmployee": self.eis_employee,
            "epfEmployer": self.epf_employer,
            "socsoEmployer": self.socso_employer,
            "eisEmployer": self.eis_employer,
            "hrdf": self.hrdf,
        }

    def to_payload(self) -> dict[str, float]:
        return {name: float(value) for name, value in self.as_fields().items()}

    @property
    def employee_total(self) -> Decimal:
        return total_deductions(
            self.pcb_deduction,
            self.epf_employee_deduction,
            self.socso_employee,
            self.eis_employee,
        )


def resolve_epf_employee_rate(epf_rate: EpfRate | str | None, rates: RateTable = MALAYSIA_RATES) -> Decimal:
    return rates.epf_employee[EpfRate.parse(epf_rate)]


def resolve_socso_rates(socso_type: SocsoType | str | None, rates: RateTable = MALAYSIA_RATES) -> SocsoRates:
    return rates.socso[SocsoType.parse(socso_type)]


def resolve_eis_rate(eis_type: EisType | str | None, rates: RateTable = MALAYSIA_RATES) -> Decimal:
    if EisType.parse(eis_type) is EisType.AUTO:
        return rates.eis
    return _ZERO


def calculate_deductions(
    basic_salary: Amount,
    bonus: Amount,
    epf_rate: EpfRate | str | None,
    socso_type: SocsoType | str | None,
    eis_type: EisType | str | None,
    *,
    rates: RateTable = MALAYSIA_RATES,
) -> DeductionResult:
    salary = to_decimal(basic_salary)
    total_income = salary + to_decimal(bonus)
    capped_salary = min(salary, rates.contribution_cap)

    epf_employee_rate = resolve_epf_employee_rate(epf_rate, rates)
    socso = resolve_socso_rates(socso_type, rates)
    eis_rate = resolve_eis_rate(eis_type, rates)
    eis_amount = round2(capped_salary * eis_rate)

    return DeductionResult(
        pcb_deduction=round2(total_income * rates.pcb_flat),
        epf_employee_deduction=round2(total_income * epf_employee_rate),
        socso_employee=round2(capped_salary * socso.employee),
        eis_employee=eis_amount,
        epf_employer=round2(total_income * rates.epf_employer),
        socso_employer=round2(capped_salary * socso.employer),
        eis_employer=eis_amount,
        hrdf=round2(salary * rates.hrdf),
    )


def total_earnings(salary: Amount, bonus: Amount) -> Decimal:
    return round2(to_decimal(salary) + to_decimal(bonus))


def total_deductions(pcb: Amount, epf_employee: Amount, socso_employee: Amount, eis_employee: Amount) -> Decimal:
    return round2(
        to_decimal(pcb) + to_decimal(epf_employee) + to_decimal(socso_employee) + to_decimal(eis_employee)
    )


def net_income(
    salary: Amount,
    bonus: Amount,
    pcb: Amount,
    epf_employee: Amount,
    socso_employee: Amount,
    eis_employee: Amount,
) -> Decimal:
    deductions = (
        to_decimal(pcb) + to_decimal(epf_employee) + to_decimal(socso_employee) + to_decimal(eis_employee)
    )
    return round2(to_decimal(salary) + to_decimal(bonus) - deductions)


__all__ = [
    "DeductionResult",
    "calculate_deductions",
    "coerce_amount",
    "net_income",
    "resolve_eis_rate",
    "resolve_epf_employee_rate",
    "resolve_socso_rates",
    "round2",
    "to_decimal",
    "total_deductions",
    "total_earnings",
]
