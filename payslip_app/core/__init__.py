from .deductions import (
    DeductionResult,
    calculate_deductions,
    coerce_amount,
    net_income,
    resolve_epf_employee_rate,
    resolve_socso_rates,
    round2,
    total_deductions,
    total_earnings,
)
from .rates import MALAYSIA_RATES, EisType, EpfRate, RateTable, SocsoRates, SocsoType

__all__ = [
    "DeductionResult",
    "EisType",
    "EpfRate",
    "MALAYSIA_RATES",
    "RateTable",
    "SocsoRates",
    "SocsoType",
    "calculate_deductions",
    "coerce_amount",
    "net_income",
    "resolve_epf_employee_rate",
    "resolve_socso_rates",
    "round2",
    "total_deductions",
    "total_earnings",
]
