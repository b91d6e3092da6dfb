from decimal import Decimal

import pytest

from payslip_app.core import (
    MALAYSIA_RATES,
    EisType,
    EpfRate,
    RateTable,
    SocsoRates,
    SocsoType,
    calculate_deductions,
    coerce_amount,
    net_income,
    resolve_epf_employee_rate,
    resolve_socso_rates,
    round2,
    total_deductions,
    total_earnings,
)
from payslip_app.core.deductions import resolve_eis_rate

D = Decimal


def _amounts(result):
    return (
        result.pcb_deduction,
        result.epf_employee_deduction,
        result.socso_employee,
        result.eis_employee,
        result.epf_employer,
        result.socso_employer,
        result.eis_employer,
        result.hrdf,
    )


@pytest.mark.parametrize(
    "label,expected",
    [("0%", "0"), ("9%", "0.09"), ("5.5%", "0.055"), ("11%", "0.11")],
)
def test_epf_employee_rate_labels(label, expected):
    assert resolve_epf_employee_rate(label) == D(expected)


@pytest.mark.parametrize("label", ["12%", "", None, "eleven"])
def test_unknown_epf_label_falls_back_to_eleven_percent(label):
    assert resolve_epf_employee_rate(label) == D("0.11")


def test_socso_rate_labels():
    assert resolve_socso_rates("both") == SocsoRates(D("0.005"), D("0.0175"))
    assert resolve_socso_rates("injury") == SocsoRates(D("0"), D("0.0125"))
    assert resolve_socso_rates("none") == SocsoRates(D("0"), D("0"))
    assert resolve_socso_rates("everything") == SocsoRates(D("0"), D("0"))


def test_eis_rate_only_when_auto():
    assert resolve_eis_rate("auto") == D("0.002")
    assert resolve_eis_rate("none") == D("0")
    assert resolve_eis_rate("AUTO") == D("0")


def test_reference_case_full_coverage():
    result = calculate_deductions(5000, 1000, "11%", "both", "auto")
    assert _amounts(result) == (
        D("180.00"),
        D("660.00"),
        D("20.00"),
        D("8.00"),
        D("780.00"),
        D("70.00"),
        D("8.00"),
        D("25.00"),
    )
    assert result.employee_total == D("868.00")


def test_reference_case_injury_only_without_eis():
    result = calculate_deductions(3000, 0, "9%", "injury", "none")
    assert _amounts(result) == (
        D("90.00"),
        D("270.00"),
        D("0.00"),
        D("0.00"),
        D("390.00"),
        D("37.50"),
        D("0.00"),
        D("15.00"),
    )


def test_socso_and_eis_are_capped_at_4000():
    at_cap = calculate_deductions(4000, 0, "11%", "both", "auto")
    above_cap = calculate_deductions(12000, 0, "11%", "both", "auto")
    assert above_cap.socso_employee == at_cap.socso_employee == D("20.00")
    assert above_cap.socso_employer == at_cap.socso_employer == D("70.00")
    assert above_cap.eis_employee == above_cap.eis_employer == D("8.00")


def test_bonus_does_not_touch_capped_contributions():
    without_bonus = calculate_deductions(3000, 0, "11%", "both", "auto")
    with_bonus = calculate_deductions(3000, 5000, "11%", "both", "auto")
    assert with_bonus.socso_employee == without_bonus.socso_employee
    assert with_bonus.eis_employee == without_bonus.eis_employee
    assert with_bonus.hrdf == without_bonus.hrdf


def test_epf_is_not_capped():
    result = calculate_deductions(20000, 5000, "11%", "both", "auto")
    assert result.epf_employee_deduction == D("2750.00")
    assert result.epf_employer == D("3250.00")
    assert result.pcb_deduction == D("750.00")


def test_zero_salary_gives_zero_everywhere():
    result = calculate_deductions(0, 0, "11%", "both", "auto")
    assert all(amount == 0 for amount in _amounts(result))


def test_unknown_categories_fall_back_to_not_covered():
    result = calculate_deductions(3000, 0, "bogus", "bogus", "bogus")
    assert result.epf_employee_deduction == D("330.00")
    assert result.socso_employee == result.socso_employer == D("0.00")
    assert result.eis_employee == result.eis_employer == D("0.00")


def test_calculation_is_idempotent():
    first = calculate_deductions(4321.5, 123.45, "5.5%", "both", "auto")
    second = calculate_deductions(4321.5, 123.45, "5.5%", "both", "auto")
    assert first == second


def test_enum_members_are_accepted():
    by_enum = calculate_deductions(3000, 0, EpfRate.NINE, SocsoType.INJURY, EisType.NONE)
    by_label = calculate_deductions(3000, 0, "9%", "injury", "none")
    assert by_enum == by_label


def test_rounding_is_half_up():
    assert calculate_deductions(1050, 0, "9%", "both", "auto").epf_employee_deduction == D("94.50")
    tie = calculate_deductions(1001, 0, "11%", "both", "auto")
    assert tie.hrdf == D("5.01")
    assert tie.socso_employee == D("5.01")
    assert round2(D("2.675")) == D("2.68")


def test_totals_helpers():
    assert net_income(5000, 1000, 180, 660, 20, 8) == D("5132.00")
    assert total_deductions(180, 660, 20, 8) == D("868.00")
    assert total_earnings(5000, 1000) == D("6000.00")


def test_payload_uses_camel_case_floats():
    payload = calculate_deductions(5000, 1000, "11%", "both", "auto").to_payload()
    assert payload == {
        "pcbDeduction": 180.0,
        "epfEmployeeDeduction": 660.0,
        "socsoEmployee": 20.0,
        "eisEmployee": 8.0,
        "epfEmployer": 780.0,
        "socsoEmployer": 70.0,
        "eisEmployer": 8.0,
        "hrdf": 25.0,
    }


def test_custom_rate_table_is_honoured():
    rates = RateTable(contribution_cap=D("5000"), pcb_flat=D("0"))
    result = calculate_deductions(5000, 0, "11%", "both", "auto", rates=rates)
    assert result.socso_employee == D("25.00")
    assert result.eis_employee == D("10.00")
    assert result.pcb_deduction == D("0.00")
    assert MALAYSIA_RATES.contribution_cap == D("4000")


@pytest.mark.parametrize(
    "raw,expected",
    [
        ("1,234.50", D("1234.50")),
        (" 42 ", D("42")),
        ("", D("0")),
        ("abc", D("0")),
        (None, D("0")),
        (True, D("0")),
        (float("nan"), D("0")),
        ("Infinity", D("0")),
        (12.5, D("12.5")),
    ],
)
def test_coerce_amount(raw, expected):
    assert coerce_amount(raw) == expected
