from decimal import Decimal

import pytest

from payslip_app.core.rates import MALAYSIA_RATES, EisType, EpfRate, SocsoType


def test_enum_values_match_form_labels():
    assert [rate.value for rate in EpfRate] == ["0%", "9%", "5.5%", "11%"]
    assert [kind.value for kind in SocsoType] == ["both", "injury", "none"]
    assert [kind.value for kind in EisType] == ["auto", "none"]


@pytest.mark.parametrize(
    "parser,raw,expected",
    [
        (EpfRate.parse, "5.5%", EpfRate.FIVE_POINT_FIVE),
        (EpfRate.parse, "55%", EpfRate.ELEVEN),
        (EpfRate.parse, None, EpfRate.ELEVEN),
        (SocsoType.parse, "injury", SocsoType.INJURY),
        (SocsoType.parse, "Both", SocsoType.NONE),
        (EisType.parse, "auto", EisType.AUTO),
        (EisType.parse, "", EisType.NONE),
    ],
)
def test_parse_falls_back_for_unknown_labels(parser, raw, expected):
    assert parser(raw) is expected


def test_default_table_constants():
    assert MALAYSIA_RATES.epf_employer == Decimal("0.13")
    assert MALAYSIA_RATES.eis == Decimal("0.002")
    assert MALAYSIA_RATES.pcb_flat == Decimal("0.03")
    assert MALAYSIA_RATES.hrdf == Decimal("0.005")
    assert MALAYSIA_RATES.contribution_cap == Decimal("4000")


def test_rate_table_is_frozen():
    with pytest.raises(AttributeError):
        MALAYSIA_RATES.hrdf = Decimal("0.01")  # type: ignore[misc]
