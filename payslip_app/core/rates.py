from __future__ import annotations

from dataclasses import dataclass, field
from decimal import Decimal
from enum import Enum

D = Decimal


class EpfRate(str, Enum):
    ZERO = "0%"
    NINE = "9%"
    FIVE_POINT_FIVE = "5.5%"
    ELEVEN = "11%"

    @classmethod
    def parse(cls, value: "EpfRate | str | None") -> "EpfRate":
        try:
            return cls(value)
        except ValueError:
            return cls.ELEVEN


class SocsoType(str, Enum):
    BOTH = "both"
    INJURY = "injury"
    NONE = "none"

    @classmethod
    def parse(cls, value: "SocsoType | str | None") -> "SocsoType":
        try:
            return cls(value)
        except ValueError:
            return cls.NONE


class EisType(str, Enum):
    AUTO = "auto"
    NONE = "none"

    @classmethod
    def parse(cls, value: "EisType | str | None") -> "EisType":
        try:
            return cls(value)
        except ValueError:
            return cls.NONE


@dataclass(frozen=True)
class SocsoRates:
    employee: Decimal
    employer: Decimal


def _default_epf_employee() -> dict[EpfRate, Decimal]:
    return {
        EpfRate.ZERO: D("0"),
        EpfRate.NINE: D("0.09"),
        EpfRate.FIVE_POINT_FIVE: D("0.055"),
        EpfRate.ELEVEN: D("0.11"),
    }


def _default_socso() -> dict[SocsoType, SocsoRates]:
    # Employment Injury + Invalidity, or Employment Injury only.
    return {
        SocsoType.BOTH: SocsoRates(employee=D("0.005"), employer=D("0.0175")),
        SocsoType.INJURY: SocsoRates(employee=D("0"), employer=D("0.0125")),
        SocsoType.NONE: SocsoRates(employee=D("0"), employer=D("0")),
    }


@dataclass(frozen=True)
class RateTable:
    epf_employee: dict[EpfRate, Decimal] = field(default_factory=_default_epf_employee)
    epf_employer: Decimal = D("0.13")
    socso: dict[SocsoType, SocsoRates] = field(default_factory=_default_socso)
    eis: Decimal = D("0.002")
    pcb_flat: Decimal = D("0.03")  # flat approximation, not the MTD schedule
    hrdf: Decimal = D("0.005")
    contribution_cap: Decimal = D("4000")


MALAYSIA_RATES = RateTable()
