"""Domain value objects for type-safe business concepts."""

from __future__ import annotations

import re
import uuid
from dataclasses import dataclass
from datetime import datetime, timezone
from decimal import ROUND_HALF_EVEN, Decimal

LITERS_QUANTUM = Decimal("0.001")
UNITS_QUANTUM = Decimal("0.000001")
PERCENT_QUANTUM = Decimal("0.0001")

ZERO = Decimal("0")

_BATCH_CODE_PATTERN: re.Pattern[str] = re.compile(r"^[A-Za-z0-9][A-Za-z0-9_-]{0,39}$")


def _as_decimal(value: Decimal | float | int | str) -> Decimal:
    if isinstance(value, Decimal):
        return value
    # str() keeps 0.1 as 0.1 instead of its binary float expansion
    return Decimal(str(value))


def to_liters(value: Decimal | float | int | str) -> Decimal:
    """Round a volume to liter granularity (3 fractional digits)."""
    return _as_decimal(value).quantize(LITERS_QUANTUM, rounding=ROUND_HALF_EVEN)


def to_units(value: Decimal | float | int | str) -> Decimal:
    """Round a quality mass (liters x percent) to 6 fractional digits."""
    return _as_decimal(value).quantize(UNITS_QUANTUM, rounding=ROUND_HALF_EVEN)


def average(units: Decimal, liters: Decimal) -> Decimal:
    """Weighted average percentage of a mass over a volume; 0 for no volume."""
    if liters <= ZERO:
        return ZERO.quantize(PERCENT_QUANTUM)
    return (units / liters).quantize(PERCENT_QUANTUM, rounding=ROUND_HALF_EVEN)


@dataclass(frozen=True)
class BatchCode:
    """
    Immutable value object for a production batch code.

    Accepts 1-40 characters of letters, digits, ``-`` and ``_``, starting with
    a letter or digit. ``generate`` builds codes like ``B-20260301-9F3A1C``.
    """

    value: str

    def __post_init__(self) -> None:
        if not _BATCH_CODE_PATTERN.match(self.value):
            raise ValueError(
                f"Invalid batch code format: '{self.value}'. "
                "Expected 1-40 letters, digits, '-' or '_'",
            )

    @classmethod
    def generate(cls, prefix: str = "B", now: datetime | None = None) -> BatchCode:
        now = now or datetime.now(timezone.utc)
        suffix = uuid.uuid4().hex[:6].upper()
        return cls(f"{prefix}-{now:%Y%m%d}-{suffix}")

    def __str__(self) -> str:
        return self.value


@dataclass(frozen=True)
class QualityProfile:
    """
    Immutable quantity-weighted quality mass of some milk.

    ``fat_units`` and ``snf_units`` are liters x percent, never percentages,
    so folding profiles is plain addition and averages are exact on read.
    """

    liters: Decimal
    fat_units: Decimal
    snf_units: Decimal

    def __post_init__(self) -> None:
        object.__setattr__(self, "liters", to_liters(self.liters))
        object.__setattr__(self, "fat_units", to_units(self.fat_units))
        object.__setattr__(self, "snf_units", to_units(self.snf_units))
        if self.liters < ZERO:
            raise ValueError(f"Volume cannot be negative: {self.liters}")
        if self.fat_units < ZERO or self.snf_units < ZERO:
            raise ValueError("Quality units cannot be negative")

    @classmethod
    def empty(cls) -> QualityProfile:
        return cls(ZERO, ZERO, ZERO)

    @classmethod
    def from_percentages(
        cls,
        liters: Decimal | float | int | str,
        fat_percent: Decimal | float | int | str | None = None,
        snf_percent: Decimal | float | int | str | None = None,
    ) -> QualityProfile:
        """Build a profile from a volume and its quality; missing quality counts as 0."""
        volume = to_liters(liters)
        fat = _as_decimal(fat_percent) if fat_percent is not None else ZERO
        snf = _as_decimal(snf_percent) if snf_percent is not None else ZERO
        return cls(volume, volume * fat, volume * snf)

    @property
    def avg_fat(self) -> Decimal:
        return average(self.fat_units, self.liters)

    @property
    def avg_snf(self) -> Decimal:
        return average(self.snf_units, self.liters)

    @property
    def is_empty(self) -> bool:
        return self.liters == ZERO

    def __add__(self, other: QualityProfile) -> QualityProfile:
        return QualityProfile(
            self.liters + other.liters,
            self.fat_units + other.fat_units,
            self.snf_units + other.snf_units,
        )

    def split(self, liters: Decimal | float | int | str) -> tuple[QualityProfile, QualityProfile]:
        """
        Take ``liters`` out of this profile at its current average quality.

        Args:
            liters: Volume to take, 0 < liters <= self.liters

        Returns:
            ``(taken, left)``; taking everything leaves an exactly empty profile.

        Raises:
            ValueError: If liters is non-positive or exceeds the volume held
        """
        quantity = to_liters(liters)
        if quantity <= ZERO:
            raise ValueError(f"Withdrawal must be positive: {quantity}")
        if quantity > self.liters:
            raise ValueError(f"Cannot take {quantity}L from {self.liters}L")
        if quantity == self.liters:
            return self, QualityProfile.empty()

        taken = QualityProfile(
            quantity,
            self.fat_units * quantity / self.liters,
            self.snf_units * quantity / self.liters,
        )
        left = QualityProfile(
            self.liters - taken.liters,
            self.fat_units - taken.fat_units,
            self.snf_units - taken.snf_units,
        )
        return taken, left

    def __str__(self) -> str:
        return f"{self.liters}L @ {self.avg_fat}% fat, {self.avg_snf}% SNF"
