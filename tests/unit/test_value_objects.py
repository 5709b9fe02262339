"""Unit tests for value objects."""

from datetime import datetime, timezone
from decimal import Decimal

import pytest

from milkpool.domain.value_objects import (
    BatchCode,
    QualityProfile,
    average,
    to_liters,
    to_units,
)


class TestBatchCode:
    """Tests for BatchCode value object."""

    def test_valid_batch_code(self):
        """Letters, digits, dashes and underscores are accepted."""
        code = BatchCode("B-20260301-0001")
        assert code.value == "B-20260301-0001"
        assert str(code) == "B-20260301-0001"

    def test_batch_code_is_immutable(self):
        """BatchCode should be frozen."""
        code = BatchCode("LOT_42")
        with pytest.raises(AttributeError):
            code.value = "OTHER"  # type: ignore[misc]

    @pytest.mark.parametrize(
        "value",
        ["", "-leading-dash", "has space", "semi;colon", "X" * 41],
    )
    def test_invalid_batch_codes(self, value: str):
        """Malformed codes raise ValueError."""
        with pytest.raises(ValueError, match="Invalid batch code format"):
            BatchCode(value)

    def test_generate_uses_prefix_and_date(self):
        """Generated codes look like PREFIX-YYYYMMDD-XXXXXX."""
        code = BatchCode.generate(prefix="B", now=datetime(2026, 3, 1, tzinfo=timezone.utc))
        prefix, day, suffix = code.value.split("-")
        assert prefix == "B"
        assert day == "20260301"
        assert len(suffix) == 6
        assert suffix == suffix.upper()

    def test_generated_codes_differ(self):
        assert BatchCode.generate().value != BatchCode.generate().value


class TestRounding:
    """Tests for fixed-scale helpers."""

    def test_to_liters_uses_three_places(self):
        assert to_liters("1.23456") == Decimal("1.235")

    def test_to_liters_from_float_keeps_decimal_text(self):
        assert to_liters(0.1) == Decimal("0.100")

    def test_to_units_uses_six_places(self):
        assert to_units("0.1234567") == Decimal("0.123457")

    def test_average_of_empty_volume_is_zero(self):
        assert average(Decimal("5"), Decimal("0")) == Decimal("0.0000")

    def test_average_rounds_to_four_places(self):
        assert average(Decimal("1"), Decimal("3")) == Decimal("0.3333")


class TestQualityProfile:
    """Tests for QualityProfile folding and splitting."""

    def test_from_percentages(self):
        """Mass units are liters times percent."""
        profile = QualityProfile.from_percentages("100", "4.0", "8.5")
        assert profile.liters == Decimal("100.000")
        assert profile.fat_units == Decimal("400.000000")
        assert profile.snf_units == Decimal("850.000000")
        assert profile.avg_fat == Decimal("4.0000")
        assert profile.avg_snf == Decimal("8.5000")

    def test_missing_quality_counts_as_zero(self):
        profile = QualityProfile.from_percentages("50")
        assert profile.fat_units == Decimal("0")
        assert profile.avg_snf == Decimal("0.0000")

    def test_negative_volume_rejected(self):
        with pytest.raises(ValueError):
            QualityProfile(Decimal("-1"), Decimal("0"), Decimal("0"))

    def test_empty_profile(self):
        empty = QualityProfile.empty()
        assert empty.is_empty
        assert empty.avg_fat == Decimal("0.0000")

    def test_fold_is_weighted_average(self):
        """100L @ 4% + 50L @ 3% = 150L @ 3.6667%."""
        combined = QualityProfile.from_percentages("100", "4.0", "8.0") + (
            QualityProfile.from_percentages("50", "3.0", "9.0")
        )
        assert combined.liters == Decimal("150.000")
        assert combined.fat_units == Decimal("550.000000")
        assert combined.avg_fat == Decimal("3.6667")
        assert combined.avg_snf == Decimal("8.3333")

    def test_fold_is_order_independent(self):
        a = QualityProfile.from_percentages("12.5", "3.9", "8.1")
        b = QualityProfile.from_percentages("80", "4.2", "8.7")
        c = QualityProfile.from_percentages("7.25", "2.8", "8.0")
        assert (a + b) + c == (c + a) + b

    def test_split_preserves_average(self):
        """Taking part of a pool leaves its average unchanged."""
        pool = QualityProfile.from_percentages("150", "3.6", "8.4")
        taken, left = pool.split("40")

        assert taken.liters == Decimal("40.000")
        assert left.liters == Decimal("110.000")
        assert taken.avg_fat == pool.avg_fat
        assert left.avg_fat == pool.avg_fat
        assert taken + left == pool

    def test_split_conserves_mass_with_repeating_fractions(self):
        pool = QualityProfile(Decimal("3"), Decimal("10"), Decimal("25"))
        taken, left = pool.split("1")
        assert taken.fat_units + left.fat_units == pool.fat_units
        assert taken.snf_units + left.snf_units == pool.snf_units

    def test_split_everything_leaves_exact_zero(self):
        pool = QualityProfile.from_percentages("100", "4.0", "8.5")
        taken, left = pool.split("100")
        assert taken == pool
        assert left == QualityProfile.empty()
        assert left.fat_units == Decimal("0")

    def test_split_more_than_held_rejected(self):
        pool = QualityProfile.from_percentages("10", "4.0", "8.5")
        with pytest.raises(ValueError, match="Cannot take"):
            pool.split("10.001")

    @pytest.mark.parametrize("quantity", ["0", "-5"])
    def test_split_non_positive_rejected(self, quantity: str):
        pool = QualityProfile.from_percentages("10", "4.0", "8.5")
        with pytest.raises(ValueError, match="must be positive"):
            pool.split(quantity)

    def test_str(self):
        profile = QualityProfile.from_percentages("10", "4.0", "8.5")
        assert str(profile) == "10.000L @ 4.0000% fat, 8.5000% SNF"
