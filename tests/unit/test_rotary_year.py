from datetime import date

import pytest

from club_modules.dues.rotary_year import (
    cycle_code,
    cycle_label,
    rotary_year_bounds,
    rotary_year_for,
)


class TestRotaryYear:

    @pytest.mark.parametrize(
        "day, expected",
        [
            (date(2024, 7, 1), 2025),
            (date(2025, 6, 30), 2025),
            (date(2025, 7, 1), 2026),
            (date(2025, 1, 15), 2025),
        ],
    )
    def test_year_for(self, day, expected):
        assert rotary_year_for(day) == expected

    def test_bounds(self):
        assert rotary_year_bounds(2025) == (date(2024, 7, 1), date(2025, 6, 30))

    def test_naming(self):
        assert cycle_code(2025) == "RY-2025"
        assert cycle_label(2025) == "Rotary Year 2025"
