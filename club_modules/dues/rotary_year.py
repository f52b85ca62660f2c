"""Rotary year arithmetic. Rotary year N runs from July 1 of N-1 to June 30 of N."""

from datetime import date


def rotary_year_for(day: date) -> int:
    """Ending year of the Rotary year containing ``day``."""
    return day.year + 1 if day.month >= 7 else day.year


def rotary_year_bounds(ending_year: int) -> tuple[date, date]:
    return date(ending_year - 1, 7, 1), date(ending_year, 6, 30)


def cycle_code(ending_year: int) -> str:
    return f"RY-{ending_year}"


def cycle_label(ending_year: int) -> str:
    return f"Rotary Year {ending_year}"
