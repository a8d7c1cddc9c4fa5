"""Korean date/time formatting used in notification copy and calendar files."""

from datetime import date, time

# Sunday first
KOREAN_DAY_NAMES = ("일요일", "월요일", "화요일", "수요일", "목요일", "금요일", "토요일")


def korean_day_name(value: date) -> str:
    return KOREAN_DAY_NAMES[(value.weekday() + 1) % 7]


def format_korean_date(value: date) -> str:
    """2025-03-14 -> '2025년 3월 14일 금요일'."""
    return f"{value.year}년 {value.month}월 {value.day}일 {korean_day_name(value)}"


def format_korean_time(value: time) -> str:
    """14:30 -> '오후 2:30', 00:05 -> '오전 12:05'."""
    period = "오전" if value.hour < 12 else "오후"
    hour = value.hour % 12 or 12
    return f"{period} {hour}:{value.minute:02d}"
