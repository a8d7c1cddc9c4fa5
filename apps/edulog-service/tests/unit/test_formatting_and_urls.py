from datetime import date, time

import pytest

from edulog.utils.formatting import format_korean_date, format_korean_time, korean_day_name
from edulog.utils.urls import absolute_url, appointment_urls, get_app_base_url


def test_korean_date_and_day_names():
    assert format_korean_date(date(2025, 3, 14)) == "2025년 3월 14일 금요일"
    assert korean_day_name(date(2025, 3, 16)) == "일요일"
    assert korean_day_name(date(2025, 3, 17)) == "월요일"


@pytest.mark.parametrize("value, expected", [
    (time(14, 30), "오후 2:30"),
    (time(0, 5), "오전 12:05"),
    (time(12, 0), "오후 12:00"),
    (time(9, 7), "오전 9:07"),
])
def test_korean_time(value, expected):
    assert format_korean_time(value) == expected


def test_base_url_fallbacks(monkeypatch):
    monkeypatch.delenv("APP_BASE_URL", raising=False)
    monkeypatch.delenv("NEXT_PUBLIC_SITE_URL", raising=False)
    monkeypatch.delenv("APP_HOST", raising=False)
    assert get_app_base_url() == "http://localhost:3000"

    monkeypatch.setenv("APP_HOST", "aiedulog.com")
    assert get_app_base_url() == "https://aiedulog.com"
    monkeypatch.setenv("APP_HOST", "localhost:8080")
    assert get_app_base_url() == "http://localhost:8080"

    monkeypatch.setenv("NEXT_PUBLIC_SITE_URL", "https://www.aiedulog.com/")
    assert get_app_base_url() == "https://www.aiedulog.com"
    monkeypatch.setenv("APP_BASE_URL", "https://staging.aiedulog.com")
    assert get_app_base_url() == "https://staging.aiedulog.com"


def test_absolute_and_appointment_urls(monkeypatch):
    monkeypatch.setenv("APP_BASE_URL", "https://aiedulog.com")
    assert absolute_url("dashboard") == "https://aiedulog.com/dashboard"
    urls = appointment_urls("abc")
    assert urls == {
        "dashboard_url": "https://aiedulog.com/dashboard",
        "appointment_url": "https://aiedulog.com/dashboard/appointments/abc",
        "booking_url": "https://aiedulog.com/scheduling",
        "calendar_url": "https://aiedulog.com/api/appointments/abc/calendar",
    }
