from datetime import UTC, date, datetime, time

from edulog.services import calendar_service
from edulog.services.calendar_service import (
    appointment_window,
    build_download_ics,
    build_invitation_ics,
    escape_ics_text,
    format_ics_datetime,
)

NOW = datetime(2030, 1, 1, 0, 0, tzinfo=UTC)


def _event_lines(ics):
    assert ics.endswith("\r\n")
    return ics.split("\r\n")


def test_escape_ics_text():
    assert escape_ics_text("a,b;c\\d\r\ne") == "a\\,b\\;c\\\\d\\ne"
    assert escape_ics_text(None) == ""


def test_window_uses_appointment_timezone(booking):
    student, instructor, appointment = booking
    appointment.appointment_date = date(2030, 3, 14)
    start, end = appointment_window(appointment)
    # 14:00 in Seoul is 05:00 UTC
    assert format_ics_datetime(start) == "20300314T050000Z"
    assert format_ics_datetime(end) == "20300314T060000Z"


def test_download_ics_has_publish_method_and_two_alarms(booking):
    student, instructor, appointment = booking
    appointment.user_notes = "교재 지참"
    lines = _event_lines(build_download_ics(appointment, now=NOW))

    assert lines[0] == "BEGIN:VCALENDAR"
    assert "METHOD:PUBLISH" in lines
    assert f"UID:appointment-{appointment.id}@aiedulog.com" in lines
    assert "DTSTAMP:20300101T000000Z" in lines
    assert "SUMMARY:수학 과외" in lines
    assert "LOCATION:https://meet.example.com/abc" in lines
    assert 'ORGANIZER;CN="이강사":mailto:teacher@example.com' in lines
    assert 'ATTENDEE;CN="김학생":mailto:student@example.com' in lines
    assert "STATUS:TENTATIVE" in lines
    assert [l for l in lines if l.startswith("TRIGGER:")] == ["TRIGGER:-P1D", "TRIGGER:-PT1H"]
    description = next(l for l in lines if l.startswith("DESCRIPTION:수학"))
    assert "메모: 교재 지참" in description
    assert "\\n\\n강사: 이강사" in description


def test_party_names_are_quoted_not_text_escaped(booking):
    student, instructor, appointment = booking
    instructor.full_name = 'Lee, "Ace"; PhD'
    for ics in (build_download_ics(appointment, now=NOW), build_invitation_ics(appointment, now=NOW)):
        assert 'ORGANIZER;CN="Lee, Ace; PhD":mailto:teacher@example.com' in _event_lines(ics)


def test_download_ics_status_follows_appointment(booking):
    student, instructor, appointment = booking
    for status, expected in calendar_service.ICS_STATUS.items():
        appointment.status = status
        assert f"STATUS:{expected}" in build_download_ics(appointment, now=NOW)


def test_offline_download_uses_location(booking):
    student, instructor, appointment = booking
    appointment.meeting_type = "offline"
    appointment.meeting_link = None
    appointment.meeting_location = "서울시 강남구, 3층"
    assert "LOCATION:서울시 강남구\\, 3층" in _event_lines(build_download_ics(appointment, now=NOW))


def test_invitation_ics_is_a_confirmed_request(booking):
    student, instructor, appointment = booking
    lines = _event_lines(build_invitation_ics(appointment, now=NOW))
    assert "METHOD:REQUEST" in lines
    assert "STATUS:CONFIRMED" in lines
    assert "SUMMARY:수학 과외 - 1:1 상담" in lines
    assert [l for l in lines if l.startswith("TRIGGER:")] == ["TRIGGER:-PT15M"]
    description = next(l for l in lines if l.startswith("DESCRIPTION:"))
    assert description.startswith("DESCRIPTION:약속 유형: 1:1 상담\\n\\n강사: 이강사")
    assert "미팅 링크: https://meet.example.com/abc" in description


def test_invitation_without_location_is_tbd(booking):
    student, instructor, appointment = booking
    appointment.meeting_type = "offline"
    appointment.meeting_location = None
    assert "LOCATION:TBD" in build_invitation_ics(appointment, now=NOW)
