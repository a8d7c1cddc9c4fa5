"""
iCalendar (.ics) generation for appointments.

Two flavours are produced:

- ``build_download_ics``: METHOD:PUBLISH file served from the calendar
  download endpoint, with day-before and hour-before alarms.
- ``build_invitation_ics``: METHOD:REQUEST invitation attached to booking
  emails, with a 15 minute alarm.
"""
from __future__ import annotations

from datetime import datetime, timedelta, timezone
from typing import List, Optional, Tuple
from zoneinfo import ZoneInfo

from edulog.db import models
from edulog.utils.formatting import format_korean_date, format_korean_time

DEFAULT_TIMEZONE = "Asia/Seoul"
UID_DOMAIN = "aiedulog.com"

ICS_STATUS = {
    "pending": "TENTATIVE",
    "confirmed": "CONFIRMED",
    "completed": "CONFIRMED",
    "cancelled": "CANCELLED",
    "no_show": "CANCELLED",
}


def escape_ics_text(text: Optional[str]) -> str:
    return (
        (text or "")
        .replace("\\", "\\\\")
        .replace(",", "\\,")
        .replace(";", "\\;")
        .replace("\r", "")
        .replace("\n", "\\n")
    )


def format_ics_datetime(value: datetime) -> str:
    return value.astimezone(timezone.utc).strftime("%Y%m%dT%H%M%SZ")


def appointment_window(appointment: models.Appointment) -> Tuple[datetime, datetime]:
    """Start/end as aware datetimes in the appointment's own timezone."""
    tz = ZoneInfo(appointment.timezone or DEFAULT_TIMEZONE)
    start = datetime.combine(appointment.appointment_date, appointment.start_time, tzinfo=tz)
    if appointment.end_time is not None:
        end = datetime.combine(appointment.appointment_date, appointment.end_time, tzinfo=tz)
    else:
        end = start + timedelta(minutes=appointment.duration_minutes or 60)
    return start, end


def _uid(appointment: models.Appointment) -> str:
    return f"appointment-{appointment.id}@{UID_DOMAIN}"


def _person_name(identity: Optional[models.Identity]) -> str:
    if identity is None:
        return ""
    return identity.full_name or identity.display_name


def _party(prop: str, identity: models.Identity) -> str:
    # Quoted parameter values may not contain DQUOTE or control characters
    name = "".join(ch for ch in _person_name(identity) if ch != '"' and ch >= " ")
    return f'{prop};CN="{name}":mailto:{identity.email}'


def _alarm(trigger: str, description: str) -> List[str]:
    return [
        "BEGIN:VALARM",
        "ACTION:DISPLAY",
        f"DESCRIPTION:{escape_ics_text(description)}",
        f"TRIGGER:{trigger}",
        "END:VALARM",
    ]


def build_download_ics(appointment: models.Appointment, now: Optional[datetime] = None) -> str:
    now = now or datetime.now(timezone.utc)
    start, end = appointment_window(appointment)
    instructor = appointment.instructor
    user = appointment.user

    description = appointment.description or appointment.title
    if appointment.user_notes:
        description += f"\n\n메모: {appointment.user_notes}"
    if instructor is not None:
        description += f"\n\n강사: {_person_name(instructor)}"
        description += f"\n이메일: {instructor.email}"
    if appointment.meeting_location:
        description += f"\n\n장소: {appointment.meeting_location}"
    if appointment.meeting_link:
        description += f"\n\n미팅 링크: {appointment.meeting_link}"

    location = appointment.meeting_location or ""
    if appointment.meeting_type == "online" and appointment.meeting_link:
        location = appointment.meeting_link

    lines = [
        "BEGIN:VCALENDAR",
        "VERSION:2.0",
        "PRODID:-//AIedulog//Appointment System//EN",
        "CALSCALE:GREGORIAN",
        "METHOD:PUBLISH",
        "BEGIN:VEVENT",
        f"UID:{_uid(appointment)}",
        f"DTSTAMP:{format_ics_datetime(now)}",
        f"DTSTART:{format_ics_datetime(start)}",
        f"DTEND:{format_ics_datetime(end)}",
        f"SUMMARY:{escape_ics_text(appointment.title)}",
        f"DESCRIPTION:{escape_ics_text(description)}",
    ]
    if location:
        lines.append(f"LOCATION:{escape_ics_text(location)}")
    if instructor is not None:
        lines.append(_party("ORGANIZER", instructor))
    if user is not None:
        lines.append(_party("ATTENDEE", user))
    lines.append(f"STATUS:{ICS_STATUS.get(appointment.status, 'TENTATIVE')}")
    lines.append("TRANSP:OPAQUE")
    reminder = f"예약 알림: {appointment.title}"
    lines.extend(_alarm("-P1D", reminder))
    lines.extend(_alarm("-PT1H", reminder))
    lines.extend(["END:VEVENT", "END:VCALENDAR"])
    return "\r\n".join(lines) + "\r\n"


def invitation_description(appointment: models.Appointment) -> str:
    type_name = appointment.appointment_type.type_name if appointment.appointment_type else appointment.title
    parts = [
        f"약속 유형: {type_name}",
        f"강사: {_person_name(appointment.instructor)}",
        f"학생: {_person_name(appointment.user)}",
        f"일시: {format_korean_date(appointment.appointment_date)} {format_korean_time(appointment.start_time)}",
        f"소요 시간: {appointment.duration_minutes}분",
    ]
    if appointment.meeting_type == "online" and appointment.meeting_link:
        parts.append(f"미팅 링크: {appointment.meeting_link}")
    if appointment.meeting_type == "offline" and appointment.meeting_location:
        parts.append(f"장소: {appointment.meeting_location}")
    if appointment.user_notes:
        parts.append(f"참고사항: {appointment.user_notes}")
    return "\n\n".join(parts)


def build_invitation_ics(appointment: models.Appointment, now: Optional[datetime] = None) -> str:
    now = now or datetime.now(timezone.utc)
    start, end = appointment_window(appointment)
    type_name = appointment.appointment_type.type_name if appointment.appointment_type else ""
    summary = f"{appointment.title} - {type_name}" if type_name else appointment.title
    if appointment.meeting_type == "online":
        location = appointment.meeting_link or "Online"
    else:
        location = appointment.meeting_location or "TBD"
    instructor = appointment.instructor
    user = appointment.user

    lines = [
        "BEGIN:VCALENDAR",
        "VERSION:2.0",
        "PRODID:-//AIedulog//Appointment Booking//EN",
        "CALSCALE:GREGORIAN",
        "METHOD:REQUEST",
        "BEGIN:VEVENT",
        f"UID:{_uid(appointment)}",
        f"DTSTAMP:{format_ics_datetime(now)}",
        f"DTSTART:{format_ics_datetime(start)}",
        f"DTEND:{format_ics_datetime(end)}",
        f"SUMMARY:{escape_ics_text(summary)}",
        f"DESCRIPTION:{escape_ics_text(invitation_description(appointment))}",
        f"LOCATION:{escape_ics_text(location)}",
    ]
    if instructor is not None:
        lines.append(_party("ORGANIZER", instructor))
    if user is not None:
        lines.append(_party("ATTENDEE", user))
    lines.extend(["STATUS:CONFIRMED", "CLASS:PUBLIC", "TRANSP:OPAQUE"])
    lines.extend(_alarm("-PT15M", "Reminder: Appointment in 15 minutes"))
    lines.extend(["END:VEVENT", "END:VCALENDAR"])
    return "\r\n".join(lines) + "\r\n"
