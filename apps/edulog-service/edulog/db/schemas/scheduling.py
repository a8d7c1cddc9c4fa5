"""Request payloads for the scheduling notification actions."""
import uuid
from typing import List, Optional, Literal
from pydantic import BaseModel, ConfigDict, Field


class NotificationConfig(BaseModel):
    email: bool = Field(default=True, alias='emailNotifications')
    push: bool = Field(default=True, alias='pushNotifications')
    sms: bool = Field(default=False, alias='smsNotifications')
    reminder_24h: bool = Field(default=True, alias='reminder24h')
    reminder_1h: bool = Field(default=True, alias='reminder1h')
    reminder_15m: bool = Field(default=False, alias='reminder15m')
    include_calendar_file: bool = Field(default=True, alias='includeCalendarFile')
    model_config = ConfigDict(populate_by_name=True, extra='ignore')


class SchedulingActionRequest(BaseModel):
    """Body of POST /notifications/scheduling.

    Accepts both camelCase (web client) and snake_case keys.
    """
    action: str
    appointment_id: Optional[uuid.UUID] = Field(default=None, alias='appointmentId')
    config: Optional[NotificationConfig] = None
    cancelled_by: Literal['user', 'instructor', 'system'] = Field(default='system', alias='cancelledBy')
    reason: Optional[str] = None
    original_appointment_id: Optional[uuid.UUID] = Field(default=None, alias='originalAppointmentId')
    new_appointment_id: Optional[uuid.UUID] = Field(default=None, alias='newAppointmentId')
    rescheduled_by: Literal['user', 'instructor'] = Field(default='user', alias='rescheduledBy')
    completed_by: Literal['user', 'instructor'] = Field(default='instructor', alias='completedBy')
    no_show_by: Literal['user', 'instructor'] = Field(default='user', alias='noShowBy')
    waitlisted_user_ids: List[uuid.UUID] = Field(default_factory=list, alias='waitlistedUserIds')
    model_config = ConfigDict(populate_by_name=True, extra='ignore')


class SchedulingActionResponse(BaseModel):
    success: bool
    message: Optional[str] = None
    data: Optional[dict] = None
    error: Optional[str] = None
