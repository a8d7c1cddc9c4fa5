import uuid
from datetime import datetime, time
from typing import Optional, Dict, Any, List
from pydantic import BaseModel, ConfigDict, Field


class NotificationBase(BaseModel):
    user_id: uuid.UUID
    title: str
    message: str
    category: str = 'system'
    type: str
    priority: str = 'normal'
    channels: List[str] = Field(default_factory=lambda: ['in_app'])
    link: Optional[str] = None
    related_content_type: Optional[str] = None
    related_content_id: Optional[uuid.UUID] = None
    template_key: Optional[str] = None
    template_data: Optional[Dict[str, Any]] = None
    action_data: Optional[Dict[str, Any]] = None


class NotificationCreate(NotificationBase):
    metadata: Optional[Dict[str, Any]] = None
    status: str = 'sent'
    scheduled_for: Optional[datetime] = None
    expires_at: Optional[datetime] = None


class Notification(NotificationBase):
    id: uuid.UUID
    status: str
    scheduled_for: Optional[datetime] = None
    is_read: bool
    read_at: Optional[datetime] = None
    created_at: datetime
    expires_at: Optional[datetime] = None
    model_config = ConfigDict(from_attributes=True)


class NotificationListResponse(BaseModel):
    notifications: List[Notification]
    unread_count: int
    total_count: int


class NotificationStatsResponse(BaseModel):
    unread_count: int
    total_notifications: int
    recent_notifications: List[Notification]


class SchedulingPreferences(BaseModel):
    """Scheduling-category notification preferences (stored or default)."""
    user_id: Optional[uuid.UUID] = None
    category: str = 'schedule'
    channels: List[str] = Field(default_factory=lambda: ['in_app', 'email'])
    quiet_hours_start: Optional[time] = None
    quiet_hours_end: Optional[time] = None
    timezone: str = 'Asia/Seoul'
    digest_frequency: str = 'immediate'
    max_notifications_per_hour: int = 10
    schedule_notifications: bool = True
    appointment_confirmations: bool = True
    appointment_reminders_24h: bool = True
    appointment_reminders_1h: bool = True
    appointment_reminders_15m: bool = False
    appointment_changes: bool = True
    instructor_notifications: bool = True
    waitlist_notifications: bool = True
    is_active: bool = True
    model_config = ConfigDict(from_attributes=True)


class SchedulingPreferencesUpdate(BaseModel):
    channels: Optional[List[str]] = None
    quiet_hours_start: Optional[time] = None
    quiet_hours_end: Optional[time] = None
    timezone: Optional[str] = None
    digest_frequency: Optional[str] = None
    max_notifications_per_hour: Optional[int] = Field(default=None, ge=1, le=100)
    schedule_notifications: Optional[bool] = None
    appointment_confirmations: Optional[bool] = None
    appointment_reminders_24h: Optional[bool] = None
    appointment_reminders_1h: Optional[bool] = None
    appointment_reminders_15m: Optional[bool] = None
    appointment_changes: Optional[bool] = None
    instructor_notifications: Optional[bool] = None
    waitlist_notifications: Optional[bool] = None
    is_active: Optional[bool] = None
    # Unknown fields from the action payload are dropped.
    model_config = ConfigDict(extra='ignore')
