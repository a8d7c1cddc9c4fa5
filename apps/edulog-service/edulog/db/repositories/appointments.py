"""
Appointment repository functions.
"""
from __future__ import annotations

import uuid
from typing import Optional
from sqlalchemy.orm import Session, joinedload

from edulog.db import models


def get_appointment_with_details(db: Session, appointment_id: uuid.UUID) -> Optional[models.Appointment]:
    """Load an appointment together with its type, user and instructor."""
    return (
        db.query(models.Appointment)
        .options(
            joinedload(models.Appointment.appointment_type),
            joinedload(models.Appointment.user).joinedload(models.Identity.profile),
            joinedload(models.Appointment.instructor).joinedload(models.Identity.profile),
        )
        .filter(models.Appointment.id == appointment_id)
        .first()
    )
