"""
Notification wording.

Every builder returns a :class:`NotificationMessage` so titles, texts and
priorities for each notification type are defined in one place.
"""

import datetime as dt
from typing import NamedTuple, Optional, Union

from ..models.notification import NotificationPriority
from ..utils.datetime_utils import format_date, format_time


class NotificationMessage(NamedTuple):
    title: str
    message: str
    priority: NotificationPriority


def welcome(user_name: str) -> NotificationMessage:
    return NotificationMessage(
        "Welcome to PetCare! 🐾",
        f"Hi {user_name}! Thanks for joining PetCare. "
        "We're excited to help you care for your pets.",
        NotificationPriority.NORMAL,
    )


def appointment_reminder(
    pet_name: str, day: dt.date, at: Optional[dt.time] = None
) -> NotificationMessage:
    return NotificationMessage(
        "Upcoming Appointment Reminder",
        f"Reminder: You have an appointment for {pet_name} on "
        f"{format_date(day)} at {format_time(at)}.",
        NotificationPriority.HIGH,
    )


def appointment_cancelled(
    pet_name: str, vet_name: str, day: dt.date
) -> NotificationMessage:
    return NotificationMessage(
        "Appointment Cancelled",
        f"Your appointment for {pet_name} with {vet_name} on "
        f"{format_date(day)} has been cancelled.",
        NotificationPriority.NORMAL,
    )


def appointment_rescheduled(
    pet_name: str, old_date: dt.date, new_date: dt.date
) -> NotificationMessage:
    return NotificationMessage(
        "Appointment Rescheduled",
        f"Your appointment for {pet_name} has been rescheduled from "
        f"{format_date(old_date)} to {format_date(new_date)}.",
        NotificationPriority.NORMAL,
    )


def vaccination_due(
    pet_name: str,
    vaccine: str,
    due: Union[dt.date, dt.datetime],
    priority: NotificationPriority = NotificationPriority.NORMAL,
) -> NotificationMessage:
    """
    Scheduled reminders go out at normal priority; the explicit
    "vaccination is due" event helper raises it to high.
    """
    return NotificationMessage(
        "Vaccination Due",
        f"{pet_name}'s {vaccine} vaccination is due on {format_date(due)}. "
        "Please schedule an appointment.",
        priority,
    )


def medication_reminder(pet_name: str, medication_name: str) -> NotificationMessage:
    return NotificationMessage(
        "Medication Reminder",
        f"Time to give {pet_name} their {medication_name} medication.",
        NotificationPriority.NORMAL,
    )


def medical_update(pet_name: str, vet_name: str) -> NotificationMessage:
    return NotificationMessage(
        "Medical Record Updated",
        f"{vet_name} has updated {pet_name}'s medical records. "
        "View them in your dashboard.",
        NotificationPriority.NORMAL,
    )


def password_changed(email: str) -> NotificationMessage:
    return NotificationMessage(
        "Password Changed",
        f"Your password for {email} was recently changed. "
        "If this wasn't you, please contact support immediately.",
        NotificationPriority.URGENT,
    )


def system_alert(
    title: str,
    message: str,
    priority: NotificationPriority = NotificationPriority.NORMAL,
) -> NotificationMessage:
    return NotificationMessage(title, message, NotificationPriority(priority))
