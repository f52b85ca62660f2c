"""Offline payment confirmations (dues and event tickets) reviewed by the treasurer."""

from club_modules.payments.models import (
    OfflinePaymentMethod,
    PaymentConfirmation,
    PaymentStatus,
    PaymentType,
)
from club_modules.payments.service import PaymentConfirmationService
from club_modules.payments.tickets import RecordingTicketGrantor, TicketGrantor
from club_modules.payments.workflows import PAYMENT_CONFIRMATION_WORKFLOW

__all__ = [
    "OfflinePaymentMethod",
    "PAYMENT_CONFIRMATION_WORKFLOW",
    "PaymentConfirmation",
    "PaymentConfirmationService",
    "PaymentStatus",
    "PaymentType",
    "RecordingTicketGrantor",
    "TicketGrantor",
]
