"""FastAPI dependency helpers."""
from __future__ import annotations

from fastapi import Depends

from findash.core.config import Settings, get_settings
from findash.db.session import get_session_maker
from findash.services.audit import AuditService
from findash.services.email import EmailService
from findash.services.notifications import NotificationService
from findash.services.transactions import TransactionService
from findash.services.users import UserService


def get_user_service(settings: Settings = Depends(get_settings)) -> UserService:
    return UserService(get_session_maker(settings))


def get_transaction_service(settings: Settings = Depends(get_settings)) -> TransactionService:
    return TransactionService(get_session_maker(settings))


def get_audit_service(settings: Settings = Depends(get_settings)) -> AuditService:
    return AuditService(get_session_maker(settings))


def get_email_service(settings: Settings = Depends(get_settings)) -> EmailService:
    return EmailService(settings.app_base_url)


def get_notification_service(settings: Settings = Depends(get_settings)) -> NotificationService:
    return NotificationService(get_session_maker(settings))
