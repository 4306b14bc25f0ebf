"""
Service factories wired from the application config.
"""
from flask import current_app

from clinic_mail.services.dispatch_worker import DispatchWorker
from clinic_mail.services.store import SQLAlchemyStore, Store
from clinic_mail.services.trigger_processor import TriggerProcessor
from clinic_mail.utils.email_sender import get_email_backend


def get_trigger_processor(store=None):
    return TriggerProcessor(
        store or SQLAlchemyStore(),
        timezone=current_app.config['CLINIC_TIMEZONE'],
        language=current_app.config['TEMPLATE_LANGUAGE'],
        default_sender=current_app.config['DEFAULT_SENDER_EMAIL'],
    )


def get_dispatch_worker(store=None, mailer=None):
    """Worker using the app's mail backend unless one is injected (tests)."""
    mailer = mailer or current_app.config.get('EMAIL_BACKEND_INSTANCE') or get_email_backend()
    return DispatchWorker(
        store or SQLAlchemyStore(),
        mailer,
        default_sender=current_app.config['DEFAULT_SENDER_EMAIL'],
    )


__all__ = [
    'DispatchWorker', 'SQLAlchemyStore', 'Store', 'TriggerProcessor',
    'get_dispatch_worker', 'get_trigger_processor',
]
