"""
Persistence boundary for the scheduler and dispatcher.

`Store` is the interface the services depend on; `SQLAlchemyStore` is the
implementation backed by the Flask-SQLAlchemy models. Every database failure
surfaces as StoreError after the session has been rolled back.
"""
import logging
from abc import ABC, abstractmethod
from contextlib import contextmanager

from sqlalchemy.exc import SQLAlchemyError

from clinic_mail import db
from clinic_mail.errors import StoreError
from clinic_mail.models import (
    Appointment, AppointmentComment, EmailLog, EmailTemplate, ScheduledEmail,
)
from clinic_mail.models.scheduled_email import (
    STATUS_ERROR, STATUS_PENDING, STATUS_PROCESSED, STATUS_PROCESSING,
)

logger = logging.getLogger(__name__)


class Store(ABC):
    """CRUD operations needed by TriggerProcessor and DispatchWorker."""

    @abstractmethod
    def get_appointment(self, appointment_id):
        """Appointment record with nested patient/examination/location/device, or None."""

    @abstractmethod
    def get_latest_appointment(self):
        """Most recently created appointment record, or None."""

    @abstractmethod
    def get_templates(self, trigger_type):
        """Active templates registered for `trigger_type`."""

    @abstractmethod
    def add_scheduled_email(self, **fields):
        """Persist a pending scheduled e-mail and return it."""

    @abstractmethod
    def get_due_emails(self, now):
        """Pending e-mails with scheduled_for <= now, oldest first."""

    @abstractmethod
    def claim_email(self, email_id, now) -> bool:
        """Atomically move a pending e-mail to processing; False if someone else did."""

    @abstractmethod
    def mark_processed(self, email_id, processed_at):
        """Terminal success transition of a claimed e-mail."""

    @abstractmethod
    def mark_error(self, email_id, error_message):
        """Terminal failure transition of a claimed e-mail."""

    @abstractmethod
    def add_email_log(self, **fields):
        """Append a delivery log entry."""

    @abstractmethod
    def add_appointment_comment(self, appointment_id, comment, created_by='system'):
        """Attach a note to an appointment."""


class SQLAlchemyStore(Store):
    """Store backed by the application's SQLAlchemy session."""

    def __init__(self, session=None):
        self.session = session if session is not None else db.session

    @contextmanager
    def _guard(self, action):
        try:
            yield
        except SQLAlchemyError as e:
            self.session.rollback()
            logger.error("Store error while %s: %s", action, e)
            raise StoreError(f'Database error while {action}') from e

    def get_appointment(self, appointment_id):
        with self._guard('loading appointment'):
            appointment = self.session.get(Appointment, appointment_id)
            return appointment.to_record() if appointment else None

    def get_latest_appointment(self):
        with self._guard('loading latest appointment'):
            appointment = (self.session.query(Appointment)
                           .order_by(Appointment.created_at.desc())
                           .first())
            return appointment.to_record() if appointment else None

    def get_templates(self, trigger_type):
        with self._guard('loading templates'):
            return (self.session.query(EmailTemplate)
                    .filter(EmailTemplate.trigger_type == trigger_type,
                            EmailTemplate.is_active.is_(True))
                    .order_by(EmailTemplate.name)
                    .all())

    def add_scheduled_email(self, **fields):
        with self._guard('inserting scheduled e-mail'):
            email = ScheduledEmail(status=STATUS_PENDING, **fields)
            self.session.add(email)
            self.session.commit()
            return email

    def get_due_emails(self, now):
        with self._guard('loading due e-mails'):
            return (self.session.query(ScheduledEmail)
                    .filter(ScheduledEmail.status == STATUS_PENDING,
                            ScheduledEmail.scheduled_for <= now)
                    .order_by(ScheduledEmail.scheduled_for)
                    .all())

    def claim_email(self, email_id, now) -> bool:
        with self._guard('claiming e-mail'):
            count = (self.session.query(ScheduledEmail)
                     .filter(ScheduledEmail.id == email_id,
                             ScheduledEmail.status == STATUS_PENDING)
                     .update({'status': STATUS_PROCESSING, 'claimed_at': now},
                             synchronize_session=False))
            self.session.commit()
            return count == 1

    def _finish(self, email_id, values, action):
        with self._guard(action):
            count = (self.session.query(ScheduledEmail)
                     .filter(ScheduledEmail.id == email_id,
                             ScheduledEmail.status == STATUS_PROCESSING)
                     .update(values, synchronize_session=False))
            self.session.commit()
        if count != 1:
            logger.warning("Scheduled e-mail %s was not in processing state", email_id)
        return count == 1

    def mark_processed(self, email_id, processed_at):
        return self._finish(
            email_id,
            {'status': STATUS_PROCESSED, 'processed_at': processed_at},
            'marking e-mail processed',
        )

    def mark_error(self, email_id, error_message):
        return self._finish(
            email_id,
            {'status': STATUS_ERROR, 'error_message': error_message},
            'marking e-mail failed',
        )

    def add_email_log(self, **fields):
        with self._guard('writing e-mail log'):
            entry = EmailLog(**fields)
            self.session.add(entry)
            self.session.commit()
            return entry

    def add_appointment_comment(self, appointment_id, comment, created_by='system'):
        with self._guard('adding appointment comment'):
            note = AppointmentComment(appointment_id=appointment_id, created_by=created_by)
            note.comment = comment
            self.session.add(note)
            self.session.commit()
            return note
