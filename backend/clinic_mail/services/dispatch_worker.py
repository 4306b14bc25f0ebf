"""
Sends scheduled e-mails whose time has come.

Each due message is claimed (pending -> processing) before the transport is
called, so two overlapping runs never send the same message twice. After the
attempt the message ends in processed or error and a log entry is written.
"""
import logging

from clinic_mail.errors import StoreError, TransportError
from clinic_mail.models.email_log import LOG_STATUS_FAILED, LOG_STATUS_SENT
from clinic_mail.utils.audit_logger import audit_log
from clinic_mail.utils.schedule import utcnow

logger = logging.getLogger(__name__)

FAILURE_COMMENT = 'E-mail could not be sent: {error}'


class DispatchWorker:
    """Delivers due scheduled e-mails through an EmailBackend."""

    def __init__(self, store, mailer, default_sender=None):
        self.store = store
        self.mailer = mailer
        self.default_sender = default_sender

    def process_due(self, now=None) -> dict:
        """
        Send everything pending with scheduled_for <= now.

        Returns {'success': True, 'processed': n, 'failed': m}; a store
        failure aborts the run with {'success': False, 'error': ...}.
        """
        now = now or utcnow()
        processed = failed = 0
        try:
            due = self.store.get_due_emails(now)
            logger.info("Found %d scheduled e-mail(s) due", len(due))

            for email in due:
                if not self.store.claim_email(email.id, now):
                    logger.info("Scheduled e-mail %s already claimed, skipping", email.id)
                    continue
                if self._deliver(email):
                    processed += 1
                else:
                    failed += 1
        except StoreError as e:
            logger.error("Dispatch run aborted: %s", e)
            return {'success': False, 'error': str(e), 'processed': processed, 'failed': failed}

        return {'success': True, 'processed': processed, 'failed': failed}

    def _deliver(self, email) -> bool:
        sender = email.sender_email or self.default_sender
        try:
            if not email.recipient_email:
                raise TransportError('No recipient e-mail address')
            self.mailer.send(sender, email.recipient_email, email.subject, email.body)
        except TransportError as e:
            self._record_failure(email, str(e))
            return False
        except Exception as e:
            logger.exception("Mail backend raised for scheduled e-mail %s", email.id)
            self._record_failure(email, str(e) or e.__class__.__name__)
            return False

        sent_at = utcnow()
        self.store.mark_processed(email.id, sent_at)
        self.store.add_email_log(
            scheduled_email_id=email.id,
            template_id=email.template_id,
            appointment_id=email.appointment_id,
            patient_id=email.patient_id,
            recipient_email=email.recipient_email,
            subject=email.subject,
            body=email.body,
            status=LOG_STATUS_SENT,
            scheduled_for=email.scheduled_for,
            sent_at=sent_at,
        )
        logger.info("Scheduled e-mail %s sent to %s", email.id, email.recipient_email)
        audit_log('SEND', 'scheduled_email', resource_id=str(email.id),
                  details={'appointment_id': email.appointment_id,
                           'template_id': email.template_id})
        return True

    def _record_failure(self, email, error):
        logger.error("Failed to send scheduled e-mail %s: %s", email.id, error)
        self.store.mark_error(email.id, error)
        self.store.add_email_log(
            scheduled_email_id=email.id,
            template_id=email.template_id,
            appointment_id=email.appointment_id,
            patient_id=email.patient_id,
            recipient_email=email.recipient_email,
            subject=email.subject,
            body=email.body,
            status=LOG_STATUS_FAILED,
            error_message=error,
            scheduled_for=email.scheduled_for,
        )
        audit_log('SEND_FAILED', 'scheduled_email', resource_id=str(email.id),
                  details={'appointment_id': email.appointment_id, 'error': error})

        if not email.appointment_id:
            return
        try:
            self.store.add_appointment_comment(
                email.appointment_id, FAILURE_COMMENT.format(error=error)
            )
        except StoreError as e:
            logger.warning("Could not add failure comment to appointment %s: %s",
                           email.appointment_id, e)
