"""
Turns an appointment event into pending scheduled e-mails.

For every active template registered for the trigger type the processor
checks the template's condition groups, computes the send time, renders
subject and body and stores a pending ScheduledEmail. A failing template is
recorded in the result and does not stop its siblings.
"""
import logging

from clinic_mail.errors import NotFoundError, StoreError
from clinic_mail.utils.audit_logger import audit_log
from clinic_mail.utils.conditions import evaluate_groups
from clinic_mail.utils.fields import resolve
from clinic_mail.utils.schedule import compute_send_time, utcnow
from clinic_mail.utils.template_compiler import TemplateCompiler

logger = logging.getLogger(__name__)

OUTCOME_SCHEDULED = 'scheduled'
OUTCOME_SKIPPED = 'skipped'
OUTCOME_FAILED = 'failed'

SALUTATIONS = {
    'de': {'male': 'Sehr geehrter Herr', 'female': 'Sehr geehrte Frau', 'other': 'Sehr geehrte(r)'},
    'en': {'male': 'Dear Mr.', 'female': 'Dear Ms.', 'other': 'Dear'},
}

GENDER_ALIASES = {'männlich': 'male', 'weiblich': 'female'}


def salutation(patient, language='de') -> str:
    """Letter opening derived from gender, title and last name."""
    table = SALUTATIONS.get(language, SALUTATIONS['de'])
    gender = (patient.get('gender') or '').lower()
    prefix = table.get(GENDER_ALIASES.get(gender, gender)) or table['other']
    parts = [prefix, patient.get('title'), patient.get('last_name')]
    return ' '.join(p for p in parts if p)


def build_context(appointment, language='de') -> dict:
    """Evaluation context shared by conditions and templates."""
    patient = appointment.get('patient')
    if patient and not patient.get('salutation'):
        patient = dict(patient, salutation=salutation(patient, language))
    return {
        'patient': patient,
        'examination': appointment.get('examination'),
        'appointment': appointment,
        'location': appointment.get('location'),
        'device': appointment.get('device'),
    }


class TriggerProcessor:
    """Schedules e-mails for an appointment event."""

    def __init__(self, store, compiler=None, timezone=None, language='de',
                 default_sender=None):
        self.store = store
        self.compiler = compiler or TemplateCompiler(timezone=timezone, language=language)
        self.timezone = timezone
        self.language = language
        self.default_sender = default_sender

    def schedule_emails_for_appointment(self, appointment_id, trigger_type, now=None) -> dict:
        """
        Schedule every applicable template for `trigger_type`.

        Returns {'success': True, 'results': [...]} or, when the appointment
        or templates cannot be loaded or any template failed,
        {'success': False, 'error': ..., 'results': [...]}.
        """
        now = now or utcnow()
        try:
            appointment = self.store.get_appointment(appointment_id)
            if appointment is None:
                raise NotFoundError(f'Appointment {appointment_id} not found')
            templates = self.store.get_templates(trigger_type)
        except (NotFoundError, StoreError) as e:
            logger.error("Could not schedule e-mails for appointment %s: %s", appointment_id, e)
            return {'success': False, 'error': str(e), 'results': []}

        context = build_context(appointment, self.language)
        results = [self._process_template(template, appointment, context, now)
                   for template in templates]

        failures = [r for r in results if r['outcome'] == OUTCOME_FAILED]
        if failures:
            return {'success': False, 'error': failures[0]['error'], 'results': results}
        return {'success': True, 'results': results}

    def _process_template(self, template, appointment, context, now) -> dict:
        result = {'template_id': template.id}
        try:
            if not evaluate_groups(template.condition_groups, context):
                logger.info("Conditions for template %s not met, skipping", template.name)
                result['outcome'] = OUTCOME_SKIPPED
                return result

            email = self.store.add_scheduled_email(
                **self.build_message(template, appointment, context, now)
            )
        except Exception as e:
            logger.exception("Failed to schedule template %s for appointment %s",
                             template.name, appointment['id'])
            result.update(outcome=OUTCOME_FAILED, error=str(e))
            return result

        logger.info("E-mail for appointment %s with template %s scheduled for %s",
                    appointment['id'], template.name, email.scheduled_for.isoformat())
        audit_log('SCHEDULE', 'scheduled_email', resource_id=str(email.id),
                  details={'template_id': template.id,
                           'appointment_id': appointment['id'],
                           'scheduled_for': email.scheduled_for.isoformat()})
        result.update(outcome=OUTCOME_SCHEDULED, scheduled_email_id=email.id,
                      scheduled_for=email.scheduled_for.isoformat())
        return result

    def build_message(self, template, appointment, context, now) -> dict:
        """Rendered fields of the scheduled e-mail for one template."""
        return {
            'template_id': template.id,
            'appointment_id': appointment['id'],
            'patient_id': appointment.get('patient_id'),
            'recipient_email': resolve(context, 'patient.email'),
            'sender_email': template.sender_email or self.default_sender,
            'subject': self.compiler.compile(template.subject, context),
            'body': self.compiler.compile(template.body, context),
            'scheduled_for': compute_send_time(
                appointment.get('start_time'), template, now, tz=self.timezone
            ),
        }
