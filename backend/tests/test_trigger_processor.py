"""Tests for TriggerProcessor against the SQLAlchemy store."""
from datetime import datetime, timedelta
from unittest.mock import MagicMock

import pytest

from clinic_mail.errors import StoreError
from clinic_mail.models import ScheduledEmail
from clinic_mail.services import SQLAlchemyStore, Store, TriggerProcessor
from clinic_mail.services.trigger_processor import build_context, salutation

NOW = datetime(2024, 5, 5, 9, 0)


@pytest.fixture
def processor(app):
    return TriggerProcessor(SQLAlchemyStore(), default_sender='praxis@example.com')


class TestSalutation:

    def test_german_forms(self):
        assert salutation({'gender': 'male', 'title': 'Dr.', 'last_name': 'Meier'}) == 'Sehr geehrter Herr Dr. Meier'
        assert salutation({'gender': 'weiblich', 'last_name': 'Schmidt'}) == 'Sehr geehrte Frau Schmidt'
        assert salutation({'gender': 'diverse', 'last_name': 'Kim'}) == 'Sehr geehrte(r) Kim'

    def test_english_forms(self):
        assert salutation({'gender': 'female', 'last_name': 'Smith'}, 'en') == 'Dear Ms. Smith'
        assert salutation({'last_name': 'Smith'}, 'en') == 'Dear Smith'

    def test_context_adds_salutation(self):
        appointment = {'id': '1', 'patient': {'gender': 'female', 'last_name': 'Schmidt'}}
        context = build_context(appointment)
        assert context['patient']['salutation'] == 'Sehr geehrte Frau Schmidt'
        assert context['appointment'] is appointment
        assert 'salutation' not in appointment['patient']

    def test_context_without_patient(self):
        context = build_context({'id': '1', 'patient': None})
        assert context['patient'] is None


class TestScheduleEmails:

    def test_reminder_two_days_before(self, processor, make_appointment, make_template):
        start = NOW + timedelta(days=5)
        appointment = make_appointment(start_time=start)
        template = make_template(
            trigger_type='appointment_reminder',
            condition_groups=[],
            schedule_type='before_appointment',
            schedule_time_value=2,
            schedule_time_unit='days',
            subject='Reminder for {{patient.first_name}}',
        )

        result = processor.schedule_emails_for_appointment(
            appointment.id, 'appointment_reminder', now=NOW
        )

        assert result['success'] is True
        assert result['results'] == [{
            'template_id': template.id,
            'outcome': 'scheduled',
            'scheduled_email_id': result['results'][0]['scheduled_email_id'],
            'scheduled_for': (start - timedelta(days=2)).isoformat(),
        }]
        emails = ScheduledEmail.query.all()
        assert len(emails) == 1
        email = emails[0]
        assert email.status == 'pending'
        assert email.scheduled_for == start - timedelta(days=2)
        assert 'Anna' in email.subject
        assert email.recipient_email == 'anna@example.com'
        assert email.sender_email == 'praxis@example.com'
        assert email.patient_id == appointment.patient_id

    def test_rendered_content_is_encrypted_at_rest(self, processor, make_appointment, make_template):
        appointment = make_appointment()
        make_template(body='Hallo {{patient.first_name}}')
        processor.schedule_emails_for_appointment(appointment.id, 'appointment_created', now=NOW)

        email = ScheduledEmail.query.one()
        assert email.body == 'Hallo Anna'
        assert 'Anna' not in email._body_encrypted

    def test_only_matching_trigger_and_active_templates(self, processor, make_appointment, make_template):
        appointment = make_appointment()
        make_template(name='created')
        make_template(name='cancelled', trigger_type='appointment_cancelled')
        make_template(name='inactive', is_active=False)

        result = processor.schedule_emails_for_appointment(appointment.id, 'appointment_created', now=NOW)

        assert [r['outcome'] for r in result['results']] == ['scheduled']
        assert ScheduledEmail.query.count() == 1

    def test_conditions_not_met_skips(self, processor, make_appointment, make_template):
        appointment = make_appointment()
        template = make_template(condition_groups=[
            {'operator': 'AND', 'conditions': [
                {'field': 'patient.insurance_type', 'operator': '=', 'value': 'public'},
            ]},
        ])

        result = processor.schedule_emails_for_appointment(appointment.id, 'appointment_created', now=NOW)

        assert result == {'success': True, 'results': [{'template_id': template.id, 'outcome': 'skipped'}]}
        assert ScheduledEmail.query.count() == 0

    def test_salutation_placeholder(self, processor, make_appointment, make_template):
        appointment = make_appointment()
        make_template(body='{{patient.salutation}},')
        processor.schedule_emails_for_appointment(appointment.id, 'appointment_created', now=NOW)
        assert ScheduledEmail.query.one().body == 'Sehr geehrte Frau Dr. Schmidt,'

    def test_no_templates_is_success(self, processor, make_appointment):
        appointment = make_appointment()
        result = processor.schedule_emails_for_appointment(appointment.id, 'appointment_completed', now=NOW)
        assert result == {'success': True, 'results': []}

    def test_unknown_appointment(self, processor):
        result = processor.schedule_emails_for_appointment('missing', 'appointment_created', now=NOW)
        assert result['success'] is False
        assert 'not found' in result['error']

    def test_failing_template_does_not_block_siblings(self, processor, make_appointment, make_template):
        appointment = make_appointment()
        broken = make_template(name='a-broken', schedule_type='before_appointment',
                               schedule_time_unit='fortnights')
        good = make_template(name='b-good')

        result = processor.schedule_emails_for_appointment(appointment.id, 'appointment_created', now=NOW)

        outcomes = {r['template_id']: r['outcome'] for r in result['results']}
        assert outcomes == {broken.id: 'failed', good.id: 'scheduled'}
        assert result['success'] is False
        assert 'fortnights' in result['error']
        assert ScheduledEmail.query.count() == 1

    def test_store_failure_is_reported(self):
        store = MagicMock(spec=Store)
        store.get_appointment.side_effect = StoreError('Database error while loading appointment')

        result = TriggerProcessor(store).schedule_emails_for_appointment('1', 'appointment_created')

        assert result == {'success': False, 'error': 'Database error while loading appointment', 'results': []}
        store.add_scheduled_email.assert_not_called()
