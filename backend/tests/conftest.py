import os
import tempfile
from datetime import datetime
from typing import Generator

import pytest

os.environ.setdefault("DATABASE_URL", "sqlite://")
# base64 of a 32 byte test key
os.environ.setdefault("PHI_ENCRYPTION_KEY", "MDEyMzQ1Njc4OWFiY2RlZjAxMjM0NTY3ODlhYmNkZWY=")
os.environ.setdefault("AUDIT_LOG_FILE", os.path.join(tempfile.gettempdir(), "clinic_mail_test", "audit.log"))
os.environ.setdefault("EMAIL_BACKEND", "console")
os.environ.setdefault("CLINIC_TIMEZONE", "UTC")
os.environ.setdefault("TEMPLATE_LANGUAGE", "de")
os.environ.setdefault("DEFAULT_SENDER_EMAIL", "praxis@example.com")

from clinic_mail import create_app, db  # noqa: E402
from clinic_mail.errors import TransportError  # noqa: E402
from clinic_mail.models import (  # noqa: E402
    Appointment, Device, EmailTemplate, Examination, Location, Patient,
)
from clinic_mail.utils.email_sender import EmailBackend  # noqa: E402


class RecordingBackend(EmailBackend):
    """Collects sent messages instead of delivering them."""

    def __init__(self):
        self.sent = []

    def send(self, sender, to_email, subject, body_html, body_text=None):
        self.sent.append({
            'from': sender, 'to': to_email, 'subject': subject, 'body': body_html,
        })


class FailingBackend(EmailBackend):
    def __init__(self, message='Mailbox unavailable', error=TransportError):
        self.message = message
        self.error = error
        self.attempts = 0

    def send(self, sender, to_email, subject, body_html, body_text=None):
        self.attempts += 1
        raise self.error(self.message)


@pytest.fixture()
def app() -> Generator:
    app = create_app({'TESTING': True})
    with app.app_context():
        db.create_all()
        yield app
        db.session.remove()
        db.drop_all()


@pytest.fixture()
def client(app):
    return app.test_client()


@pytest.fixture()
def mailer():
    return RecordingBackend()


@pytest.fixture()
def make_appointment(app):
    """Create a patient + appointment with examination, location and device."""
    def _make(start_time=datetime(2024, 5, 10, 10, 0), **overrides):
        patient_fields = {
            'first_name': 'Anna', 'last_name': 'Schmidt', 'gender': 'female',
            'title': 'Dr.', 'email': 'anna@example.com', 'insurance_type': 'private',
        }
        patient_fields.update(overrides.pop('patient', {}))
        patient = Patient(**patient_fields)
        location = Location(name='Radiologie Zentrum', address='Hauptstraße 1')
        examination = Examination(name='MRT Knie', type='mrt', price=350.0)
        db.session.add_all([patient, location, examination])
        db.session.flush()
        device = Device(name='MRT 1.5T', type='mrt', location_id=location.id)
        db.session.add(device)
        db.session.flush()

        appointment = Appointment(
            patient_id=patient.id, examination_id=examination.id,
            location_id=location.id, device_id=device.id,
            start_time=start_time, status='confirmed', **overrides,
        )
        db.session.add(appointment)
        db.session.commit()
        return appointment
    return _make


@pytest.fixture()
def make_template(app):
    def _make(**fields):
        values = {
            'name': 'Reminder',
            'trigger_type': 'appointment_created',
            'schedule_type': 'immediate',
            'subject': 'Termin {{examination.name}}',
            'body': 'Hallo {{patient.first_name}}',
        }
        values.update(fields)
        template = EmailTemplate(**values)
        db.session.add(template)
        db.session.commit()
        return template
    return _make


@pytest.fixture()
def failing_mailer():
    return FailingBackend()


@pytest.fixture()
def crashing_mailer():
    """Backend that raises something other than TransportError."""
    return FailingBackend('connection reset', error=RuntimeError)
