"""
Email log model. Append-only record of every delivery attempt.
"""
import uuid
from datetime import datetime
from clinic_mail import db
from clinic_mail.utils.encryption import encrypt_phi, decrypt_phi

LOG_STATUS_SENT = 'sent'
LOG_STATUS_FAILED = 'failed'


class EmailLog(db.Model):
    """
    One row per scheduled e-mail reaching a terminal state.
    Rows are only ever inserted, never updated.
    """
    __tablename__ = 'email_logs'

    id = db.Column(db.String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    scheduled_email_id = db.Column(db.String(36), db.ForeignKey('scheduled_emails.id'), nullable=True, index=True)
    template_id = db.Column(db.String(36), db.ForeignKey('email_templates.id'), nullable=True)
    appointment_id = db.Column(db.String(36), nullable=True, index=True)
    patient_id = db.Column(db.String(36), nullable=True, index=True)
    recipient_email = db.Column(db.String(255), nullable=True)
    _subject_encrypted = db.Column('subject', db.Text, nullable=True)
    _body_encrypted = db.Column('body', db.Text, nullable=True)
    status = db.Column(db.String(10), nullable=False)  # sent | failed
    error_message = db.Column(db.Text, nullable=True)
    scheduled_for = db.Column(db.DateTime, nullable=True)
    sent_at = db.Column(db.DateTime, nullable=True)
    created_at = db.Column(db.DateTime, default=datetime.utcnow, index=True)

    # Relationships
    template = db.relationship('EmailTemplate')

    @property
    def subject(self) -> str:
        return decrypt_phi(self._subject_encrypted) if self._subject_encrypted else ''

    @subject.setter
    def subject(self, value: str):
        self._subject_encrypted = encrypt_phi(value) if value else None

    @property
    def body(self) -> str:
        return decrypt_phi(self._body_encrypted) if self._body_encrypted else ''

    @body.setter
    def body(self, value: str):
        self._body_encrypted = encrypt_phi(value) if value else None

    def to_dict(self):
        return {
            'id': self.id,
            'scheduled_email_id': self.scheduled_email_id,
            'template_id': self.template_id,
            'template_name': self.template.name if self.template else None,
            'appointment_id': self.appointment_id,
            'patient_id': self.patient_id,
            'recipient_email': self.recipient_email,
            'subject': self.subject,
            'status': self.status,
            'error_message': self.error_message,
            'scheduled_for': self.scheduled_for.isoformat() if self.scheduled_for else None,
            'sent_at': self.sent_at.isoformat() if self.sent_at else None,
            'created_at': self.created_at.isoformat() if self.created_at else None,
        }

    def __repr__(self):
        return f'<EmailLog {self.id} status={self.status}>'
