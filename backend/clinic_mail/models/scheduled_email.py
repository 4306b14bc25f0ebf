"""
Scheduled e-mail model. Rendered subject/body are encrypted at rest (PHI).
"""
import uuid
from datetime import datetime
from clinic_mail import db
from clinic_mail.utils.encryption import encrypt_phi, decrypt_phi

STATUS_PENDING = 'pending'
STATUS_PROCESSING = 'processing'  # claimed by a dispatch run
STATUS_PROCESSED = 'processed'
STATUS_ERROR = 'error'

SCHEDULED_EMAIL_STATUSES = [STATUS_PENDING, STATUS_PROCESSING, STATUS_PROCESSED, STATUS_ERROR]


class ScheduledEmail(db.Model):
    """
    A rendered message waiting for its send time.
    Moves pending -> processing -> processed | error, never backwards.
    """
    __tablename__ = 'scheduled_emails'

    id = db.Column(db.String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    template_id = db.Column(db.String(36), db.ForeignKey('email_templates.id'), nullable=True, index=True)
    appointment_id = db.Column(db.String(36), db.ForeignKey('appointments.id'), nullable=True, index=True)
    patient_id = db.Column(db.String(36), nullable=True, index=True)
    recipient_email = db.Column(db.String(255), nullable=True)
    sender_email = db.Column(db.String(255), nullable=True)
    _subject_encrypted = db.Column('subject', db.Text, nullable=True)
    _body_encrypted = db.Column('body', db.Text, nullable=True)
    status = db.Column(db.String(20), nullable=False, default=STATUS_PENDING)
    scheduled_for = db.Column(db.DateTime, nullable=False)
    claimed_at = db.Column(db.DateTime, nullable=True)
    processed_at = db.Column(db.DateTime, nullable=True)
    error_message = db.Column(db.Text, nullable=True)
    created_at = db.Column(db.DateTime, default=datetime.utcnow)

    __table_args__ = (
        db.Index('ix_scheduled_emails_status_scheduled_for', 'status', 'scheduled_for'),
    )

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
            'template_id': self.template_id,
            'appointment_id': self.appointment_id,
            'patient_id': self.patient_id,
            'recipient_email': self.recipient_email,
            'sender_email': self.sender_email,
            'subject': self.subject,
            'body': self.body,
            'status': self.status,
            'scheduled_for': self.scheduled_for.isoformat() if self.scheduled_for else None,
            'processed_at': self.processed_at.isoformat() if self.processed_at else None,
            'error_message': self.error_message,
            'created_at': self.created_at.isoformat() if self.created_at else None,
        }

    def __repr__(self):
        return f'<ScheduledEmail {self.id} status={self.status}>'
