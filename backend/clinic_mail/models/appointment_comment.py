"""
Appointment comment model with encrypted text field for HIPAA compliance.
"""
import uuid
from datetime import datetime
from clinic_mail import db
from clinic_mail.utils.encryption import encrypt_phi, decrypt_phi


class AppointmentComment(db.Model):
    """
    Notes attached to an appointment. The dispatcher adds one when an
    e-mail for the appointment could not be delivered.
    """
    __tablename__ = 'appointment_comments'

    id = db.Column(db.String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    appointment_id = db.Column(db.String(36), db.ForeignKey('appointments.id'), nullable=False, index=True)
    _comment_encrypted = db.Column('comment', db.Text, nullable=False)
    created_by = db.Column(db.String(100), nullable=False, default='system')
    created_at = db.Column(db.DateTime, default=datetime.utcnow)

    # Relationships
    appointment = db.relationship('Appointment', backref='comments')

    @property
    def comment(self) -> str:
        return decrypt_phi(self._comment_encrypted) if self._comment_encrypted else None

    @comment.setter
    def comment(self, value: str):
        self._comment_encrypted = encrypt_phi(value) if value else None

    def to_dict(self):
        return {
            'id': self.id,
            'appointment_id': self.appointment_id,
            'comment': self.comment,
            'created_by': self.created_by,
            'created_at': self.created_at.isoformat() if self.created_at else None,
        }

    def __repr__(self):
        return f'<AppointmentComment {self.id} for appointment {self.appointment_id}>'
