"""
Email template model. Trigger-driven templates for patient e-mails.
"""
import uuid
from datetime import datetime
from clinic_mail import db


class EmailTemplate(db.Model):
    """
    Reusable e-mail template fired by an appointment event.
    Subject and body support {{path}} placeholders and {{if}} blocks;
    condition_groups decide whether the template applies at all.
    """
    __tablename__ = 'email_templates'

    id = db.Column(db.String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    name = db.Column(db.String(200), nullable=False)
    trigger_type = db.Column(db.String(50), nullable=False, index=True)
    trigger_form = db.Column(db.String(100), nullable=True)  # only for form_submission
    # [{"operator": "AND"|"OR", "conditions": [{"field", "operator", "value"}]}]
    condition_groups = db.Column('conditions', db.JSON, nullable=True)
    schedule_type = db.Column(db.String(30), nullable=False, default='immediate')
    schedule_time_value = db.Column(db.Integer, nullable=True, default=24)
    schedule_time_unit = db.Column(db.String(10), nullable=True, default='hours')  # hours | days | weeks | months
    send_only_workdays = db.Column(db.Boolean, default=False)
    send_time_start = db.Column(db.String(5), nullable=True)  # HH:MM
    send_time_end = db.Column(db.String(5), nullable=True)  # stored, not used for scheduling
    sender_email = db.Column(db.String(255), nullable=True)
    subject = db.Column(db.String(500), nullable=False)
    body = db.Column(db.Text, nullable=False)
    is_active = db.Column(db.Boolean, default=True)
    created_at = db.Column(db.DateTime, default=datetime.utcnow)
    updated_at = db.Column(db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    def to_dict(self):
        return {
            'id': self.id,
            'name': self.name,
            'trigger_type': self.trigger_type,
            'trigger_form': self.trigger_form,
            'condition_groups': self.condition_groups or [],
            'schedule_type': self.schedule_type,
            'schedule_time_value': self.schedule_time_value,
            'schedule_time_unit': self.schedule_time_unit,
            'send_only_workdays': self.send_only_workdays,
            'send_time_start': self.send_time_start,
            'send_time_end': self.send_time_end,
            'sender_email': self.sender_email,
            'subject': self.subject,
            'body': self.body,
            'is_active': self.is_active,
            'created_at': self.created_at.isoformat() if self.created_at else None,
            'updated_at': self.updated_at.isoformat() if self.updated_at else None,
        }

    def __repr__(self):
        return f'<EmailTemplate {self.id} name={self.name}>'
