"""
Appointment model with its joined patient, examination, location and device.
"""
import uuid
from datetime import datetime
from clinic_mail import db


class Appointment(db.Model):
    """
    A booked appointment. The scheduler only reads it; `to_record()` returns
    the joined structure templates are evaluated against.
    """
    __tablename__ = 'appointments'

    id = db.Column(db.String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    patient_id = db.Column(db.String(36), db.ForeignKey('patients.id'), nullable=True, index=True)
    examination_id = db.Column(db.String(36), db.ForeignKey('examinations.id'), nullable=True)
    location_id = db.Column(db.String(36), db.ForeignKey('locations.id'), nullable=True)
    device_id = db.Column(db.String(36), db.ForeignKey('devices.id'), nullable=True)
    start_time = db.Column(db.DateTime, nullable=False, index=True)  # UTC
    end_time = db.Column(db.DateTime, nullable=True)
    status = db.Column(db.String(30), nullable=True)
    billing_type = db.Column(db.String(30), nullable=True)
    has_transfer = db.Column(db.Boolean, default=False)
    referring_doctor = db.Column(db.String(200), nullable=True)
    with_contrast_medium = db.Column(db.Boolean, default=False)
    has_beihilfe = db.Column(db.Boolean, default=False)
    forms_url = db.Column(db.String(500), nullable=True)
    patient_data = db.Column(db.JSON, nullable=True)
    created_at = db.Column(db.DateTime, default=datetime.utcnow, index=True)

    # Relationships
    patient = db.relationship('Patient', backref='appointments')
    examination = db.relationship('Examination')
    location = db.relationship('Location')
    device = db.relationship('Device')

    def to_record(self):
        """Appointment fields plus the nested patient/examination/location/device."""
        return {
            'id': self.id,
            'patient_id': self.patient_id,
            'examination_id': self.examination_id,
            'location_id': self.location_id,
            'device_id': self.device_id,
            'start_time': self.start_time,
            'end_time': self.end_time,
            'status': self.status,
            'billing_type': self.billing_type,
            'has_transfer': self.has_transfer,
            'referring_doctor': self.referring_doctor,
            'with_contrast_medium': self.with_contrast_medium,
            'has_beihilfe': self.has_beihilfe,
            'forms_url': self.forms_url,
            'patient_data': self.patient_data or {},
            'patient': self.patient.to_dict() if self.patient else None,
            'examination': self.examination.to_dict() if self.examination else None,
            'location': self.location.to_dict() if self.location else None,
            'device': self.device.to_dict() if self.device else None,
        }

    def __repr__(self):
        return f'<Appointment {self.id} at {self.start_time}>'
