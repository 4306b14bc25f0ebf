"""
Patient model (read-only for the scheduler).
"""
import uuid
from datetime import datetime
from clinic_mail import db


class Patient(db.Model):
    """Patient record, exposed to templates as `patient.*`."""
    __tablename__ = 'patients'

    id = db.Column(db.String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    title = db.Column(db.String(50), nullable=True)
    first_name = db.Column(db.String(100), nullable=False)
    last_name = db.Column(db.String(100), nullable=False)
    gender = db.Column(db.String(20), nullable=True)  # male | female | diverse
    email = db.Column(db.String(255), nullable=True)
    phone = db.Column(db.String(50), nullable=True)
    birth_date = db.Column(db.Date, nullable=True)
    insurance_type = db.Column(db.String(20), nullable=True)  # private | public
    has_beihilfe = db.Column(db.Boolean, default=False)
    created_at = db.Column(db.DateTime, default=datetime.utcnow)

    def to_dict(self):
        return {
            'id': self.id,
            'title': self.title,
            'first_name': self.first_name,
            'last_name': self.last_name,
            'gender': self.gender,
            'email': self.email,
            'phone': self.phone,
            'birth_date': self.birth_date.isoformat() if self.birth_date else None,
            'insurance_type': self.insurance_type,
            'has_beihilfe': self.has_beihilfe,
        }

    def __repr__(self):
        return f'<Patient {self.id}>'
