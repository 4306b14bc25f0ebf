"""
Examination, location and device reference data joined onto appointments.
"""
import uuid
from clinic_mail import db


class Examination(db.Model):
    __tablename__ = 'examinations'

    id = db.Column(db.String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    name = db.Column(db.String(200), nullable=False)
    type = db.Column(db.String(30), nullable=True)  # mrt | ct | xray | ultrasound
    category = db.Column(db.String(100), nullable=True)
    duration = db.Column(db.Integer, nullable=True)  # minutes
    price = db.Column(db.Float, nullable=True)
    billing_info = db.Column(db.Text, nullable=True)
    with_contrast_medium = db.Column(db.Boolean, default=False)

    def to_dict(self):
        return {
            'id': self.id,
            'name': self.name,
            'type': self.type,
            'category': self.category,
            'duration': self.duration,
            'price': self.price,
            'billing_info': self.billing_info,
            'with_contrast_medium': self.with_contrast_medium,
        }


class Location(db.Model):
    __tablename__ = 'locations'

    id = db.Column(db.String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    name = db.Column(db.String(200), nullable=False)
    address = db.Column(db.Text, nullable=True)
    phone = db.Column(db.String(50), nullable=True)
    email = db.Column(db.String(255), nullable=True)
    directions = db.Column(db.Text, nullable=True)

    def to_dict(self):
        return {
            'id': self.id,
            'name': self.name,
            'address': self.address,
            'phone': self.phone,
            'email': self.email,
            'directions': self.directions,
        }


class Device(db.Model):
    __tablename__ = 'devices'

    id = db.Column(db.String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    name = db.Column(db.String(200), nullable=False)
    type = db.Column(db.String(50), nullable=True)
    location_id = db.Column(db.String(36), db.ForeignKey('locations.id'), nullable=True)

    def to_dict(self):
        return {
            'id': self.id,
            'name': self.name,
            'type': self.type,
            'location_id': self.location_id,
        }
