"""
Seed script to populate the database with reference data and starter templates.
Run from backend/: python seed.py
"""
import sys
import os
sys.path.insert(0, os.path.dirname(__file__))

from clinic_mail import create_app, db
from clinic_mail.models import Device, EmailTemplate, Examination, Location

LOCATIONS = [
    {'name': 'Radiologie Zentrum', 'address': 'Hauptstraße 1, 10115 Berlin',
     'phone': '+49 30 123456', 'email': 'info@radiologie.example'},
]

EXAMINATIONS = [
    {'name': 'MRT Knie', 'type': 'mrt', 'category': 'Orthopädie', 'duration': 30, 'price': 350.0},
    {'name': 'CT Thorax', 'type': 'ct', 'category': 'Innere Medizin', 'duration': 20,
     'price': 280.0, 'with_contrast_medium': True},
]

TEMPLATES = [
    {
        'name': 'Terminbestätigung',
        'trigger_type': 'appointment_created',
        'schedule_type': 'immediate',
        'subject': 'Ihr Termin am {{appointment.start_time}}',
        'body': (
            '<p>{{patient.salutation}},</p>'
            '<p>wir bestätigen Ihren Termin für {{examination.name}} am '
            '{{appointment.start_time}} in {{location.name}}.</p>'
            '{{if appointment.with_contrast_medium == true}}'
            '<p>Bitte kommen Sie nüchtern, es wird Kontrastmittel verwendet.</p>'
            '{{endif}}'
        ),
    },
    {
        'name': 'Terminerinnerung (2 Tage vorher)',
        'trigger_type': 'appointment_created',
        'schedule_type': 'before_appointment',
        'schedule_time_value': 2,
        'schedule_time_unit': 'days',
        'send_only_workdays': True,
        'send_time_start': '08:30',
        'condition_groups': [
            {'operator': 'AND', 'conditions': [
                {'field': 'appointment.status', 'operator': '!=', 'value': 'cancelled'},
            ]},
        ],
        'subject': 'Erinnerung: {{examination.name}}',
        'body': (
            '<p>{{patient.salutation}},</p>'
            '<p>wir erinnern Sie an Ihren Termin am {{appointment.start_time}}.</p>'
            '{{if patient.insurance_type == "private"}}'
            '<p>Die voraussichtlichen Kosten betragen {{examination.price}} EUR.</p>'
            '{{else}}'
            '<p>Bitte bringen Sie Ihre Versichertenkarte mit.</p>'
            '{{endif}}'
        ),
    },
]


def seed():
    app = create_app()
    with app.app_context():
        for data in LOCATIONS:
            if Location.query.filter_by(name=data['name']).first():
                print(f"  Location '{data['name']}' already exists, skipping.")
                continue
            location = Location(**data)
            db.session.add(location)
            db.session.flush()
            db.session.add(Device(name='MRT 1.5T', type='mrt', location_id=location.id))
            print(f"  Added location '{data['name']}'")

        for data in EXAMINATIONS:
            if Examination.query.filter_by(name=data['name']).first():
                print(f"  Examination '{data['name']}' already exists, skipping.")
                continue
            db.session.add(Examination(**data))
            print(f"  Added examination '{data['name']}'")
        db.session.commit()

        for data in TEMPLATES:
            if EmailTemplate.query.filter_by(name=data['name']).first():
                print(f"  Template '{data['name']}' already exists, skipping.")
                continue
            db.session.add(EmailTemplate(**data))
            print(f"  Added template '{data['name']}'")
        db.session.commit()
        print(f"Templates seeded: {EmailTemplate.query.count()} total.")


if __name__ == '__main__':
    seed()
