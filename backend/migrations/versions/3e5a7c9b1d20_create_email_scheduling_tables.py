"""create email scheduling tables

Revision ID: 3e5a7c9b1d20
Revises:
Create Date: 2026-10-12 09:00:00.000000

"""
from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = '3e5a7c9b1d20'
down_revision = None
branch_labels = None
depends_on = None


def upgrade():
    # Reference data
    op.create_table('patients',
        sa.Column('id', sa.String(36), nullable=False),
        sa.Column('title', sa.String(50), nullable=True),
        sa.Column('first_name', sa.String(100), nullable=False),
        sa.Column('last_name', sa.String(100), nullable=False),
        sa.Column('gender', sa.String(20), nullable=True),
        sa.Column('email', sa.String(255), nullable=True),
        sa.Column('phone', sa.String(50), nullable=True),
        sa.Column('birth_date', sa.Date(), nullable=True),
        sa.Column('insurance_type', sa.String(20), nullable=True),
        sa.Column('has_beihilfe', sa.Boolean(), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=True),
        sa.PrimaryKeyConstraint('id')
    )

    op.create_table('examinations',
        sa.Column('id', sa.String(36), nullable=False),
        sa.Column('name', sa.String(200), nullable=False),
        sa.Column('type', sa.String(30), nullable=True),
        sa.Column('category', sa.String(100), nullable=True),
        sa.Column('duration', sa.Integer(), nullable=True),
        sa.Column('price', sa.Float(), nullable=True),
        sa.Column('billing_info', sa.Text(), nullable=True),
        sa.Column('with_contrast_medium', sa.Boolean(), nullable=True),
        sa.PrimaryKeyConstraint('id')
    )

    op.create_table('locations',
        sa.Column('id', sa.String(36), nullable=False),
        sa.Column('name', sa.String(200), nullable=False),
        sa.Column('address', sa.Text(), nullable=True),
        sa.Column('phone', sa.String(50), nullable=True),
        sa.Column('email', sa.String(255), nullable=True),
        sa.Column('directions', sa.Text(), nullable=True),
        sa.PrimaryKeyConstraint('id')
    )

    op.create_table('devices',
        sa.Column('id', sa.String(36), nullable=False),
        sa.Column('name', sa.String(200), nullable=False),
        sa.Column('type', sa.String(50), nullable=True),
        sa.Column('location_id', sa.String(36), nullable=True),
        sa.ForeignKeyConstraint(['location_id'], ['locations.id']),
        sa.PrimaryKeyConstraint('id')
    )

    # Appointments
    op.create_table('appointments',
        sa.Column('id', sa.String(36), nullable=False),
        sa.Column('patient_id', sa.String(36), nullable=True),
        sa.Column('examination_id', sa.String(36), nullable=True),
        sa.Column('location_id', sa.String(36), nullable=True),
        sa.Column('device_id', sa.String(36), nullable=True),
        sa.Column('start_time', sa.DateTime(), nullable=False),
        sa.Column('end_time', sa.DateTime(), nullable=True),
        sa.Column('status', sa.String(30), nullable=True),
        sa.Column('billing_type', sa.String(30), nullable=True),
        sa.Column('has_transfer', sa.Boolean(), nullable=True),
        sa.Column('referring_doctor', sa.String(200), nullable=True),
        sa.Column('with_contrast_medium', sa.Boolean(), nullable=True),
        sa.Column('has_beihilfe', sa.Boolean(), nullable=True),
        sa.Column('forms_url', sa.String(500), nullable=True),
        sa.Column('patient_data', sa.JSON(), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=True),
        sa.ForeignKeyConstraint(['patient_id'], ['patients.id']),
        sa.ForeignKeyConstraint(['examination_id'], ['examinations.id']),
        sa.ForeignKeyConstraint(['location_id'], ['locations.id']),
        sa.ForeignKeyConstraint(['device_id'], ['devices.id']),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index('ix_appointments_patient_id', 'appointments', ['patient_id'])
    op.create_index('ix_appointments_start_time', 'appointments', ['start_time'])
    op.create_index('ix_appointments_created_at', 'appointments', ['created_at'])

    op.create_table('appointment_comments',
        sa.Column('id', sa.String(36), nullable=False),
        sa.Column('appointment_id', sa.String(36), nullable=False),
        sa.Column('comment', sa.Text(), nullable=False),
        sa.Column('created_by', sa.String(100), nullable=False, server_default='system'),
        sa.Column('created_at', sa.DateTime(), nullable=True),
        sa.ForeignKeyConstraint(['appointment_id'], ['appointments.id']),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index('ix_appointment_comments_appointment_id', 'appointment_comments', ['appointment_id'])

    # Templates
    op.create_table('email_templates',
        sa.Column('id', sa.String(36), nullable=False),
        sa.Column('name', sa.String(200), nullable=False),
        sa.Column('trigger_type', sa.String(50), nullable=False),
        sa.Column('trigger_form', sa.String(100), nullable=True),
        sa.Column('conditions', sa.JSON(), nullable=True),
        sa.Column('schedule_type', sa.String(30), nullable=False, server_default='immediate'),
        sa.Column('schedule_time_value', sa.Integer(), nullable=True),
        sa.Column('schedule_time_unit', sa.String(10), nullable=True),
        sa.Column('send_only_workdays', sa.Boolean(), nullable=True),
        sa.Column('send_time_start', sa.String(5), nullable=True),
        sa.Column('send_time_end', sa.String(5), nullable=True),
        sa.Column('sender_email', sa.String(255), nullable=True),
        sa.Column('subject', sa.String(500), nullable=False),
        sa.Column('body', sa.Text(), nullable=False),
        sa.Column('is_active', sa.Boolean(), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=True),
        sa.Column('updated_at', sa.DateTime(), nullable=True),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index('ix_email_templates_trigger_type', 'email_templates', ['trigger_type'])

    # Scheduled e-mails (subject/body encrypted)
    op.create_table('scheduled_emails',
        sa.Column('id', sa.String(36), nullable=False),
        sa.Column('template_id', sa.String(36), nullable=True),
        sa.Column('appointment_id', sa.String(36), nullable=True),
        sa.Column('patient_id', sa.String(36), nullable=True),
        sa.Column('recipient_email', sa.String(255), nullable=True),
        sa.Column('sender_email', sa.String(255), nullable=True),
        sa.Column('subject', sa.Text(), nullable=True),
        sa.Column('body', sa.Text(), nullable=True),
        sa.Column('status', sa.String(20), nullable=False, server_default='pending'),
        sa.Column('scheduled_for', sa.DateTime(), nullable=False),
        sa.Column('claimed_at', sa.DateTime(), nullable=True),
        sa.Column('processed_at', sa.DateTime(), nullable=True),
        sa.Column('error_message', sa.Text(), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=True),
        sa.ForeignKeyConstraint(['template_id'], ['email_templates.id']),
        sa.ForeignKeyConstraint(['appointment_id'], ['appointments.id']),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index('ix_scheduled_emails_template_id', 'scheduled_emails', ['template_id'])
    op.create_index('ix_scheduled_emails_appointment_id', 'scheduled_emails', ['appointment_id'])
    op.create_index('ix_scheduled_emails_patient_id', 'scheduled_emails', ['patient_id'])
    op.create_index('ix_scheduled_emails_status_scheduled_for', 'scheduled_emails', ['status', 'scheduled_for'])

    # Delivery log
    op.create_table('email_logs',
        sa.Column('id', sa.String(36), nullable=False),
        sa.Column('scheduled_email_id', sa.String(36), nullable=True),
        sa.Column('template_id', sa.String(36), nullable=True),
        sa.Column('appointment_id', sa.String(36), nullable=True),
        sa.Column('patient_id', sa.String(36), nullable=True),
        sa.Column('recipient_email', sa.String(255), nullable=True),
        sa.Column('subject', sa.Text(), nullable=True),
        sa.Column('body', sa.Text(), nullable=True),
        sa.Column('status', sa.String(10), nullable=False),
        sa.Column('error_message', sa.Text(), nullable=True),
        sa.Column('scheduled_for', sa.DateTime(), nullable=True),
        sa.Column('sent_at', sa.DateTime(), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=True),
        sa.ForeignKeyConstraint(['scheduled_email_id'], ['scheduled_emails.id']),
        sa.ForeignKeyConstraint(['template_id'], ['email_templates.id']),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index('ix_email_logs_scheduled_email_id', 'email_logs', ['scheduled_email_id'])
    op.create_index('ix_email_logs_appointment_id', 'email_logs', ['appointment_id'])
    op.create_index('ix_email_logs_patient_id', 'email_logs', ['patient_id'])
    op.create_index('ix_email_logs_created_at', 'email_logs', ['created_at'])


def downgrade():
    op.drop_table('email_logs')
    op.drop_table('scheduled_emails')
    op.drop_table('email_templates')
    op.drop_table('appointment_comments')
    op.drop_table('appointments')
    op.drop_table('devices')
    op.drop_table('locations')
    op.drop_table('examinations')
    op.drop_table('patients')
