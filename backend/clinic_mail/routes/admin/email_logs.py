"""Admin email delivery log routes."""
from flask import request, jsonify

from clinic_mail.errors import ValidationError
from clinic_mail.models import EmailLog
from clinic_mail.models.email_log import LOG_STATUS_FAILED, LOG_STATUS_SENT
from clinic_mail.utils.audit_logger import audit_log
from . import admin_bp, admin_required

DEFAULT_LIMIT = 100
MAX_LIMIT = 500


@admin_bp.route('/email-logs', methods=['GET'])
@admin_required
def list_email_logs():
    """Delivery log, newest first. Filters: appointment_id, patient_id, status, limit."""
    query = EmailLog.query

    appointment_id = request.args.get('appointment_id')
    if appointment_id:
        query = query.filter_by(appointment_id=appointment_id)

    patient_id = request.args.get('patient_id')
    if patient_id:
        query = query.filter_by(patient_id=patient_id)

    status = request.args.get('status')
    if status:
        if status not in (LOG_STATUS_SENT, LOG_STATUS_FAILED):
            raise ValidationError(f'Invalid status: {status}')
        query = query.filter_by(status=status)

    try:
        limit = int(request.args.get('limit', DEFAULT_LIMIT))
    except ValueError:
        raise ValidationError('limit must be an integer')
    limit = max(1, min(limit, MAX_LIMIT))

    logs = query.order_by(EmailLog.created_at.desc()).limit(limit).all()

    audit_log('READ', 'email_log', details={
        'appointment_id': appointment_id, 'patient_id': patient_id, 'count': len(logs),
    })
    return jsonify({'logs': [entry.to_dict() for entry in logs], 'count': len(logs)}), 200
