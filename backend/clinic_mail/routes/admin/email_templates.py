"""Admin email template routes."""
import logging
from flask import request, jsonify, current_app

from clinic_mail import db
from clinic_mail.errors import NotFoundError, RenderError, StoreError, ValidationError
from clinic_mail.models import EmailTemplate
from clinic_mail.services import SQLAlchemyStore, get_trigger_processor
from clinic_mail.services.trigger_processor import build_context
from clinic_mail.utils.audit_logger import audit_log
from clinic_mail.utils.conditions import evaluate_groups
from clinic_mail.utils.schedule import utcnow
from clinic_mail.utils.validators import validate_email_template
from . import admin_bp, admin_required

logger = logging.getLogger(__name__)

EDITABLE_FIELDS = (
    'name', 'trigger_type', 'trigger_form', 'condition_groups', 'schedule_type',
    'schedule_time_value', 'schedule_time_unit', 'send_only_workdays',
    'send_time_start', 'send_time_end', 'sender_email', 'subject', 'body', 'is_active',
)


@admin_bp.errorhandler(ValidationError)
def handle_validation_error(error):
    return jsonify({'success': False, 'error': str(error), 'errors': error.errors}), 400


@admin_bp.errorhandler(NotFoundError)
def handle_not_found(error):
    return jsonify({'success': False, 'error': str(error)}), 404


def _get_template_or_404(template_id):
    template = db.session.get(EmailTemplate, template_id)
    if template is None:
        raise NotFoundError(f'Email template {template_id} not found')
    return template


def _template_payload(partial=False):
    data = request.get_json(silent=True)
    if not data:
        raise ValidationError('Request body required')
    if not isinstance(data, dict):
        raise ValidationError('Request body must be a JSON object')
    errors = validate_email_template(data, partial=partial)
    if errors:
        raise ValidationError(errors)
    return {field: data[field] for field in EDITABLE_FIELDS if field in data}


@admin_bp.route('/email-templates', methods=['GET'])
@admin_required
def list_email_templates():
    """List email templates, optionally filtered by trigger_type."""
    query = EmailTemplate.query
    trigger_type = request.args.get('trigger_type')
    if trigger_type:
        query = query.filter_by(trigger_type=trigger_type)
    if request.args.get('include_inactive', 'false').lower() != 'true':
        query = query.filter_by(is_active=True)
    templates = query.order_by(EmailTemplate.name).all()
    return jsonify({'templates': [t.to_dict() for t in templates]}), 200


@admin_bp.route('/email-templates/<template_id>', methods=['GET'])
@admin_required
def get_email_template(template_id):
    return jsonify(_get_template_or_404(template_id).to_dict()), 200


@admin_bp.route('/email-templates', methods=['POST'])
@admin_required
def create_email_template():
    """Create a new email template."""
    fields = _template_payload()
    for key in ('name', 'subject', 'body'):
        fields[key] = fields[key].strip()

    template = EmailTemplate(**fields)
    db.session.add(template)
    db.session.commit()

    audit_log('CREATE', 'email_template', resource_id=str(template.id))
    logger.info("Email template %s created", template.name)

    return jsonify(template.to_dict()), 201


@admin_bp.route('/email-templates/<template_id>', methods=['PUT'])
@admin_required
def update_email_template(template_id):
    template = _get_template_or_404(template_id)
    fields = _template_payload(partial=True)

    for key, value in fields.items():
        setattr(template, key, value)
    db.session.commit()

    audit_log('UPDATE', 'email_template', resource_id=str(template.id),
              details={'fields': sorted(fields)})
    return jsonify(template.to_dict()), 200


@admin_bp.route('/email-templates/<template_id>', methods=['DELETE'])
@admin_required
def delete_email_template(template_id):
    """Deactivate a template; scheduled e-mails keep their reference to it."""
    template = _get_template_or_404(template_id)
    template.is_active = False
    db.session.commit()

    audit_log('DELETE', 'email_template', resource_id=str(template.id))
    return jsonify({'success': True}), 200


@admin_bp.route('/email-templates/<template_id>/preview', methods=['POST'])
@admin_required
def preview_email_template(template_id):
    """
    Render a template against an appointment without scheduling anything.
    Uses the given appointmentId or the most recently created appointment.
    """
    template = _get_template_or_404(template_id)
    data = request.get_json(silent=True) or {}
    if not isinstance(data, dict):
        raise ValidationError('Request body must be a JSON object')
    store = SQLAlchemyStore()

    try:
        if data.get('appointmentId'):
            appointment = store.get_appointment(str(data['appointmentId']))
        else:
            appointment = store.get_latest_appointment()
    except StoreError as e:
        return jsonify({'success': False, 'error': str(e)}), 500
    if appointment is None:
        raise NotFoundError('No appointment available for preview')

    processor = get_trigger_processor(store)
    context = build_context(appointment, current_app.config['TEMPLATE_LANGUAGE'])
    try:
        message = processor.build_message(template, appointment, context, utcnow())
    except (RenderError, ValueError) as e:
        return jsonify({'success': False, 'error': str(e)}), 400

    audit_log('READ', 'email_template', resource_id=str(template.id),
              details={'preview_appointment_id': appointment['id']})
    return jsonify({
        'success': True,
        'appointment_id': appointment['id'],
        'conditions_met': evaluate_groups(template.condition_groups, context),
        'recipient_email': message['recipient_email'],
        'subject': message['subject'],
        'body': message['body'],
        'scheduled_for': message['scheduled_for'].isoformat(),
    }), 200
