"""
Input validation for scheduling requests and e-mail templates.
"""
from email_validator import validate_email, EmailNotValidError

from clinic_mail.utils.conditions import GROUP_OPERATORS
from clinic_mail.utils.schedule import SCHEDULE_TYPES, TIME_UNITS, parse_time_of_day

TRIGGER_TYPES = [
    'appointment_created',
    'appointment_updated',
    'appointment_cancelled',
    'appointment_reminder',
    'appointment_completed',
    'form_submission',
]

GROUP_JOINS = ('AND', 'OR')


def validate_schedule_request(data: dict) -> list:
    """Validate a /schedule request body. Returns list of error strings (empty = valid)."""
    if not isinstance(data, dict):
        return ['Request body must be a JSON object']
    errors = []
    if not data.get('appointmentId'):
        errors.append('appointmentId is required')
    if not data.get('triggerType'):
        errors.append('triggerType is required')
    return errors


def _validate_condition_groups(groups) -> list:
    errors = []
    if not isinstance(groups, list):
        return ['condition_groups must be a list']

    for i, group in enumerate(groups):
        if not isinstance(group, dict):
            errors.append(f'condition_groups[{i}] must be an object')
            continue
        if str(group.get('operator', 'AND')).upper() not in GROUP_JOINS:
            errors.append(f'condition_groups[{i}].operator must be AND or OR')
        conditions = group.get('conditions', [])
        if not isinstance(conditions, list):
            errors.append(f'condition_groups[{i}].conditions must be a list')
            continue
        for j, condition in enumerate(conditions):
            if not isinstance(condition, dict) or not condition.get('field'):
                errors.append(f'condition_groups[{i}].conditions[{j}] needs a field')
            elif condition.get('operator') not in GROUP_OPERATORS:
                errors.append(
                    f'condition_groups[{i}].conditions[{j}].operator must be one of '
                    f'{", ".join(GROUP_OPERATORS)}'
                )
    return errors


def validate_email_template(data: dict, partial=False) -> list:
    """
    Validate e-mail template input. With partial=True (updates) only the
    supplied fields are checked.
    """
    errors = []

    for field in ('name', 'subject', 'body', 'trigger_type'):
        if field in data or not partial:
            value = data.get(field)
            if value is not None and not isinstance(value, str):
                errors.append(f'{field} must be a string')
            elif not (value or '').strip():
                errors.append(f'{field} is required')

    name = data.get('name')
    if name and len(str(name)) > 200:
        errors.append('Name must be 200 characters or fewer')

    subject = data.get('subject')
    if subject and len(str(subject)) > 500:
        errors.append('Subject must be 500 characters or fewer')

    trigger_type = data.get('trigger_type')
    if trigger_type and trigger_type not in TRIGGER_TYPES:
        errors.append(f'Invalid trigger_type: {trigger_type}')

    schedule_type = data.get('schedule_type')
    if schedule_type is not None and schedule_type not in SCHEDULE_TYPES:
        errors.append(f'Invalid schedule_type: {schedule_type}')

    unit = data.get('schedule_time_unit')
    if unit is not None and unit not in TIME_UNITS:
        errors.append(f'Invalid schedule_time_unit: {unit}')

    value = data.get('schedule_time_value')
    if value is not None:
        try:
            if int(value) < 0:
                errors.append('schedule_time_value must not be negative')
        except (ValueError, TypeError):
            errors.append('schedule_time_value must be an integer')

    for field in ('send_time_start', 'send_time_end'):
        if data.get(field):
            if not isinstance(data[field], str):
                errors.append(f'{field} must be in HH:MM format')
                continue
            try:
                parse_time_of_day(data[field])
            except ValueError:
                errors.append(f'{field} must be in HH:MM format')

    sender = data.get('sender_email')
    if sender and not isinstance(sender, str):
        errors.append('Invalid sender_email format')
    elif sender:
        try:
            validate_email(sender, check_deliverability=False)
        except EmailNotValidError:
            errors.append('Invalid sender_email format')

    if 'condition_groups' in data and data['condition_groups'] is not None:
        errors.extend(_validate_condition_groups(data['condition_groups']))

    return errors
