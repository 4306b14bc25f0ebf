"""
Scheduling and dispatch endpoints.

POST /schedule is called when an appointment changes; /process is hit by a
cron job (GET or POST, no body). Both answer 200 with a JSON result whose
`success` flag carries the outcome.
"""
import logging
from flask import Blueprint, jsonify, request

from clinic_mail.services import get_dispatch_worker, get_trigger_processor
from clinic_mail.utils.validators import validate_schedule_request

logger = logging.getLogger(__name__)

emails_bp = Blueprint('emails', __name__)


@emails_bp.route('/schedule', methods=['POST'])
def schedule():
    data = request.get_json(silent=True)
    if data is None:
        data = {}

    errors = validate_schedule_request(data)
    if errors:
        return jsonify({'success': False, 'error': '; '.join(errors)}), 400

    result = get_trigger_processor().schedule_emails_for_appointment(
        str(data['appointmentId']), data['triggerType']
    )
    return jsonify(result), 200


@emails_bp.route('/process', methods=['GET', 'POST'])
def process():
    result = get_dispatch_worker().process_due()
    return jsonify(result), 200
