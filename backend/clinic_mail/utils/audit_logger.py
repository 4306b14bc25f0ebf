"""
HIPAA-compliant audit logging.
Records scheduling, delivery and template administration events with
timestamp, actor, action and resource.
"""
import os
import logging
import structlog
from datetime import datetime, timezone
from flask import current_app, has_app_context, has_request_context, request


def setup_audit_logging(app):
    """Configure structured audit logging for HIPAA compliance."""

    log_file = os.getenv('AUDIT_LOG_FILE', 'logs/audit.log')
    log_dir = os.path.dirname(log_file)
    if log_dir:
        os.makedirs(log_dir, exist_ok=True)

    # Configure structlog for JSON output
    structlog.configure(
        processors=[
            structlog.stdlib.filter_by_level,
            structlog.stdlib.add_logger_name,
            structlog.stdlib.add_log_level,
            structlog.stdlib.PositionalArgumentsFormatter(),
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            structlog.processors.UnicodeDecoder(),
            structlog.processors.JSONRenderer()
        ],
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    audit_logger = logging.getLogger('audit')
    audit_logger.setLevel(logging.INFO)
    if not any(getattr(h, 'baseFilename', None) == os.path.abspath(log_file)
               for h in audit_logger.handlers):
        file_handler = logging.FileHandler(log_file)
        file_handler.setLevel(logging.INFO)
        file_handler.setFormatter(logging.Formatter('%(message)s'))
        audit_logger.addHandler(file_handler)

    app.config['AUDIT_LOGGER'] = structlog.get_logger('audit')


def get_audit_logger():
    """Get the audit logger instance."""
    if has_app_context():
        return current_app.config.get('AUDIT_LOGGER', structlog.get_logger('audit'))
    return structlog.get_logger('audit')


def audit_log(action: str, resource_type: str, resource_id: str = None,
              details: dict = None, actor: str = None):
    """
    Log an audit event.

    Args:
        action: The action performed (SCHEDULE, SEND, SEND_FAILED, CREATE, ...)
        resource_type: Type of resource (scheduled_email, email_template, ...)
        resource_id: ID of the specific resource (optional)
        details: Additional details about the action (optional)
        actor: Who performed the action; 'api' inside a request, 'system' otherwise
    """
    logger = get_audit_logger()

    if has_request_context():
        client_ip = request.remote_addr or 'unknown'
        user_agent = request.headers.get('User-Agent', 'unknown')
        actor = actor or 'api'
    else:
        client_ip = 'n/a'
        user_agent = 'n/a'
        actor = actor or 'system'

    log_entry = {
        'timestamp': datetime.now(timezone.utc).isoformat(),
        'action': action,
        'resource_type': resource_type,
        'resource_id': resource_id,
        'actor': actor,
        'client_ip': client_ip,
        'user_agent': user_agent,
        'details': details or {}
    }

    logger.info("audit_event", **log_entry)
