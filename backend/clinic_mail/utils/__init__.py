from .encryption import encrypt_phi, decrypt_phi
from .audit_logger import audit_log
from .fields import resolve
from .conditions import evaluate_groups, evaluate_inline
from .template_compiler import TemplateCompiler, compile_template
from .schedule import compute_send_time
from .validators import validate_email_template, validate_schedule_request
