from .patient import Patient
from .examination import Examination, Location, Device
from .appointment import Appointment
from .email_template import EmailTemplate
from .scheduled_email import ScheduledEmail
from .email_log import EmailLog
from .appointment_comment import AppointmentComment
