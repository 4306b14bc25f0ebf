"""
Send-time calculation for template based e-mails.
"""
import re
from datetime import datetime, timezone as dt_timezone

from dateutil.relativedelta import relativedelta

SCHEDULE_TYPES = ('immediate', 'before_appointment', 'after_appointment')
TIME_UNITS = ('hours', 'days', 'weeks', 'months')

DEFAULT_TIME_VALUE = 24
DEFAULT_TIME_UNIT = 'hours'

_TIME_OF_DAY = re.compile(r'^([01]?\d|2[0-3]):([0-5]\d)$')

SATURDAY, SUNDAY = 5, 6


def utcnow():
    """Current instant as naive UTC, the convention of stored timestamps."""
    return datetime.now(dt_timezone.utc).replace(tzinfo=None)


def parse_time_of_day(value: str):
    """Parse 'HH:MM' into an (hour, minute) tuple."""
    match = _TIME_OF_DAY.match((value or '').strip())
    if not match:
        raise ValueError(f'Invalid time of day: {value!r} (expected HH:MM)')
    return int(match.group(1)), int(match.group(2))


def offset_for(value, unit) -> relativedelta:
    """Offset for a schedule value/unit pair; months are calendar months."""
    value = DEFAULT_TIME_VALUE if value is None else int(value)
    unit = unit or DEFAULT_TIME_UNIT
    if value < 0:
        raise ValueError('schedule_time_value must not be negative')

    if unit == 'hours':
        return relativedelta(hours=value)
    if unit == 'days':
        return relativedelta(days=value)
    if unit == 'weeks':
        return relativedelta(weeks=value)
    if unit == 'months':
        return relativedelta(months=value)
    raise ValueError(f'Unknown schedule_time_unit: {unit!r}')


def _to_local(value, tz):
    if tz is None:
        return value
    if value.tzinfo is None:
        value = value.replace(tzinfo=dt_timezone.utc)
    return value.astimezone(tz)


def _from_local(value, tz, naive):
    if tz is None:
        return value
    value = value.astimezone(dt_timezone.utc)
    return value.replace(tzinfo=None) if naive else value


def _add_elapsed(value, offset):
    """Add `offset` as elapsed time, ignoring DST changes of value's zone."""
    if value.tzinfo is None:
        return value + offset
    return (value.astimezone(dt_timezone.utc) + offset).astimezone(value.tzinfo)


def shift_to_workday(value):
    """Move a Saturday or Sunday forward to the following Monday."""
    weekday = value.weekday()
    if weekday == SUNDAY:
        return value + relativedelta(days=1)
    if weekday == SATURDAY:
        return value + relativedelta(days=2)
    return value


def compute_send_time(start_time, template, now, tz=None):
    """
    Compute when a message built from `template` should go out.

    `template` needs schedule_type, schedule_time_value, schedule_time_unit,
    send_only_workdays and send_time_start attributes. `tz` is the clinic
    time zone used for the weekday check and `send_time_start`; naive inputs
    are taken as UTC and the result keeps the input's convention.
    Hour offsets are elapsed time; day, week and month offsets keep the
    clinic's wall-clock time across DST changes.
    send_time_end is not consulted.
    """
    schedule_type = getattr(template, 'schedule_type', None) or 'immediate'

    if schedule_type == 'immediate':
        base = now
        send_at = _to_local(now, tz)
    elif schedule_type in ('before_appointment', 'after_appointment'):
        if start_time is None:
            raise ValueError('Appointment has no start_time')
        base = start_time
        unit = getattr(template, 'schedule_time_unit', None) or DEFAULT_TIME_UNIT
        offset = offset_for(getattr(template, 'schedule_time_value', None), unit)
        if schedule_type == 'before_appointment':
            offset = -offset
        local_start = _to_local(start_time, tz)
        if unit == 'hours':
            send_at = _add_elapsed(local_start, offset)
        else:
            send_at = local_start + offset
    else:
        raise ValueError(f'Unknown schedule_type: {schedule_type!r}')

    if getattr(template, 'send_only_workdays', False):
        send_at = shift_to_workday(send_at)

    send_time_start = getattr(template, 'send_time_start', None)
    if send_time_start:
        hour, minute = parse_time_of_day(send_time_start)
        send_at = send_at.replace(hour=hour, minute=minute, second=0, microsecond=0)

    return _from_local(send_at, tz, naive=base.tzinfo is None)
