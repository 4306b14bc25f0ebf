"""Tests for send-time calculation."""
from datetime import datetime, timedelta, timezone
from types import SimpleNamespace
from zoneinfo import ZoneInfo

import pytest

from clinic_mail.utils.schedule import (
    compute_send_time, offset_for, parse_time_of_day, shift_to_workday,
)

NOW = datetime(2024, 5, 1, 12, 0)


def template(**fields):
    values = {
        'schedule_type': 'before_appointment',
        'schedule_time_value': 24,
        'schedule_time_unit': 'hours',
        'send_only_workdays': False,
        'send_time_start': None,
    }
    values.update(fields)
    return SimpleNamespace(**values)


class TestOffsets:

    def test_before_appointment_hours(self):
        start = datetime(2024, 5, 10, 10, 0)
        assert compute_send_time(start, template(), NOW) == datetime(2024, 5, 9, 10, 0)

    def test_aware_input_keeps_timezone(self):
        start = datetime(2024, 5, 10, 10, 0, tzinfo=timezone.utc)
        result = compute_send_time(start, template(), NOW, tz=timezone.utc)
        assert result == datetime(2024, 5, 9, 10, 0, tzinfo=timezone.utc)
        assert result.tzinfo is not None

    def test_after_appointment_days(self):
        start = datetime(2024, 5, 10, 10, 0)
        tpl = template(schedule_type='after_appointment', schedule_time_value=3,
                       schedule_time_unit='days')
        assert compute_send_time(start, tpl, NOW) == datetime(2024, 5, 13, 10, 0)

    def test_weeks(self):
        start = datetime(2024, 5, 15, 9, 0)
        tpl = template(schedule_time_value=1, schedule_time_unit='weeks')
        assert compute_send_time(start, tpl, NOW) == datetime(2024, 5, 8, 9, 0)

    def test_months_clamp_to_month_end(self):
        start = datetime(2024, 3, 31, 9, 0)
        tpl = template(schedule_time_value=1, schedule_time_unit='months')
        assert compute_send_time(start, tpl, NOW) == datetime(2024, 2, 29, 9, 0)

    def test_missing_value_and_unit_default_to_24_hours(self):
        start = datetime(2024, 5, 10, 10, 0)
        tpl = template(schedule_time_value=None, schedule_time_unit=None)
        assert compute_send_time(start, tpl, NOW) == datetime(2024, 5, 9, 10, 0)

    def test_zero_offset_is_kept(self):
        start = datetime(2024, 5, 10, 10, 0)
        assert compute_send_time(start, template(schedule_time_value=0), NOW) == start

    def test_hours_are_elapsed_time_across_dst(self):
        # Berlin switches to summer time on 2024-03-31
        start = datetime(2024, 3, 31, 10, 0)
        result = compute_send_time(start, template(), NOW, tz=ZoneInfo('Europe/Berlin'))
        assert result == datetime(2024, 3, 30, 10, 0)
        assert start - result == timedelta(hours=24)

    def test_days_keep_clinic_clock_across_dst(self):
        # 12:00 CEST on the appointment day, 12:00 CET the day before
        start = datetime(2024, 3, 31, 10, 0)
        tpl = template(schedule_time_value=1, schedule_time_unit='days')
        result = compute_send_time(start, tpl, NOW, tz=ZoneInfo('Europe/Berlin'))
        assert result == datetime(2024, 3, 30, 11, 0)

    def test_immediate_uses_now(self):
        tpl = template(schedule_type='immediate')
        assert compute_send_time(datetime(2024, 6, 1, 9, 0), tpl, NOW) == NOW

    def test_unknown_unit(self):
        with pytest.raises(ValueError):
            offset_for(2, 'fortnights')

    def test_negative_value(self):
        with pytest.raises(ValueError):
            offset_for(-1, 'days')

    def test_unknown_schedule_type(self):
        with pytest.raises(ValueError):
            compute_send_time(datetime(2024, 5, 10), template(schedule_type='sometime'), NOW)

    def test_offset_schedule_without_start_time(self):
        with pytest.raises(ValueError):
            compute_send_time(None, template(), NOW)


class TestWorkdays:

    def test_sunday_moves_to_monday(self):
        # 2024-05-12 is a Sunday
        assert shift_to_workday(datetime(2024, 5, 12, 10, 0)) == datetime(2024, 5, 13, 10, 0)

    def test_saturday_moves_to_monday(self):
        # 2024-05-11 is a Saturday
        assert shift_to_workday(datetime(2024, 5, 11, 10, 0)) == datetime(2024, 5, 13, 10, 0)

    def test_weekday_unchanged(self):
        assert shift_to_workday(datetime(2024, 5, 10, 10, 0)) == datetime(2024, 5, 10, 10, 0)

    def test_workday_flag_applies_shift(self):
        # Monday appointment, reminder two days before lands on Saturday
        start = datetime(2024, 5, 13, 10, 0)
        tpl = template(schedule_time_value=2, schedule_time_unit='days', send_only_workdays=True)
        assert compute_send_time(start, tpl, NOW) == datetime(2024, 5, 13, 10, 0)

    def test_weekday_checked_in_clinic_timezone(self):
        # Saturday 23:30 UTC is already Sunday in Berlin
        start = datetime(2024, 5, 12, 23, 30)
        tpl = template(send_only_workdays=True)
        result = compute_send_time(start, tpl, NOW, tz=ZoneInfo('Europe/Berlin'))
        assert result == datetime(2024, 5, 12, 23, 30)


class TestSendTimeStart:

    def test_send_time_start_overrides_clock_time(self):
        start = datetime(2024, 5, 10, 15, 45, 12)
        tpl = template(send_time_start='08:30')
        assert compute_send_time(start, tpl, NOW) == datetime(2024, 5, 9, 8, 30)

    def test_send_time_start_in_clinic_timezone(self):
        start = datetime(2024, 5, 10, 10, 0)
        tpl = template(send_time_start='08:30')
        result = compute_send_time(start, tpl, NOW, tz=ZoneInfo('Europe/Berlin'))
        # 08:30 CEST is 06:30 UTC
        assert result == datetime(2024, 5, 9, 6, 30)

    def test_workday_shift_then_time_override(self):
        start = datetime(2024, 5, 13, 18, 0)
        tpl = template(schedule_time_value=2, schedule_time_unit='days',
                       send_only_workdays=True, send_time_start='08:30')
        assert compute_send_time(start, tpl, NOW) == datetime(2024, 5, 13, 8, 30)

    @pytest.mark.parametrize('value', ['8:30', '08:30', ' 23:59 '])
    def test_parse_time_of_day(self, value):
        hour, minute = parse_time_of_day(value)
        assert 0 <= hour <= 23 and 0 <= minute <= 59

    @pytest.mark.parametrize('value', ['24:00', '0830', 'morning', ''])
    def test_parse_time_of_day_rejects(self, value):
        with pytest.raises(ValueError):
            parse_time_of_day(value)
