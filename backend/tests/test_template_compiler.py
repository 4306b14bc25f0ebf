"""Tests for the template tokenizer, parser and renderer."""
from datetime import datetime, timezone
from zoneinfo import ZoneInfo

import pytest

from clinic_mail.errors import RenderError
from clinic_mail.utils.template_compiler import (
    Conditional, Placeholder, TemplateCompiler, Text, compile_template, parse,
)

BRANCHES = '{{if a.x==1}}A{{else if a.x==2}}B{{else}}C{{endif}}'


class TestPlaceholders:

    def test_placeholder_substitution(self):
        data = {'patient': {'first_name': 'Anna'}}
        assert compile_template('Hello {{patient.first_name}}', data) == 'Hello Anna'

    def test_missing_value_renders_empty(self):
        assert compile_template('Hello {{patient.first_name}}', {}) == 'Hello '

    def test_whitespace_inside_tag(self):
        data = {'patient': {'first_name': 'Anna'}}
        assert compile_template('{{ patient.first_name }}!', data) == 'Anna!'

    def test_booleans_and_numbers(self):
        data = {'appointment': {'has_transfer': True}, 'examination': {'price': 350.0, 'duration': 30}}
        assert compile_template('{{appointment.has_transfer}}', data) == 'Ja'
        assert compile_template('{{examination.price}} / {{examination.duration}}', data) == '350 / 30'

    def test_english_labels(self):
        compiler = TemplateCompiler(language='en')
        assert compiler.compile('{{a.flag}}', {'a': {'flag': False}}) == 'No'

    def test_empty_template(self):
        assert compile_template('', {'a': 1}) == ''
        assert compile_template(None, {'a': 1}) == ''

    def test_plain_text_is_stable(self):
        once = compile_template('No directives here.', {})
        assert compile_template(once, {}) == once

    def test_compiled_output_is_stable(self):
        data = {
            'patient': {'first_name': 'Anna', 'insurance_type': 'private'},
            'examination': {'name': 'MRT Knie', 'price': 350.0},
        }
        template = (
            'Hallo {{patient.first_name}}, {{examination.name}}: '
            '{{if patient.insurance_type == private}}Privat'
            '{{if examination.price > 100}} ({{examination.price}} EUR){{endif}}'
            '{{else}}Kasse{{endif}}.'
        )
        once = compile_template(template, data)
        assert once == 'Hallo Anna, MRT Knie: Privat (350 EUR).'
        assert compile_template(once, data) == once


class TestDates:

    def test_start_time_in_clinic_timezone(self):
        compiler = TemplateCompiler(timezone=ZoneInfo('Europe/Berlin'))
        data = {'appointment': {'start_time': datetime(2024, 5, 10, 8, 0)}}
        assert compiler.compile('{{appointment.start_time}}', data) == '10.05.2024, 10:00 Uhr'

    def test_start_time_from_iso_string(self):
        compiler = TemplateCompiler(timezone=timezone.utc, language='en')
        data = {'appointment': {'start_time': '2024-05-10T10:00:00+00:00'}}
        assert compiler.compile('{{appointment.start_time}}', data) == '10.05.2024, 10:00'

    def test_unparseable_date_raises(self):
        with pytest.raises(RenderError):
            TemplateCompiler().format_datetime('next tuesday')

    def test_unparseable_date_renders_empty(self):
        data = {'appointment': {'start_time': 'next tuesday'}}
        assert compile_template('[{{appointment.start_time}}]', data) == '[]'


class TestConditionals:

    @pytest.mark.parametrize('x, expected', [(1, 'A'), (2, 'B'), (9, 'C')])
    def test_branch_selection(self, x, expected):
        assert compile_template(BRANCHES, {'a': {'x': x}}) == expected

    def test_if_without_else(self):
        template = 'Start{{if patient.gender == "female"}} Frau{{endif}} Ende'
        assert compile_template(template, {'patient': {'gender': 'female'}}) == 'Start Frau Ende'
        assert compile_template(template, {'patient': {'gender': 'male'}}) == 'Start Ende'

    def test_placeholders_inside_branch(self):
        template = '{{if p.vip == true}}Dear {{p.name}}{{else}}Hi{{endif}}'
        assert compile_template(template, {'p': {'vip': True, 'name': 'Anna'}}) == 'Dear Anna'

    def test_nested_conditionals(self):
        template = (
            '{{if a.x == 1}}'
            '{{if a.y == 1}}both{{else}}x only{{endif}}'
            '{{else}}none{{endif}}'
        )
        assert compile_template(template, {'a': {'x': 1, 'y': 1}}) == 'both'
        assert compile_template(template, {'a': {'x': 1, 'y': 0}}) == 'x only'
        assert compile_template(template, {'a': {'x': 0, 'y': 1}}) == 'none'

    def test_multiline_body(self):
        template = 'Line 1\n{{if a.x == 1}}\nYes\n{{endif}}\nEnd'
        assert compile_template(template, {'a': {'x': 1}}) == 'Line 1\n\nYes\n\nEnd'

    def test_unmatched_if_is_kept_verbatim(self):
        template = 'Hi {{if a.x == 1}}there {{a.x}}'
        assert compile_template(template, {'a': {'x': 1}}) == 'Hi {{if a.x == 1}}there 1'

    def test_stray_else_and_endif_are_kept_verbatim(self):
        assert compile_template('a{{else}}b{{endif}}', {}) == 'a{{else}}b{{endif}}'

    def test_malformed_condition_takes_else(self):
        template = '{{if nonsense}}A{{else}}B{{endif}}'
        assert compile_template(template, {}) == 'B'


class TestParse:

    def test_ast_shape(self):
        nodes = parse('Hi {{p.name}}{{if p.x == 1}}A{{else}}B{{endif}}')
        assert nodes[0] == Text('Hi ')
        assert nodes[1] == Placeholder('p.name')
        assert isinstance(nodes[2], Conditional)
        assert nodes[2].branches == [('p.x == 1', [Text('A')])]
        assert nodes[2].otherwise == [Text('B')]
