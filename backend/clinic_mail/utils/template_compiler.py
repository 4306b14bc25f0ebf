"""
Template rendering for e-mail subjects and bodies.

Supported syntax::

    Hello {{patient.first_name}},
    {{if examination.with_contrast_medium == true}}Please come fasting.
    {{else if examination.type == "ct"}}Please bring your previous images.
    {{else}}No preparation needed.{{endif}}

Templates are tokenized and parsed into Text, Placeholder and Conditional
nodes, so conditionals may nest. Rendering never raises: unmatched
``{{if}}``/``{{else}}``/``{{endif}}`` tags are kept as literal text and a
placeholder that cannot be formatted renders as an empty string.
"""
import logging
import re
from dataclasses import dataclass, field
from datetime import datetime, timezone as dt_timezone
from typing import List, Optional, Tuple, Union

from dateutil import parser as dateutil_parser

from clinic_mail.errors import RenderError
from clinic_mail.utils.conditions import evaluate_inline
from clinic_mail.utils.fields import resolve

logger = logging.getLogger(__name__)

_TAG = re.compile(r'\{\{([^{}]+)\}\}')
_IF = re.compile(r'^if\s+(.+)$', re.DOTALL)
_ELSE_IF = re.compile(r'^else\s+if\s+(.+)$', re.DOTALL)

# Paths rendered as a human readable date and time
DATE_FIELDS = frozenset({'appointment.start_time'})

LANGUAGES = {
    'de': {'yes': 'Ja', 'no': 'Nein', 'datetime': '%d.%m.%Y, %H:%M Uhr'},
    'en': {'yes': 'Yes', 'no': 'No', 'datetime': '%d.%m.%Y, %H:%M'},
}

TEXT, PLACEHOLDER, IF, ELSE_IF, ELSE, ENDIF = (
    'text', 'placeholder', 'if', 'else_if', 'else', 'endif'
)


@dataclass
class _Token:
    kind: str
    value: str
    raw: str


@dataclass
class Text:
    value: str


@dataclass
class Placeholder:
    path: str


@dataclass
class Conditional:
    branches: List[Tuple[str, list]] = field(default_factory=list)
    otherwise: Optional[list] = None


Node = Union[Text, Placeholder, Conditional]


def tokenize(template: str) -> List[_Token]:
    """Split a template into text runs and ``{{...}}`` tags."""
    tokens = []
    position = 0
    for match in _TAG.finditer(template):
        if match.start() > position:
            text = template[position:match.start()]
            tokens.append(_Token(TEXT, text, text))
        tokens.append(_classify(match.group(1), match.group(0)))
        position = match.end()
    if position < len(template):
        text = template[position:]
        tokens.append(_Token(TEXT, text, text))
    return tokens


def _classify(content: str, raw: str) -> _Token:
    content = content.strip()
    if content == 'else':
        return _Token(ELSE, '', raw)
    if content == 'endif':
        return _Token(ENDIF, '', raw)
    match = _ELSE_IF.match(content)
    if match:
        return _Token(ELSE_IF, match.group(1).strip(), raw)
    match = _IF.match(content)
    if match:
        return _Token(IF, match.group(1).strip(), raw)
    return _Token(PLACEHOLDER, content, raw)


class _Parser:
    """Recursive-descent parser over the token list."""

    def __init__(self, tokens):
        self.tokens = tokens
        self.pos = 0
        # Positions of `if` tags already known to have no closing `endif`
        self._unmatched = set()

    def parse(self) -> List[Node]:
        nodes, _ = self._sequence(stops=())
        return nodes

    def _sequence(self, stops):
        nodes = []
        while self.pos < len(self.tokens):
            token = self.tokens[self.pos]
            if token.kind in stops:
                return nodes, token.kind
            self.pos += 1
            if token.kind == TEXT:
                nodes.append(Text(token.value))
            elif token.kind == PLACEHOLDER:
                nodes.append(Placeholder(token.value))
            elif token.kind == IF:
                nodes.append(self._conditional(token))
            else:
                nodes.append(Text(token.raw))
        return nodes, None

    def _conditional(self, opening: _Token) -> Node:
        start = self.pos
        if start in self._unmatched:
            return Text(opening.raw)

        node = Conditional()
        condition = opening.value
        while True:
            body, stop = self._sequence(stops=(ELSE_IF, ELSE, ENDIF))
            if stop is None:
                break
            token = self.tokens[self.pos]
            self.pos += 1
            node.branches.append((condition, body))

            if stop == ELSE_IF:
                condition = token.value
                continue
            if stop == ENDIF:
                return node

            node.otherwise, stop = self._sequence(stops=(ENDIF,))
            if stop is None:
                break
            self.pos += 1
            return node

        self._unmatched.add(start)
        self.pos = start
        return Text(opening.raw)


def parse(template: str) -> List[Node]:
    return _Parser(tokenize(template)).parse()


class TemplateCompiler:
    """Renders subject and body templates against an appointment context."""

    def __init__(self, timezone=None, language='de', date_fields=DATE_FIELDS):
        self.timezone = timezone
        self.labels = LANGUAGES.get(language, LANGUAGES['de'])
        self.date_fields = date_fields

    def compile(self, template: str, data) -> str:
        if not template:
            return ''
        return ''.join(self._render(parse(template), data))

    def _render(self, nodes, data):
        for node in nodes:
            if isinstance(node, Text):
                yield node.value
            elif isinstance(node, Placeholder):
                yield self._substitute(node.path, data)
            else:
                yield from self._render(self._select_branch(node, data), data)

    def _select_branch(self, node: Conditional, data) -> list:
        for condition, body in node.branches:
            if evaluate_inline(condition, data):
                return body
        return node.otherwise or []

    def _substitute(self, path: str, data) -> str:
        try:
            return self.format_value(path, resolve(data, path))
        except Exception:
            logger.warning("Could not render placeholder {{%s}}", path, exc_info=True)
            return ''

    def format_value(self, path: str, value) -> str:
        if value is None:
            return ''
        if path in self.date_fields:
            return self.format_datetime(value)
        if isinstance(value, bool):
            return self.labels['yes'] if value else self.labels['no']
        if isinstance(value, float) and value.is_integer():
            return str(int(value))
        return str(value)

    def format_datetime(self, value) -> str:
        if isinstance(value, str):
            try:
                value = dateutil_parser.isoparse(value)
            except ValueError as e:
                raise RenderError(f'Not a date: {value!r}') from e
        if not isinstance(value, datetime):
            raise RenderError(f'Not a date: {value!r}')

        if self.timezone is not None:
            if value.tzinfo is None:
                value = value.replace(tzinfo=dt_timezone.utc)
            value = value.astimezone(self.timezone)
        return value.strftime(self.labels['datetime'])


_default_compiler = TemplateCompiler()


def compile_template(template: str, data) -> str:
    """Render `template` with the default (UTC, German) compiler."""
    return _default_compiler.compile(template, data)
