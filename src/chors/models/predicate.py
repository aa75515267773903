"""Filter expression language.

A view stores its predicate as text so it can be persisted and edited in
place. The grammar (``not`` binds tighter than ``and``, which binds tighter
than ``or``; keywords are case-insensitive)::

    expression := term ("or" term)*
    term       := factor ("and" factor)*
    factor     := "not" factor | "(" expression ")" | operand
    operand    := "[x]" | "[ ]" | "[-]" | "#tag" | "@context" | '"text"'
                | status:VALUE | priority(OP)N | due(OP)DATE | scheduled(OP)DATE

``due`` and ``scheduled`` also accept ranges with ``:``: ``none``, ``any``,
``DATE``, ``DATE..DATE``, ``..DATE`` and ``DATE..``.

Examples:
    ``[ ] and #work``
    ``(@home or @phone) and not [-]``
    ``due:..today and priority<=2``
"""

from __future__ import annotations

import operator
import re
from dataclasses import dataclass
from datetime import date, timedelta
from typing import Callable

from chors.models.exceptions import ValidationFailedError
from chors.models.task import TASK_STATUSES, Task
from chors.utils.dates import parse_date_input

_TOKEN_RE = re.compile(
    r"""
      (?P<ws>\s+)
    | (?P<lparen>\()
    | (?P<rparen>\))
    | (?P<done>\[[xX]\])
    | (?P<open>\[\s\])
    | (?P<cancelled>\[-\])
    | (?P<text>"[^"]*"?)
    | (?P<tag>\#[\w.\-]+)
    | (?P<context>@[\w.\-]+)
    | (?P<field>(?:status|priority|due|scheduled)(?:<=|>=|:|=|<|>)[^\s()]*)
    | (?P<word>[^\s()"]+)
    """,
    re.VERBOSE | re.IGNORECASE,
)

_FIELD_RE = re.compile(
    r"^(status|priority|due|scheduled)(<=|>=|:|=|<|>)(.*)$", re.IGNORECASE
)

_COMPARATORS: dict[str, Callable[[int, int], bool]] = {
    ":": operator.eq,
    "=": operator.eq,
    "<": operator.lt,
    "<=": operator.le,
    ">": operator.gt,
    ">=": operator.ge,
}


# ---------------------------------------------------------------------------
# Predicate nodes
# ---------------------------------------------------------------------------


class Predicate:
    """Base class for compiled filter conditions."""

    def evaluate(self, task: Task) -> bool:
        raise NotImplementedError

    def __call__(self, task: Task) -> bool:
        return self.evaluate(task)


@dataclass(frozen=True)
class AlwaysTrue(Predicate):
    def evaluate(self, task: Task) -> bool:
        return True


@dataclass(frozen=True)
class StatusIs(Predicate):
    status: str

    def evaluate(self, task: Task) -> bool:
        return task.status == self.status


@dataclass(frozen=True)
class HasTag(Predicate):
    tag: str

    def evaluate(self, task: Task) -> bool:
        return self.tag in task.tags


@dataclass(frozen=True)
class HasContext(Predicate):
    context: str

    def evaluate(self, task: Task) -> bool:
        return self.context in task.contexts


@dataclass(frozen=True)
class TextContains(Predicate):
    """Case-insensitive substring match on title and description."""

    text: str

    def evaluate(self, task: Task) -> bool:
        needle = self.text.lower()
        if needle in task.title.lower():
            return True
        return bool(task.description) and needle in task.description.lower()


@dataclass(frozen=True)
class PriorityCompare(Predicate):
    op: str
    value: int

    def evaluate(self, task: Task) -> bool:
        return _COMPARATORS[self.op](task.priority, self.value)


@dataclass(frozen=True)
class DateInRange(Predicate):
    """Inclusive date window on ``due`` or ``scheduled``.

    ``presence`` short-circuits the window: "none" matches tasks without the
    date, "any" matches every task that has one.
    """

    field: str
    start: date | None = None
    end: date | None = None
    presence: str | None = None

    def evaluate(self, task: Task) -> bool:
        value = getattr(task, self.field)
        if self.presence == "none":
            return value is None
        if value is None:
            return False
        if self.presence == "any":
            return True
        day = value.date()
        if self.start is not None and day < self.start:
            return False
        return self.end is None or day <= self.end


@dataclass(frozen=True)
class Not(Predicate):
    child: Predicate

    def evaluate(self, task: Task) -> bool:
        return not self.child.evaluate(task)


@dataclass(frozen=True)
class And(Predicate):
    left: Predicate
    right: Predicate

    def evaluate(self, task: Task) -> bool:
        return self.left.evaluate(task) and self.right.evaluate(task)


@dataclass(frozen=True)
class Or(Predicate):
    left: Predicate
    right: Predicate

    def evaluate(self, task: Task) -> bool:
        return self.left.evaluate(task) or self.right.evaluate(task)


# ---------------------------------------------------------------------------
# Parsing
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class _Token:
    kind: str
    text: str
    pos: int


def _tokenize(text: str) -> list[_Token]:
    tokens: list[_Token] = []
    for match in _TOKEN_RE.finditer(text):
        kind = match.lastgroup
        if kind == "ws":
            continue
        value = match.group()
        if kind == "word" and value.lower() in ("and", "or", "not"):
            kind = value.lower()
        tokens.append(_Token(kind, value, match.start() + 1))
    return tokens


class _Parser:
    def __init__(self, text: str, today: date):
        self.text = text
        self.today = today
        self.tokens = _tokenize(text)
        self.pos = 0

    # Token helpers

    def _peek(self) -> _Token | None:
        if self.pos < len(self.tokens):
            return self.tokens[self.pos]
        return None

    def _advance(self) -> _Token:
        token = self._peek()
        if token is None:
            raise ValidationFailedError("Unexpected end of filter")
        self.pos += 1
        return token

    def _error(self, token: _Token, reason: str | None = None) -> ValidationFailedError:
        message = reason or f"Unexpected {token.text!r}"
        return ValidationFailedError(f"{message} at position {token.pos}")

    # Grammar

    def parse(self) -> Predicate:
        if not self.tokens:
            return AlwaysTrue()
        result = self._expression()
        leftover = self._peek()
        if leftover is not None:
            raise self._error(leftover)
        return result

    def _expression(self) -> Predicate:
        result = self._term()
        while (token := self._peek()) is not None and token.kind == "or":
            self._advance()
            result = Or(result, self._term())
        return result

    def _term(self) -> Predicate:
        result = self._factor()
        while (token := self._peek()) is not None and token.kind == "and":
            self._advance()
            result = And(result, self._factor())
        return result

    def _factor(self) -> Predicate:
        token = self._advance()
        if token.kind == "not":
            return Not(self._factor())
        if token.kind == "lparen":
            inner = self._expression()
            closing = self._peek()
            if closing is None:
                raise ValidationFailedError(
                    f"Unclosed parenthesis at position {token.pos}"
                )
            if closing.kind != "rparen":
                raise self._error(closing)
            self._advance()
            return inner
        return self._operand(token)

    def _operand(self, token: _Token) -> Predicate:
        match token.kind:
            case "done":
                return StatusIs("done")
            case "open":
                return StatusIs("open")
            case "cancelled":
                return StatusIs("cancelled")
            case "tag":
                return HasTag(token.text[1:])
            case "context":
                return HasContext(token.text[1:])
            case "text":
                if len(token.text) < 2 or not token.text.endswith('"'):
                    raise self._error(token, "Unterminated quote")
                if token.text == '""':
                    raise self._error(token, "Empty text match")
                return TextContains(token.text[1:-1])
            case "field":
                return self._field(token)
        raise self._error(token)

    def _field(self, token: _Token) -> Predicate:
        name, op, value = _FIELD_RE.match(token.text).groups()
        name = name.lower()
        if not value:
            raise self._error(token, f"Missing value for {name!r}")

        if name == "status":
            status = value.lower()
            if op not in (":", "=") or status not in TASK_STATUSES:
                raise self._error(token, f"Invalid status filter {token.text!r}")
            return StatusIs(status)

        if name == "priority":
            if not value.isdigit():
                raise self._error(token, f"Invalid priority {value!r}")
            return PriorityCompare(op, int(value))

        return self._date_filter(token, name, op, value)

    def _date_filter(self, token: _Token, name: str, op: str, value: str) -> Predicate:
        lowered = value.lower()
        if op in (":", "=") and lowered in ("none", "any"):
            return DateInRange(name, presence=lowered)

        if op in (":", "=") and ".." in value:
            start_text, _, end_text = value.partition("..")
            start = self._date(token, start_text) if start_text else None
            end = self._date(token, end_text) if end_text else None
            if start is None and end is None:
                raise self._error(token, "Empty date range")
            return DateInRange(name, start=start, end=end)

        day = self._date(token, value)
        match op:
            case ":" | "=":
                return DateInRange(name, start=day, end=day)
            case "<":
                return DateInRange(name, end=day - timedelta(days=1))
            case "<=":
                return DateInRange(name, end=day)
            case ">":
                return DateInRange(name, start=day + timedelta(days=1))
            case _:
                return DateInRange(name, start=day)

    def _date(self, token: _Token, text: str) -> date:
        try:
            return parse_date_input(text, self.today)
        except ValueError:
            raise self._error(token, f"Invalid date {text!r}") from None


def compile_expression(text: str, today: date | None = None) -> Predicate:
    """Compile a filter expression.

    Args:
        text: The expression; blank text matches every task
        today: Reference day for relative dates (defaults to the current day)

    Returns:
        A callable Predicate

    Raises:
        ValidationFailedError: If the expression does not parse
    """
    return _Parser(text, today or date.today()).parse()
