"""Compile binding pattern literals into anchored matchers.

Two pattern styles are understood. Regular expressions follow .NET
conventions and are translated to Python's ``re`` syntax where they
differ. Cucumber expressions (``a user named {string}``) are used when
a pattern carries ``{type}`` placeholders and no explicit anchors.
Compilation never raises: an unusable pattern yields ``None``.
"""

import logging
import re

from stepbind.core.domain.types import CompiledMatcher, PatternKind
from stepbind.core.parsing.literals import LiteralDialect, unescape_literal

logger = logging.getLogger(__name__)

_CUCUMBER_PARAMETER = re.compile(r"(?<!\\)\{(?:[A-Za-z_][\w-]*)?\}")
_NAMED_GROUP = re.compile(r"(?<!\\)\(\?(?:<(?![=!])([A-Za-z_]\w*)>|'([A-Za-z_]\w*)')")
_NAMED_BACKREFERENCE = re.compile(r"(?<!\\)\\k(?:<([A-Za-z_]\w*)>|'([A-Za-z_]\w*)')")
_LEADING_FLAGS = re.compile(r"^\(\?[aiLmsux]+\)")

_INTEGER = r"(-?\d+)"
_DECIMAL = r"(-?\d*\.?\d+)"
_STRING = r"(?:\"([^\"\\]*(?:\\.[^\"\\]*)*)\"|'([^'\\]*(?:\\.[^'\\]*)*)')"

# Parameter type -> (regex, number of capture groups)
PARAMETER_TYPES: dict[str, tuple[str, int]] = {
    "int": (_INTEGER, 1),
    "long": (_INTEGER, 1),
    "short": (_INTEGER, 1),
    "byte": (_INTEGER, 1),
    "biginteger": (_INTEGER, 1),
    "float": (_DECIMAL, 1),
    "double": (_DECIMAL, 1),
    "decimal": (_DECIMAL, 1),
    "bigdecimal": (_DECIMAL, 1),
    "word": (r"([^\s]+)", 1),
    "string": (_STRING, 2),
    "": (r"(.*)", 1),
}


def _is_escaped(text: str, index: int) -> bool:
    """True when the character at ``index`` follows an odd run of backslashes."""
    backslashes = 0
    position = index - 1
    while position >= 0 and text[position] == "\\":
        backslashes += 1
        position -= 1
    return backslashes % 2 == 1


def is_pattern_anchored(pattern: str) -> bool:
    """Check for an explicit ``^`` or ``$`` anchor."""
    if pattern.startswith("^"):
        return True
    return pattern.endswith("$") and not _is_escaped(pattern, len(pattern) - 1)


def detect_pattern_kind(pattern: str) -> PatternKind:
    """Choose between regex and cucumber-expression interpretation."""
    if not is_pattern_anchored(pattern) and _CUCUMBER_PARAMETER.search(pattern):
        return PatternKind.CUCUMBER_EXPRESSION
    return PatternKind.REGEX


def count_capture_groups(pattern: str) -> int:
    """Count capturing groups in a regex pattern without compiling it."""
    count = 0
    in_class = False
    index = 0
    while index < len(pattern):
        char = pattern[index]
        if char == "\\":
            index += 2
            continue
        if in_class:
            in_class = char != "]"
        elif char == "[":
            in_class = True
        elif char == "(":
            rest = pattern[index + 1 : index + 4]
            if not rest.startswith("?"):
                count += 1
            elif rest.startswith(("?P<", "?'")) or (
                rest.startswith("?<") and rest[2:3] not in ("=", "!")
            ):
                count += 1
        index += 1
    return count


def _strip_anchors(pattern: str) -> str:
    body = pattern[1:] if pattern.startswith("^") else pattern
    if body.endswith("$") and not _is_escaped(body, len(body) - 1):
        body = body[:-1]
    return body


def _escape_inner_anchors(body: str) -> str:
    """Treat ``$`` and mid-pattern ``^`` as literal characters."""
    chars: list[str] = []
    index = 0
    while index < len(body):
        char = body[index]
        if char == "\\" and index + 1 < len(body):
            chars.append(body[index : index + 2])
            index += 2
            continue
        if char == "$":
            chars.append(r"\$")
        elif char == "^" and index > 0 and body[index - 1] != "[":
            chars.append(r"\^")
        else:
            chars.append(char)
        index += 1
    return "".join(chars)


def _translate_regex(pattern: str) -> str:
    """Rewrite a .NET-flavoured regex body into Python syntax."""
    body = _escape_inner_anchors(_strip_anchors(pattern))
    body = _NAMED_GROUP.sub(lambda m: f"(?P<{m.group(1) or m.group(2)}>", body)
    return _NAMED_BACKREFERENCE.sub(
        lambda m: f"(?P={m.group(1) or m.group(2)})", body
    )


class _ExpressionTranslator:
    """Single-pass translator from a cucumber expression to a regex body.

    The word being built is kept as a list of regex fragments, one per
    alternative, so optional text can appear inside an alternation.
    """

    def __init__(self, expression: str) -> None:
        self._expression = expression
        self._parts: list[str] = []
        self._alternatives: list[str] = [""]
        self._next_group = 1
        self.parameter_groups: list[tuple[int, ...]] = []

    def translate(self) -> str:
        text = self._expression
        index = 0
        while index < len(text):
            char = text[index]
            if char == "\\":
                if index + 1 >= len(text):
                    raise ValueError("Dangling escape in cucumber expression")
                self._alternatives[-1] += re.escape(text[index + 1])
                index += 2
                continue
            if char == "{":
                index = self._parameter(index)
            elif char == "(":
                index = self._optional(index)
            elif char == "/":
                self._alternatives.append("")
                index += 1
            elif char.isspace():
                self._flush_word()
                self._parts.append(re.escape(char))
                index += 1
            else:
                self._alternatives[-1] += re.escape(char)
                index += 1
        self._flush_word()
        return "".join(self._parts)

    def _flush_word(self) -> None:
        alternatives = self._alternatives
        self._alternatives = [""]
        if len(alternatives) == 1:
            self._parts.append(alternatives[0])
            return
        if not all(alternatives):
            raise ValueError("Empty alternative in cucumber expression")
        self._parts.append(f"(?:{'|'.join(alternatives)})")

    def _parameter(self, start: int) -> int:
        end = self._expression.find("}", start)
        if end < 0:
            raise ValueError("Unterminated parameter in cucumber expression")
        name = self._expression[start + 1 : end]
        if name not in PARAMETER_TYPES:
            msg = f"Unknown parameter type {{{name}}}"
            raise ValueError(msg)
        self._flush_word()
        regex, groups = PARAMETER_TYPES[name]
        self._parts.append(regex)
        indexes = tuple(range(self._next_group, self._next_group + groups))
        self.parameter_groups.append(indexes)
        self._next_group += groups
        return end + 1

    def _optional(self, start: int) -> int:
        chars: list[str] = []
        index = start + 1
        text = self._expression
        while index < len(text) and text[index] != ")":
            if text[index] == "\\" and index + 1 < len(text):
                chars.append(text[index + 1])
                index += 2
                continue
            if text[index] in "{(":
                raise ValueError("Optional text cannot contain parameters")
            chars.append(text[index])
            index += 1
        if index >= len(text):
            raise ValueError("Unterminated optional text in cucumber expression")
        self._alternatives[-1] += f"(?:{re.escape(''.join(chars))})?"
        return index + 1


def _hoist_flags(body: str) -> tuple[str, str]:
    """Split a leading inline flag group off so it stays at the pattern start."""
    found = _LEADING_FLAGS.match(body)
    if found is None:
        return "", body
    return found.group(0), body[found.end() :]


def compile_unescaped(
    pattern: str,
    case_insensitive: bool = False,
    kind: PatternKind | None = None,
) -> CompiledMatcher | None:
    """Compile already-unescaped pattern text into an anchored matcher."""
    kind = kind or detect_pattern_kind(pattern)
    try:
        if kind is PatternKind.CUCUMBER_EXPRESSION:
            translator = _ExpressionTranslator(pattern)
            body = translator.translate()
            parameter_groups = tuple(translator.parameter_groups)
        else:
            body = _translate_regex(pattern)
            parameter_groups = ()
        flags_prefix, body = _hoist_flags(body)
        regex = re.compile(
            f"{flags_prefix}^(?:{body})$",
            re.IGNORECASE if case_insensitive else 0,
        )
    except (re.error, ValueError, OverflowError, RecursionError) as e:
        logger.debug("Pattern %r not compiled: %s", pattern, e)
        return None

    if kind is PatternKind.REGEX:
        parameter_groups = tuple((index,) for index in range(1, regex.groups + 1))

    return CompiledMatcher(
        regex=regex,
        source=pattern,
        kind=kind,
        case_insensitive=case_insensitive,
        parameter_groups=parameter_groups,
    )


def compile_pattern(
    raw_literal: str,
    dialect: LiteralDialect | None = None,
    case_insensitive: bool = False,
) -> CompiledMatcher | None:
    """Unescape a source literal and compile it.

    Args:
        raw_literal: The quoted literal as written in source.
        dialect: Literal quoting rules; detected from the prefix when omitted.
        case_insensitive: Compile with ``re.IGNORECASE``.

    Returns:
        The compiled matcher, or None when the literal or the pattern is
        malformed.
    """
    try:
        pattern = unescape_literal(raw_literal, dialect)
    except ValueError as e:
        logger.debug("Literal %r not unescaped: %s", raw_literal, e)
        return None
    return compile_unescaped(pattern, case_insensitive)
