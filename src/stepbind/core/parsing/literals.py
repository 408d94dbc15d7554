"""String literal dialects used to declare binding patterns."""

from enum import Enum

_STANDARD_ESCAPES = {
    '"': '"',
    "\\": "\\",
    "n": "\n",
    "r": "\r",
    "t": "\t",
}

_STANDARD_ENCODE = {
    "\\": "\\\\",
    '"': '\\"',
    "\n": "\\n",
    "\r": "\\r",
    "\t": "\\t",
}


class LiteralDialect(str, Enum):
    """Quoting rules of a source-level string literal."""

    STANDARD = "standard"  # "..." with backslash escapes
    VERBATIM = "verbatim"  # @"..." with doubled quotes

    @property
    def prefix(self) -> str:
        return '@"' if self is LiteralDialect.VERBATIM else '"'


def detect_dialect(literal: str) -> LiteralDialect:
    """Pick the dialect from the literal's opening quote."""
    if literal.startswith('@"'):
        return LiteralDialect.VERBATIM
    return LiteralDialect.STANDARD


def _strip_quotes(literal: str, dialect: LiteralDialect) -> str:
    prefix = dialect.prefix
    if (
        len(literal) < len(prefix) + 1
        or not literal.startswith(prefix)
        or not literal.endswith('"')
    ):
        msg = f"Not a {dialect.value} string literal: {literal!r}"
        raise ValueError(msg)
    return literal[len(prefix) : -1]


def _unescape_standard(body: str) -> str:
    chars: list[str] = []
    index = 0
    while index < len(body):
        char = body[index]
        if char == "\\":
            if index + 1 >= len(body):
                raise ValueError("Dangling backslash at end of literal")
            escaped = body[index + 1]
            # Unknown escapes are regex escapes like \d and pass through untouched
            chars.append(_STANDARD_ESCAPES.get(escaped, "\\" + escaped))
            index += 2
            continue
        if char == '"':
            msg = f"Unescaped quote at offset {index}"
            raise ValueError(msg)
        chars.append(char)
        index += 1
    return "".join(chars)


def _unescape_verbatim(body: str) -> str:
    chars: list[str] = []
    index = 0
    while index < len(body):
        char = body[index]
        if char == '"':
            if body[index + 1 : index + 2] != '"':
                msg = f"Unpaired quote at offset {index} in verbatim literal"
                raise ValueError(msg)
            chars.append('"')
            index += 2
            continue
        chars.append(char)
        index += 1
    return "".join(chars)


def unescape_literal(literal: str, dialect: LiteralDialect | None = None) -> str:
    """Convert a quoted source literal into the text it denotes.

    The input is scanned once, left to right, so an escaped backslash is
    never read again as the start of another escape.

    Args:
        literal: The literal including its quotes (and ``@`` prefix).
        dialect: Quoting rules; detected from the prefix when omitted.

    Returns:
        The unescaped text.

    Raises:
        ValueError: If the literal is malformed.
    """
    dialect = dialect or detect_dialect(literal)
    body = _strip_quotes(literal, dialect)
    if dialect is LiteralDialect.VERBATIM:
        return _unescape_verbatim(body)
    return _unescape_standard(body)


def escape_literal(text: str, dialect: LiteralDialect = LiteralDialect.STANDARD) -> str:
    """Quote ``text`` as a source literal; inverse of :func:`unescape_literal`."""
    if dialect is LiteralDialect.VERBATIM:
        return '@"' + text.replace('"', '""') + '"'
    return '"' + "".join(_STANDARD_ENCODE.get(char, char) for char in text) + '"'
