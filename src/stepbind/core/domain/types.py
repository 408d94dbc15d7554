"""Domain types for bindings, feature steps and resolution results.

Bindings are produced by providers and stored in the binding index.
The Gherkin types mirror the read-only model handed over by the feature
file parser. Resolution results are a closed set of three outcomes.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Any


class StepKeyword(str, Enum):
    """Keyword written in front of a feature step."""

    GIVEN = "Given"
    WHEN = "When"
    THEN = "Then"
    AND = "And"
    BUT = "But"

    @property
    def is_conjunction(self) -> bool:
        """True for And/But, which inherit the previous step's keyword."""
        return self in (StepKeyword.AND, StepKeyword.BUT)


class BindingKeyword(str, Enum):
    """Keyword a binding was declared with.

    ANY is the keyword-agnostic ``[StepDefinition]`` declaration.
    """

    GIVEN = "Given"
    WHEN = "When"
    THEN = "Then"
    ANY = "StepDefinition"

    def accepts(self, keyword: StepKeyword) -> bool:
        """Check whether a step with this effective keyword may use the binding."""
        if self is BindingKeyword.ANY:
            return True
        return self.value == keyword.value


class MatchStatus(str, Enum):
    """Outcome of resolving one step."""

    UNMATCHED = "unmatched"
    UNIQUE = "unique"
    AMBIGUOUS = "ambiguous"


class PatternKind(str, Enum):
    """How a binding pattern was interpreted."""

    REGEX = "regex"
    CUCUMBER_EXPRESSION = "cucumber-expression"


class FileChangeKind(str, Enum):
    """Kind of file-system change reported by a watcher."""

    CREATED = "created"
    CHANGED = "changed"
    DELETED = "deleted"


@dataclass(frozen=True)
class SourceLocation:
    """0-based position of a binding declaration."""

    path: Path
    line: int
    column: int = 0
    end_line: int | None = None
    end_column: int | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "path": str(self.path),
            "line": self.line,
            "column": self.column,
            "end_line": self.line if self.end_line is None else self.end_line,
            "end_column": self.end_column,
        }


@dataclass(frozen=True)
class CompiledMatcher:
    """Anchored, compiled form of a binding pattern.

    ``parameter_groups`` maps each logical parameter to the regex group
    indexes that may capture it. A cucumber ``{string}`` parameter spans
    two alternative groups, a plain regex group spans exactly one.
    """

    regex: re.Pattern[str]
    source: str
    kind: PatternKind = PatternKind.REGEX
    case_insensitive: bool = False
    parameter_groups: tuple[tuple[int, ...], ...] = ()

    @property
    def parameter_count(self) -> int:
        return len(self.parameter_groups)

    def match(self, text: str) -> re.Match[str] | None:
        """Match the whole of ``text``; partial matches never count."""
        return self.regex.fullmatch(text)

    def matches(self, text: str) -> bool:
        return self.match(text) is not None

    def arguments(self, text: str) -> tuple[str | None, ...] | None:
        """Extract parameter values from ``text``, or None when it does not match."""
        found = self.match(text)
        if found is None:
            return None
        values: list[str | None] = []
        for groups in self.parameter_groups:
            value = None
            for index in groups:
                if found.group(index) is not None:
                    value = found.group(index)
                    break
            values.append(value)
        return tuple(values)


@dataclass(frozen=True)
class Binding:
    """A step definition found in source code."""

    keyword: BindingKeyword
    pattern_raw: str
    matcher: CompiledMatcher
    class_name: str
    method_name: str
    location: SourceLocation
    provider_id: str = ""

    @property
    def declaring_symbol(self) -> str:
        return f"{self.class_name}.{self.method_name}"

    def to_dict(self) -> dict[str, Any]:
        """Serialize for reports and CLI output."""
        return {
            "keyword": self.keyword.value,
            "pattern": self.pattern_raw,
            "pattern_kind": self.matcher.kind.value,
            "parameters": self.matcher.parameter_count,
            "symbol": self.declaring_symbol,
            "provider": self.provider_id,
            "location": self.location.to_dict(),
        }


@dataclass(frozen=True)
class ExamplesTable:
    """Examples block of a scenario outline."""

    headers: tuple[str, ...]
    rows: tuple[tuple[str, ...], ...] = ()
    tags: tuple[str, ...] = ()


@dataclass(frozen=True)
class GherkinStep:
    """A single step as produced by the feature file parser.

    ``effective_keyword`` is the keyword after And/But inherit from the
    previous step, so it is always Given, When or Then.
    """

    keyword: StepKeyword
    effective_keyword: StepKeyword
    text: str
    full_text: str = ""
    line: int = 0

    def __post_init__(self) -> None:
        if self.effective_keyword.is_conjunction:
            msg = (
                "effective keyword must be Given, When or Then, "
                f"got {self.effective_keyword.value}"
            )
            raise ValueError(msg)


@dataclass(frozen=True)
class GherkinScenario:
    """A scenario or scenario outline."""

    title: str
    line: int
    steps: tuple[GherkinStep, ...] = ()
    is_outline: bool = False
    tags: tuple[str, ...] = ()
    examples: tuple[ExamplesTable, ...] = ()


@dataclass(frozen=True)
class GherkinModel:
    """Parsed feature file."""

    path: Path
    feature_name: str
    scenarios: tuple[GherkinScenario, ...] = ()


@dataclass(frozen=True)
class FileChangeEvent:
    """A created, changed or deleted source file."""

    path: Path
    kind: FileChangeKind


@dataclass(frozen=True)
class Unmatched:
    """No binding accepts the step."""

    @property
    def status(self) -> MatchStatus:
        return MatchStatus.UNMATCHED

    @property
    def bindings(self) -> tuple[Binding, ...]:
        return ()


@dataclass(frozen=True)
class Unique:
    """Exactly one binding accepts the step."""

    binding: Binding
    matched_text: str = ""

    @property
    def status(self) -> MatchStatus:
        return MatchStatus.UNIQUE

    @property
    def bindings(self) -> tuple[Binding, ...]:
        return (self.binding,)


@dataclass(frozen=True)
class Ambiguous:
    """Several bindings accept the step, kept in index order."""

    bindings: tuple[Binding, ...] = field(default=())

    def __post_init__(self) -> None:
        if len(self.bindings) < 2:
            msg = f"Ambiguous needs at least two bindings, got {len(self.bindings)}"
            raise ValueError(msg)

    @property
    def status(self) -> MatchStatus:
        return MatchStatus.AMBIGUOUS


ResolutionResult = Unmatched | Unique | Ambiguous
