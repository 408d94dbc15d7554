"""Attribute-based step binding scanner shared by the C# frameworks.

Reqnroll and SpecFlow declare bindings the same way, so one scanner
serves both. Each framework differs only in its namespace, NuGet package
name and display metadata, captured by :class:`CSharpFramework`.
"""

import asyncio
import bisect
import logging
import re
from collections.abc import Sequence
from dataclasses import dataclass
from pathlib import Path

from stepbind.core.config.settings import DEFAULT_EXCLUDE_PATTERNS
from stepbind.core.domain.types import Binding, BindingKeyword, SourceLocation
from stepbind.core.parsing.literals import detect_dialect
from stepbind.core.parsing.pattern_compiler import compile_pattern
from stepbind.providers.base import BindingIndexOptions, DetectionResult
from stepbind.providers.workspace import find_files_async, read_source_async

logger = logging.getLogger(__name__)

PROJECT_SAMPLE_LIMIT = 20
STEP_FOLDER_SAMPLE_LIMIT = 30
SOURCE_SAMPLE_LIMIT = 50
SOURCE_SCAN_LIMIT = 30

PACKAGE_WEIGHT = 0.5
BINDING_ATTRIBUTE_WEIGHT = 0.3
USING_WEIGHT = 0.2

UNKNOWN = "Unknown"

_STEP_ATTRIBUTE = re.compile(
    r"""
    (?<=[\[,])\s*
    (?P<keyword>Given|When|Then|StepDefinition)(?:Attribute)?
    \s*\(\s*
    (?P<literal>@"(?:[^"]|"")*"|"(?:[^"\\\r\n]|\\.)*")
    (?:\s*,[^()\]]*)?
    \s*\)\s*(?=[\],])
    """,
    re.VERBOSE,
)
_BINDING_ATTRIBUTE = re.compile(r"\[\s*Binding(?:Attribute)?\s*(?:\(\s*\))?\s*\]")
# A declaration starts its line; only attributes and modifiers may precede it
_CLASS_DECLARATION = re.compile(
    r"^[ \t]*(?:\[[^\]\r\n]*\][ \t]*)*"
    r"(?:(?:public|private|protected|internal|static|sealed|abstract|partial"
    r"|readonly|unsafe|file|new)\s+)*"
    r"(?:class|record)\s+([A-Za-z_]\w*)",
    re.MULTILINE,
)
_METHOD_DECLARATION = re.compile(
    r"(?:(?:public|private|protected|internal|static|async|virtual|override|new)\s+)+"
    r"[\w.]+(?:<[^()]*?>)?(?:\[\])?\??\s+([A-Za-z_]\w*)\s*\("
)
_KEYWORDS = {
    "Given": BindingKeyword.GIVEN,
    "When": BindingKeyword.WHEN,
    "Then": BindingKeyword.THEN,
    "StepDefinition": BindingKeyword.ANY,
}


@dataclass(frozen=True)
class CSharpFramework:
    """Identity and detection markers of one C# BDD framework."""

    id: str
    display_name: str
    namespace: str
    package_name: str
    rival_namespaces: tuple[str, ...] = ()

    @property
    def package_pattern(self) -> re.Pattern[str]:
        return re.compile(
            rf"PackageReference\s+Include\s*=\s*[\"']{re.escape(self.package_name)}\b"
        )

    @property
    def using_pattern(self) -> re.Pattern[str]:
        return re.compile(rf"\busing\s+{re.escape(self.namespace)}\s*[;.]")

    def imports_rival(self, source_text: str) -> bool:
        """True when the file imports a different C# BDD framework."""
        return any(
            re.search(rf"\busing\s+{re.escape(namespace)}\s*[;.]", source_text)
            for namespace in self.rival_namespaces
        )


class CSharpBindingProvider:
    """Binding provider for attribute-based C# step definitions."""

    binding_globs: tuple[str, ...] = ("**/*.cs",)
    languages: tuple[str, ...] = ("csharp",)

    def __init__(
        self,
        framework: CSharpFramework,
        exclude_patterns: Sequence[str] = DEFAULT_EXCLUDE_PATTERNS,
    ) -> None:
        self._framework = framework
        self.exclude_patterns = tuple(exclude_patterns)
        self._package_pattern = framework.package_pattern
        self._using_pattern = framework.using_pattern

    @property
    def id(self) -> str:
        return self._framework.id

    @property
    def display_name(self) -> str:
        return self._framework.display_name

    @property
    def framework(self) -> CSharpFramework:
        return self._framework

    async def detect(self, roots: Sequence[Path]) -> DetectionResult:
        """Score the workspace on package, attribute and namespace signals.

        Each signal counts at most once: a package reference in a project
        file (+0.5), a ``[Binding]`` class attribute (+0.3) and a ``using``
        of the framework namespace (+0.2).
        """
        if not roots:
            return DetectionResult.none("No workspace folders")

        name = self._framework.display_name
        confidence = 0.0
        reasons: list[str] = []
        signals: list[str] = []

        project_files = await find_files_async(
            roots, ("**/*.csproj",), self.exclude_patterns, PROJECT_SAMPLE_LIMIT
        )
        for project_file in project_files:
            text = await self._read_or_none(project_file)
            if text is not None and self._package_pattern.search(text):
                confidence += PACKAGE_WEIGHT
                reasons.append(f"{name} package referenced in {project_file.name}")
                signals.append(f"package:{project_file.name}")
                break

        source_files = await find_files_async(
            roots,
            ("**/*Steps*/**/*.cs",),
            self.exclude_patterns,
            STEP_FOLDER_SAMPLE_LIMIT,
        )
        if not source_files:
            source_files = await find_files_async(
                roots, ("**/*.cs",), self.exclude_patterns, SOURCE_SAMPLE_LIMIT
            )

        found_attribute = False
        found_using = False
        for source_file in source_files[:SOURCE_SCAN_LIMIT]:
            text = await self._read_or_none(source_file)
            if text is None:
                continue
            if not found_using and self._using_pattern.search(text):
                found_using = True
                confidence += USING_WEIGHT
                namespace = self._framework.namespace
                reasons.append(f"using {namespace} in {source_file.name}")
                signals.append(f"using:{source_file.name}")
            if (
                not found_attribute
                and _BINDING_ATTRIBUTE.search(text)
                and not self._framework.imports_rival(text)
            ):
                found_attribute = True
                confidence += BINDING_ATTRIBUTE_WEIGHT
                reasons.append(f"[Binding] attribute in {source_file.name}")
                signals.append(f"binding:{source_file.name}")
            if found_attribute and found_using:
                break

        feature_files = await find_files_async(
            roots, ("**/*.feature",), self.exclude_patterns, 1
        )
        if feature_files:
            signals.append("Found .feature files in workspace")

        if confidence == 0:
            reasons.append(f"No {name} signals detected")

        result = DetectionResult(
            confidence=confidence,
            reasons=tuple(reasons),
            signals=tuple(signals),
            primary_languages=("csharp",) if confidence > 0 else (),
        )
        logger.debug("%s detection confidence %.2f", self.id, result.confidence)
        return result

    async def index_bindings(
        self, files: Sequence[Path], options: BindingIndexOptions
    ) -> list[Binding]:
        """Parse ``files`` concurrently; a failing file contributes nothing."""
        semaphore = asyncio.Semaphore(options.max_concurrent_files)

        async def index_one(path: Path) -> list[Binding]:
            async with semaphore:
                try:
                    text = await read_source_async(path)
                    return self.parse_file(text, path, options)
                except Exception as e:
                    level = logging.WARNING if options.debug else logging.DEBUG
                    logger.log(level, "Skipping %s while indexing: %s", path, e)
                    return []

        per_file = await asyncio.gather(*(index_one(path) for path in files))
        return [binding for bindings in per_file for binding in bindings]

    def parse_file(
        self, source_text: str, path: Path, options: BindingIndexOptions
    ) -> list[Binding]:
        """Extract step bindings from C# source text.

        Args:
            source_text: Full file content.
            path: File path recorded in each binding's location.
            options: Case sensitivity used when compiling patterns.

        Returns:
            Bindings in source order. Attributes whose pattern does not
            compile, or that sit on a commented-out line, are skipped.
        """
        if not any(word in source_text for word in _KEYWORDS):
            return []

        line_starts = _line_starts(source_text)
        classes = [
            (found.start(), found.group(1))
            for found in _CLASS_DECLARATION.finditer(source_text)
        ]
        class_offsets = [offset for offset, _ in classes]

        bindings: list[Binding] = []
        for found in _STEP_ATTRIBUTE.finditer(source_text):
            offset = found.start("keyword")
            line = bisect.bisect_right(line_starts, offset) - 1
            line_start = line_starts[line]
            if "//" in source_text[line_start:offset]:
                continue

            literal = found.group("literal")
            matcher = compile_pattern(
                literal, detect_dialect(literal), options.case_insensitive
            )
            if matcher is None:
                if options.debug:
                    logger.warning(
                        "Dropping uncompilable pattern %s at %s:%d",
                        literal,
                        path,
                        line,
                    )
                continue

            class_index = bisect.bisect_right(class_offsets, offset) - 1
            class_name = classes[class_index][1] if class_index >= 0 else UNKNOWN
            method = _METHOD_DECLARATION.search(source_text, found.end())
            method_name = method.group(1) if method else UNKNOWN

            line_end = source_text.find("\n", offset)
            if line_end < 0:
                line_end = len(source_text)
            bindings.append(
                Binding(
                    keyword=_KEYWORDS[found.group("keyword")],
                    pattern_raw=matcher.source,
                    matcher=matcher,
                    class_name=class_name,
                    method_name=method_name,
                    location=SourceLocation(
                        path=path,
                        line=line,
                        column=offset - line_start,
                        end_line=line,
                        end_column=len(source_text[line_start:line_end].rstrip("\r")),
                    ),
                    provider_id=self.id,
                )
            )
        return bindings

    async def _read_or_none(self, path: Path) -> str | None:
        try:
            return await read_source_async(path)
        except OSError as e:
            logger.debug("Cannot read %s during detection: %s", path, e)
            return None


def _line_starts(text: str) -> list[int]:
    starts = [0]
    starts.extend(index + 1 for index, char in enumerate(text) if char == "\n")
    return starts
