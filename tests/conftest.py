"""Shared test fixtures and configuration."""

import shutil
from collections.abc import Callable, Sequence
from pathlib import Path

import pytest

from stepbind.core.domain.types import Binding, BindingKeyword, SourceLocation
from stepbind.core.parsing.pattern_compiler import compile_unescaped
from stepbind.providers.base import BindingIndexOptions, DetectionResult

FIXTURES_DIR = Path(__file__).parent / "fixtures"


class StubProvider:
    """Binding provider double with a fixed detection outcome."""

    binding_globs: tuple[str, ...] = ("**/*.cs",)
    languages: tuple[str, ...] = ("csharp",)

    def __init__(
        self,
        provider_id: str,
        confidence: float = 0.0,
        error: Exception | None = None,
        display_name: str | None = None,
    ) -> None:
        self.id = provider_id
        self.display_name = display_name or provider_id.title()
        self.confidence = confidence
        self.error = error
        self.detect_calls = 0

    async def detect(self, roots: Sequence[Path]) -> DetectionResult:
        self.detect_calls += 1
        if self.error is not None:
            raise self.error
        return DetectionResult(
            confidence=self.confidence,
            reasons=(f"stub confidence {self.confidence}",),
            signals=("stub signal",) if self.confidence > 0 else (),
        )

    async def index_bindings(
        self, files: Sequence[Path], options: BindingIndexOptions
    ) -> list[Binding]:
        return []

    def parse_file(
        self, source_text: str, path: Path, options: BindingIndexOptions
    ) -> list[Binding]:
        return []


@pytest.fixture
def stub_provider() -> type[StubProvider]:
    """Factory for provider doubles."""
    return StubProvider


@pytest.fixture
def make_binding() -> Callable[..., Binding]:
    """Build a binding from unescaped pattern text."""

    def _make(
        pattern: str,
        keyword: BindingKeyword = BindingKeyword.GIVEN,
        path: Path = Path("Steps/SampleSteps.cs"),
        line: int = 0,
        method_name: str = "Step",
        provider_id: str = "csharp-reqnroll",
        case_insensitive: bool = False,
    ) -> Binding:
        matcher = compile_unescaped(pattern, case_insensitive)
        assert matcher is not None, f"pattern did not compile: {pattern!r}"
        return Binding(
            keyword=keyword,
            pattern_raw=pattern,
            matcher=matcher,
            class_name="SampleSteps",
            method_name=method_name,
            location=SourceLocation(path=path, line=line),
            provider_id=provider_id,
        )

    return _make


@pytest.fixture
def reqnroll_workspace(tmp_path: Path) -> Path:
    """Copy of the Reqnroll calculator project."""
    workspace = tmp_path / "reqnroll"
    shutil.copytree(FIXTURES_DIR / "reqnroll", workspace)
    return workspace.resolve()


@pytest.fixture
def specflow_workspace(tmp_path: Path) -> Path:
    """Copy of the SpecFlow basket project."""
    workspace = tmp_path / "specflow"
    shutil.copytree(FIXTURES_DIR / "specflow", workspace)
    return workspace.resolve()


@pytest.fixture
def calculator_steps_source() -> str:
    return (FIXTURES_DIR / "reqnroll" / "Steps" / "CalculatorSteps.cs").read_text(
        encoding="utf-8"
    )
