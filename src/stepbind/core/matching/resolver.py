"""Resolve feature steps to the bindings that implement them."""

from collections.abc import Sequence

from stepbind.core.domain.types import (
    Ambiguous,
    Binding,
    ExamplesTable,
    GherkinModel,
    GherkinScenario,
    GherkinStep,
    ResolutionResult,
    StepKeyword,
    Unique,
    Unmatched,
)
from stepbind.core.index.binding_index import BindingIndex
from stepbind.core.matching.normalization import generate_candidate_texts

StepResolution = tuple[GherkinStep, ResolutionResult]


class StepResolver:
    """Matches steps against an index snapshot.

    A binding is a candidate when its keyword equals the step's effective
    keyword or is keyword-agnostic, and its pattern matches the whole step
    text. Every matching binding is reported; there is no preference for
    more specific patterns. Resolution only reads the index.
    """

    def resolve(
        self,
        step: GherkinStep,
        index: BindingIndex,
        examples: Sequence[ExamplesTable] = (),
    ) -> ResolutionResult:
        return self.resolve_text(
            step.effective_keyword, step.text, index.all_bindings(), examples
        )

    def resolve_text(
        self,
        keyword: StepKeyword,
        text: str,
        bindings: Sequence[Binding],
        examples: Sequence[ExamplesTable] = (),
    ) -> ResolutionResult:
        """Resolve raw step text against an explicit binding sequence.

        Args:
            keyword: Effective keyword (Given, When or Then).
            text: Step text without its keyword.
            bindings: Bindings in index order.
            examples: Outline Examples used to expand ``<placeholders>``.

        Returns:
            Unmatched, Unique, or Ambiguous with bindings in index order.
        """
        candidates = generate_candidate_texts(text, examples)
        matched: list[Binding] = []
        matched_text = ""
        for binding in bindings:
            if not binding.keyword.accepts(keyword):
                continue
            for candidate in candidates:
                if binding.matcher.matches(candidate):
                    matched.append(binding)
                    matched_text = matched_text or candidate
                    break

        if not matched:
            return Unmatched()
        if len(matched) == 1:
            return Unique(binding=matched[0], matched_text=matched_text)
        return Ambiguous(bindings=tuple(matched))

    def resolve_scenario(
        self, scenario: GherkinScenario, index: BindingIndex
    ) -> list[StepResolution]:
        examples = scenario.examples if scenario.is_outline else ()
        bindings = index.all_bindings()
        resolutions: list[StepResolution] = []
        for step in scenario.steps:
            result = self.resolve_text(
                step.effective_keyword, step.text, bindings, examples
            )
            resolutions.append((step, result))
        return resolutions

    def resolve_model(
        self, model: GherkinModel, index: BindingIndex
    ) -> list[tuple[GherkinScenario, StepResolution]]:
        """Resolve every step of a feature, scenario by scenario."""
        return [
            (scenario, resolution)
            for scenario in model.scenarios
            for resolution in self.resolve_scenario(scenario, index)
        ]
