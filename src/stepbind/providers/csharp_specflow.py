"""SpecFlow binding provider.

SpecFlow is Reqnroll's predecessor and uses the same attribute model
under the ``TechTalk.SpecFlow`` namespace.
"""

from collections.abc import Sequence

from stepbind.core.config.settings import DEFAULT_EXCLUDE_PATTERNS
from stepbind.providers.csharp import CSharpBindingProvider, CSharpFramework

SPECFLOW = CSharpFramework(
    id="csharp-specflow",
    display_name="SpecFlow",
    namespace="TechTalk.SpecFlow",
    package_name="SpecFlow",
    rival_namespaces=("Reqnroll",),
)


class SpecFlowProvider(CSharpBindingProvider):
    def __init__(
        self, exclude_patterns: Sequence[str] = DEFAULT_EXCLUDE_PATTERNS
    ) -> None:
        super().__init__(SPECFLOW, exclude_patterns)
