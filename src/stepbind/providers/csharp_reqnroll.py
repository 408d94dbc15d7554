"""Reqnroll binding provider."""

from collections.abc import Sequence

from stepbind.core.config.settings import DEFAULT_EXCLUDE_PATTERNS
from stepbind.providers.csharp import CSharpBindingProvider, CSharpFramework

REQNROLL = CSharpFramework(
    id="csharp-reqnroll",
    display_name="Reqnroll",
    namespace="Reqnroll",
    package_name="Reqnroll",
    rival_namespaces=("TechTalk.SpecFlow",),
)


class ReqnrollProvider(CSharpBindingProvider):
    """Step bindings declared with Reqnroll's ``[Given]``/``[When]``/``[Then]``."""

    def __init__(
        self, exclude_patterns: Sequence[str] = DEFAULT_EXCLUDE_PATTERNS
    ) -> None:
        super().__init__(REQNROLL, exclude_patterns)
