"""BDD test configuration for step resolution scenarios."""

from typing import Any

import pytest


@pytest.fixture
def bdd_context() -> dict[str, Any]:
    """Shared state passed between the steps of one scenario."""
    return {"context": None, "result": None}
