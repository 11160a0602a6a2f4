"""Default marks for tests under `tests/integration/`."""

from pathlib import Path

import pytest

from tests.fixtures.markers import add_default_mark

# pylint: disable=unused-argument

LAYER_ROOT = Path(__file__).parent.resolve()


@pytest.hookimpl(tryfirst=True)
def pytest_collection_modifyitems(
    config: pytest.Config, items: list[pytest.Item]
) -> None:
    add_default_mark(items, LAYER_ROOT, "integration")
