import logging

import pytest
from typer.testing import CliRunner


@pytest.fixture(autouse=True)
def restore_root_logging():
    """The CLI callback reconfigures the root logger; put it back afterwards."""
    root = logging.getLogger()
    handlers, level = list(root.handlers), root.level
    yield
    root.handlers = handlers
    root.setLevel(level)


@pytest.fixture
def runner():
    return CliRunner()


@pytest.fixture
def home(tmp_path):
    return tmp_path / "cli-home"
