# tests/conftest.py

from datetime import datetime

import pytest

from orgedit.engine.actions import OrgActions
from orgedit.engine.config import Config
from orgedit.engine.host import InMemoryHost
from orgedit.engine.model import Position

NOW = datetime(2024, 3, 6, 10, 0)


@pytest.fixture
def config() -> Config:
    return Config()


@pytest.fixture
def clock():
    return lambda: NOW


@pytest.fixture
def make_host(config):
    def _make(text: str, line: int = 0, col: int = 0, **kwargs) -> InMemoryHost:
        kwargs.setdefault("filename", "notes.org")
        return InMemoryHost(text, config=kwargs.pop("config", config), cursor=Position(line, col), **kwargs)

    return _make


@pytest.fixture
def make_actions(clock):
    def _make(host: InMemoryHost, **kwargs) -> OrgActions:
        return OrgActions(host, host.config, clock=clock, **kwargs)

    return _make
