import sys
from os import environ
from pathlib import Path

import pytest


def pytest_configure(config):
    sys.path.insert(0, str(Path(__file__).absolute().parent))
    environ.setdefault("DJANGO_SETTINGS_MODULE", "settings")

    from django import setup

    setup()


@pytest.fixture
def fake_servers():
    from fake_pool import FakeConnectionFactory

    yield FakeConnectionFactory.servers
    FakeConnectionFactory.servers.clear()
