"""Hooks other plugins and conftest files may implement."""

import pytest


@pytest.hookspec(firstresult=True)
def pytest_esfixture_make_client(settings):
    """Return the Elasticsearch client the session should use.

    Called once, when the session starts. The first non-None result wins;
    the default implementation builds a client from ``settings.hosts``.

    :param esfixture.settings.FixtureSettings settings: the loaded settings.
    """
