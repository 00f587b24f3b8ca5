"""
pytest plugin wiring the fixture controller into the session lifecycle.

Inert unless enabled with ``--es-fixture`` or ``es_fixture = true`` in the
ini file.
"""

from pathlib import Path

import pytest
import structlog

from esfixture import hookspecs
from esfixture.client import build_client
from esfixture.controller import FixtureController
from esfixture.exceptions import ConfigurationError
from esfixture.logging import setup_logging
from esfixture.settings import FixtureSettings, load_settings

logger = structlog.get_logger(__name__)

controller_key = pytest.StashKey[FixtureController]()


def pytest_addhooks(pluginmanager: pytest.PytestPluginManager) -> None:
    pluginmanager.add_hookspecs(hookspecs)


def pytest_addoption(parser: pytest.Parser) -> None:
    group = parser.getgroup("esfixture", "Elasticsearch fixtures")
    group.addoption(
        "--es-fixture",
        action="store_true",
        default=None,
        help="Enable Elasticsearch populate/cleanup hooks and fixtures.",
    )
    group.addoption(
        "--es-config",
        metavar="PATH",
        default=None,
        help="YAML file with Elasticsearch fixture settings.",
    )
    parser.addini("es_fixture", type="bool", default=False, help="Enable Elasticsearch fixtures.")
    parser.addini("es_fixture_config", default="", help="YAML file with Elasticsearch fixture settings.")


def is_enabled(config: pytest.Config) -> bool:
    option = config.getoption("es_fixture")
    if option is not None:
        return bool(option)
    return bool(config.getini("es_fixture"))


def config_path(config: pytest.Config) -> Path | None:
    """Settings file from the command line or ini, relative to the rootdir."""
    value = config.getoption("es_config") or config.getini("es_fixture_config")
    if not value:
        return None
    return config.rootpath / value


@pytest.hookimpl(trylast=True)
def pytest_esfixture_make_client(settings: FixtureSettings):
    return build_client(settings)


class ElasticsearchFixturePlugin:
    """Forwards session and test lifecycle events to the controller."""

    def __init__(self, controller: FixtureController) -> None:
        self.controller = controller

    @pytest.hookimpl(trylast=True)
    def pytest_sessionstart(self, session: pytest.Session) -> None:
        self.controller.on_suite_start()

    @pytest.hookimpl(tryfirst=True)
    def pytest_runtest_setup(self, item: pytest.Item) -> None:
        self.controller.on_test_start()

    @pytest.hookimpl(trylast=True)
    def pytest_runtest_teardown(self, item: pytest.Item) -> None:
        self.controller.on_test_end()

    @pytest.hookimpl(tryfirst=True)
    def pytest_sessionfinish(self, session: pytest.Session) -> None:
        self.controller.on_suite_end()


def pytest_configure(config: pytest.Config) -> None:
    if not is_enabled(config):
        return

    try:
        settings = load_settings(config_path(config), defaults={"project_root": config.rootpath})
    except ConfigurationError as e:
        raise pytest.UsageError(str(e)) from e
    setup_logging(settings.log_format)

    controller = FixtureController(
        settings,
        client_factory=lambda s: config.hook.pytest_esfixture_make_client(settings=s),
    )
    config.stash[controller_key] = controller
    config.pluginmanager.register(ElasticsearchFixturePlugin(controller), "esfixture-lifecycle")
    logger.debug("esfixture.plugin.enabled", mode=settings.population_mode.value)


def pytest_report_header(config: pytest.Config) -> list[str] | None:
    controller = config.stash.get(controller_key, None)
    if controller is None:
        return None
    settings = controller.settings
    hosts = ", ".join(host.url for host in settings.hosts)
    return [f"esfixture: hosts={hosts} population={settings.population_mode.value} cleanup={settings.cleanup}"]


def _controller(request: pytest.FixtureRequest) -> FixtureController:
    controller = request.config.stash.get(controller_key, None)
    if controller is None:
        pytest.fail("esfixture is not enabled, pass --es-fixture or set es_fixture = true", pytrace=False)
    return controller


@pytest.fixture(scope="session")
def es_fixture(request: pytest.FixtureRequest) -> FixtureController:
    """The session's fixture controller."""
    return _controller(request)


@pytest.fixture(scope="session")
def es_client(es_fixture: FixtureController):
    """The live Elasticsearch client, for direct use."""
    return es_fixture.client


@pytest.fixture(scope="session")
def es_settings(es_fixture: FixtureController) -> FixtureSettings:
    return es_fixture.settings
