"""Elasticsearch client construction."""

from typing import Any

import structlog
from elasticsearch import Elasticsearch

from esfixture.exceptions import ConfigurationError
from esfixture.settings import FixtureSettings, HostSettings

logger = structlog.get_logger(__name__)


def node_configs(hosts: list[HostSettings]) -> list[dict[str, Any]]:
    """Map configured hosts onto the client's node dictionaries, keeping order."""
    return [{"scheme": host.scheme, "host": host.host, "port": host.port} for host in hosts]


def basic_auth(hosts: list[HostSettings]) -> tuple[str, str] | None:
    """
    Resolve the credentials shared by all hosts.

    The client authenticates once for every node, so hosts declaring
    different users or passwords cannot be honoured.

    Raises:
        ConfigurationError: If hosts declare differing credentials
    """
    credentials = {(host.user, host.password) for host in hosts if host.user}
    if not credentials:
        return None
    if len(credentials) > 1:
        raise ConfigurationError("all hosts must share the same user and password")
    return credentials.pop()


def build_client(settings: FixtureSettings) -> Elasticsearch:
    """
    Build a synchronous client targeting the configured hosts.

    Connection errors are not handled here; the first request surfaces them.
    """
    auth = basic_auth(settings.hosts)
    client = Elasticsearch(hosts=node_configs(settings.hosts), basic_auth=auth)
    logger.info(
        "esfixture.client.created",
        hosts=[host.url for host in settings.hosts],
        authenticated=auth is not None,
    )
    return client
