"""
Fixture controller.

Seeds, inspects and resets Elasticsearch state for a test session. The
controller is driven by the pytest plugin's lifecycle hooks and exposed to
tests through the ``es_fixture`` fixture.
"""

from collections.abc import Callable, Mapping
from typing import Any

import structlog
from elasticsearch import Elasticsearch

from esfixture.client import build_client
from esfixture.exceptions import ClientNotConnectedError, ConfigurationError, DocumentAssertionError
from esfixture.models import PopulationMode
from esfixture.settings import FixtureSettings

logger = structlog.get_logger(__name__)

type ClientFactory = Callable[[FixtureSettings], Elasticsearch]


class FixtureController:
    """
    Holds the session's client and applies the configured populate/cleanup policy.

    Population happens either once per session or once per test, never both:
    the granularity is fixed by ``settings.population_mode`` when the
    controller is created.
    """

    def __init__(
        self,
        settings: FixtureSettings,
        client: Elasticsearch | None = None,
        client_factory: ClientFactory = build_client,
    ) -> None:
        self.settings = settings
        self.mode: PopulationMode = settings.population_mode
        self._client = client
        self._client_factory = client_factory
        self._owns_client = client is None
        self._suite_populated = False

    @property
    def connected(self) -> bool:
        return self._client is not None

    @property
    def client(self) -> Elasticsearch:
        """
        Live client for direct use.

        Raises:
            ClientNotConnectedError: If connect() has not run
        """
        if self._client is None:
            raise ClientNotConnectedError("Elasticsearch client not connected. Call connect() first.")
        return self._client

    # ------------------------------------------------------------------
    # Connection
    # ------------------------------------------------------------------

    def connect(self) -> None:
        """Create the client (unless one was injected) and check the cluster answers."""
        client = self._client if self._client is not None else self._client_factory(self.settings)
        info = client.info()
        if self._client is None:
            self._client = client
            self._owns_client = True
        logger.info(
            "esfixture.connected",
            cluster=info["cluster_name"],
            version=info["version"]["number"],
        )

    def close(self) -> None:
        """Close the client if this controller created it."""
        if self._client is None:
            return
        if self._owns_client:
            self._client.close()
            self._client = None
        logger.info("esfixture.closed")

    # ------------------------------------------------------------------
    # Populate / cleanup
    # ------------------------------------------------------------------

    def cleanup(self) -> None:
        """
        Delete the configured indexes, or all indexes when none are listed.

        Indexes are deleted one by one in list order; a failure leaves the
        earlier ones deleted.
        """
        if not self.settings.cleanup:
            return

        for index in self.settings.index_selection.targets:
            self.client.indices.delete(index=index)
            logger.info("esfixture.cleanup.index_deleted", index=index)

    def populate(self) -> None:
        """
        Restore the configured snapshot through an ephemeral fs repository.

        The repository is registered, the snapshot restored (waiting for
        completion) and the registration deleted. Errors propagate. When the
        restore fails the registration is left in place, unless
        ``release_repository_on_failure`` is set.
        """
        settings = self.settings
        if not settings.snapshot_name:
            raise ConfigurationError("snapshot_name is not configured")

        repository = settings.repository_name
        self._create_repository(repository, str(settings.snapshot_location))

        if settings.release_repository_on_failure:
            try:
                self._restore_snapshot(repository, settings.snapshot_name)
            finally:
                self._delete_repository(repository)
        else:
            self._restore_snapshot(repository, settings.snapshot_name)
            self._delete_repository(repository)

    def _create_repository(self, repository: str, location: str) -> None:
        # Registering an existing name overwrites it.
        self.client.snapshot.create_repository(
            name=repository,
            body={
                "type": "fs",
                "settings": {
                    "location": location,
                    "compress": self.settings.compressed_snapshot,
                },
            },
        )
        logger.info("esfixture.populate.repository_created", repository=repository, location=location)

    def _restore_snapshot(self, repository: str, snapshot: str) -> None:
        self.client.snapshot.restore(
            repository=repository,
            snapshot=snapshot,
            wait_for_completion=True,
        )
        logger.info("esfixture.populate.restored", repository=repository, snapshot=snapshot)

    def _delete_repository(self, repository: str) -> None:
        self.client.snapshot.delete_repository(name=repository)
        logger.info("esfixture.populate.repository_deleted", repository=repository)

    # ------------------------------------------------------------------
    # Lifecycle hooks
    # ------------------------------------------------------------------

    def on_suite_start(self) -> None:
        self.connect()
        if self.mode.per_suite:
            self.populate()
            self._suite_populated = True

    def on_test_start(self) -> None:
        if self.mode.per_test:
            self.populate()

    def on_test_end(self) -> None:
        if self.mode.per_test:
            self.cleanup()

    def on_suite_end(self) -> None:
        # Nothing to release when connect failed; nothing to clean when populate failed.
        if not self.connected:
            return
        try:
            if self._suite_populated:
                self.cleanup()
                self._suite_populated = False
        finally:
            self.close()

    # ------------------------------------------------------------------
    # Test operations
    # ------------------------------------------------------------------

    def see_document_exists(self, index: str, id: str | int) -> None:
        """Assert a document with the given id exists in the index."""
        found = bool(self.client.exists(index=index, id=id))
        logger.debug("esfixture.document.checked", index=index, id=id, found=found)
        if not found:
            raise DocumentAssertionError(
                f"No matching document found for by id {id} in index {index}", index, id
            )

    def see_document_absent(self, index: str, id: str | int) -> None:
        """Assert there is no document with the given id in the index."""
        found = bool(self.client.exists(index=index, id=id))
        logger.debug("esfixture.document.checked", index=index, id=id, found=found)
        if found:
            raise DocumentAssertionError(
                f"Unexpected document found by id {id} in index {index}", index, id
            )

    def fetch_document(self, index: str, id: str | int) -> Any:
        """
        Return the stored record for a document.

        The response carries ``_index``, ``_id``, ``_version``, ``_seq_no``,
        ``_primary_term``, ``found`` and the original body under ``_source``.
        A missing document raises ``elasticsearch.NotFoundError``.
        """
        return self.client.get(index=index, id=id)

    def insert_document(self, index: str, id: str | int, body: Mapping[str, Any]) -> Any:
        """
        Create or overwrite a document and make it visible to reads.

        The refresh that follows the write is global: pending writes in every
        index become visible, not only this one.

        Returns:
            The write acknowledgement (``_index``, ``_id``, ``_version``, ``result``...)
        """
        response = self.client.index(index=index, id=id, document=body)
        self.client.indices.refresh()
        logger.info("esfixture.document.inserted", index=index, id=id, result=response["result"])
        return response
