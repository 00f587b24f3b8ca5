"""
Global pytest configuration and fixtures for esfixture tests.

Unit tests run against ``StubClient``, an in-memory stand-in for the
synchronous Elasticsearch client that records every call and models
near-real-time visibility: indexed documents only become visible to
``exists``/``get`` after a refresh.
"""

from pathlib import Path
from typing import Any

import pytest
from elasticsearch import NotFoundError

from esfixture.controller import FixtureController
from esfixture.settings import FixtureSettings

pytest_plugins = ["pytester"]


class StubIndices:
    def __init__(self, client: "StubClient") -> None:
        self._client = client
        self.deleted: list[str] = []
        self.refreshed = 0

    def delete(self, index: str) -> dict[str, Any]:
        self._client.record("indices.delete", index=index)
        self._client.maybe_fail("indices.delete", index)
        if index == "*":
            names = list(self._client.documents)
        else:
            names = [index]
        for name in names:
            self._client.documents.pop(name, None)
            self._client.pending.pop(name, None)
        self.deleted.append(index)
        return {"acknowledged": True}

    def refresh(self, index: str | None = None) -> dict[str, Any]:
        self._client.record("indices.refresh", index=index)
        self.refreshed += 1
        for name, docs in self._client.pending.items():
            self._client.documents.setdefault(name, {}).update(docs)
        self._client.pending.clear()
        return {"_shards": {"failed": 0}}

    def count(self, index: str) -> int:
        return len(self._client.documents.get(index, {}))


class StubSnapshot:
    def __init__(self, client: "StubClient") -> None:
        self._client = client
        self.repositories: dict[str, dict[str, Any]] = {}
        # location -> snapshot name -> index -> documents
        self.stored: dict[str, dict[str, dict[str, dict[str, Any]]]] = {}

    def create_repository(self, name: str, body: dict[str, Any]) -> dict[str, Any]:
        self._client.record("snapshot.create_repository", name=name, body=body)
        self._client.maybe_fail("snapshot.create_repository", name)
        self.repositories[name] = body
        return {"acknowledged": True}

    def restore(self, repository: str, snapshot: str, wait_for_completion: bool) -> dict[str, Any]:
        self._client.record(
            "snapshot.restore",
            repository=repository,
            snapshot=snapshot,
            wait_for_completion=wait_for_completion,
        )
        self._client.maybe_fail("snapshot.restore", snapshot)
        location = self.repositories[repository]["settings"]["location"]
        indexes = self.stored[location][snapshot]
        for name, docs in indexes.items():
            self._client.documents[name] = {doc_id: dict(body) for doc_id, body in docs.items()}
        return {"snapshot": {"snapshot": snapshot, "indices": sorted(indexes)}}

    def delete_repository(self, name: str) -> dict[str, Any]:
        self._client.record("snapshot.delete_repository", name=name)
        self.repositories.pop(name)
        return {"acknowledged": True}


class StubClient:
    def __init__(self) -> None:
        self.documents: dict[str, dict[str, dict[str, Any]]] = {}
        self.pending: dict[str, dict[str, dict[str, Any]]] = {}
        self.versions: dict[tuple[str, str], int] = {}
        self.calls: list[tuple[str, dict[str, Any]]] = []
        self.failures: dict[tuple[str, str], Exception] = {}
        self.indices = StubIndices(self)
        self.snapshot = StubSnapshot(self)
        self.closed = False

    def record(self, operation: str, /, **kwargs: Any) -> None:
        self.calls.append((operation, kwargs))

    def fail(self, operation: str, target: str, error: Exception) -> None:
        self.failures[(operation, target)] = error

    def maybe_fail(self, operation: str, target: str) -> None:
        error = self.failures.get((operation, target))
        if error is not None:
            raise error

    def call_names(self) -> list[str]:
        return [name for name, _ in self.calls]

    def info(self) -> dict[str, Any]:
        self.record("info")
        self.maybe_fail("info", "cluster")
        return {"cluster_name": "stub", "version": {"number": "8.13.0"}}

    def close(self) -> None:
        self.closed = True

    def exists(self, index: str, id: str | int) -> bool:
        self.record("exists", index=index, id=id)
        return str(id) in self.documents.get(index, {})

    def get(self, index: str, id: str | int) -> dict[str, Any]:
        self.record("get", index=index, id=id)
        doc_id = str(id)
        if doc_id not in self.documents.get(index, {}):
            raise NotFoundError(message="not_found", meta=None, body=None)
        return {
            "_index": index,
            "_id": doc_id,
            "_version": self.versions.get((index, doc_id), 1),
            "_seq_no": 0,
            "_primary_term": 1,
            "found": True,
            "_source": self.documents[index][doc_id],
        }

    def index(self, index: str, id: str | int, document: dict[str, Any]) -> dict[str, Any]:
        self.record("index", index=index, id=id, document=document)
        doc_id = str(id)
        known = doc_id in self.documents.get(index, {}) or doc_id in self.pending.get(index, {})
        version = self.versions.get((index, doc_id), 0) + 1
        self.versions[(index, doc_id)] = version
        self.pending.setdefault(index, {})[doc_id] = dict(document)
        return {
            "_index": index,
            "_id": doc_id,
            "_version": version,
            "result": "updated" if known else "created",
        }


@pytest.fixture
def stub_client() -> StubClient:
    return StubClient()


@pytest.fixture
def snapshot_dir(tmp_path: Path) -> Path:
    path = tmp_path / "tests" / "_data" / "elasticsearch"
    path.mkdir(parents=True)
    return path


@pytest.fixture
def make_settings(tmp_path: Path):
    """Build settings rooted at tmp_path, ignoring any ESFIXTURE_* environment."""

    def _make(**kwargs: Any) -> FixtureSettings:
        kwargs.setdefault("project_root", tmp_path)
        return FixtureSettings(_env_file=None, **kwargs)

    return _make


@pytest.fixture
def seeded_snapshot(stub_client: StubClient, snapshot_dir: Path) -> str:
    """Register a snapshot named 'baseline' under the snapshot directory."""
    stub_client.snapshot.stored[str(snapshot_dir)] = {
        "baseline": {
            "articles": {"1": {"title": "first"}, "2": {"title": "second"}},
            "authors": {"7": {"name": "Ada"}},
        }
    }
    return "baseline"


@pytest.fixture
def make_controller(stub_client: StubClient, make_settings):
    def _make(**kwargs: Any) -> FixtureController:
        return FixtureController(make_settings(**kwargs), client_factory=lambda _settings: stub_client)

    return _make


@pytest.fixture(autouse=True)
def _isolate_env(monkeypatch: pytest.MonkeyPatch) -> None:
    for name in ("ESFIXTURE_HOSTS", "ESFIXTURE_CLEANUP", "ESFIXTURE_INDEXES", "ESFIXTURE_PROJECT_ROOT"):
        monkeypatch.delenv(name, raising=False)
