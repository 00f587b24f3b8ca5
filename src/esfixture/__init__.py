"""
esfixture - Elasticsearch fixtures for pytest.

Assert on, seed and reset Elasticsearch state from functional tests:
- existence checks and document retrieval by index and id
- fixture document insertion with an immediate refresh
- snapshot restore and index cleanup around each test or session
"""

from esfixture.controller import FixtureController
from esfixture.exceptions import (
    ClientNotConnectedError,
    ConfigurationError,
    DocumentAssertionError,
    EsFixtureError,
)
from esfixture.models import AllIndexes, PopulationMode, SpecificIndexes
from esfixture.settings import FixtureSettings, HostSettings, load_settings

__version__ = "1.0.0"

__all__ = [
    # Controller
    "FixtureController",
    # Settings
    "FixtureSettings",
    "HostSettings",
    "load_settings",
    # Models
    "AllIndexes",
    "SpecificIndexes",
    "PopulationMode",
    # Exceptions
    "EsFixtureError",
    "ConfigurationError",
    "ClientNotConnectedError",
    "DocumentAssertionError",
]
