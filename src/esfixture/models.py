"""Value types resolved once from the fixture settings."""

from dataclasses import dataclass
from enum import Enum

WILDCARD = "*"


@dataclass(frozen=True)
class AllIndexes:
    """Every index in the cluster, addressed through the wildcard."""

    @property
    def targets(self) -> tuple[str, ...]:
        return (WILDCARD,)


@dataclass(frozen=True)
class SpecificIndexes:
    """An explicit, ordered list of index names."""

    names: tuple[str, ...]

    @property
    def targets(self) -> tuple[str, ...]:
        return self.names


type IndexSelection = AllIndexes | SpecificIndexes


class PopulationMode(str, Enum):
    """Granularity at which the snapshot is restored and cleaned up.

    Per-test population wins over per-suite population, so a session never
    populates at both levels.
    """

    NOT_POPULATED = "not_populated"
    PER_SUITE = "per_suite"
    PER_TEST = "per_test"

    @classmethod
    def from_flags(cls, populate_before_test: bool, populate_before_suite: bool) -> "PopulationMode":
        if populate_before_test:
            return cls.PER_TEST
        if populate_before_suite:
            return cls.PER_SUITE
        return cls.NOT_POPULATED

    @property
    def per_suite(self) -> bool:
        return self is PopulationMode.PER_SUITE

    @property
    def per_test(self) -> bool:
        return self is PopulationMode.PER_TEST
