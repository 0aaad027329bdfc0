# catalogs.py
import logging
from dataclasses import dataclass
from typing import Generic, List, Optional, Protocol, TypeVar

from config import DEFAULTS
from models import NutritionalThreshold, ValidationRange, Recommendation

logger = logging.getLogger(__name__)

T = TypeVar("T")

CATALOG = "catalog"
DEFAULT = "default"


class CatalogStore(Protocol):
    """Anything that can list catalog entries (a module works too)."""

    def list_thresholds(self) -> List[NutritionalThreshold]: ...

    def list_ranges(self) -> List[ValidationRange]: ...

    def list_recommendations(self) -> List[Recommendation]: ...


class InMemoryCatalog:
    def __init__(
        self,
        thresholds: Optional[List[NutritionalThreshold]] = None,
        ranges: Optional[List[ValidationRange]] = None,
        recommendations: Optional[List[Recommendation]] = None,
    ):
        self.thresholds = list(thresholds or [])
        self.ranges = list(ranges or [])
        self.recommendations = list(recommendations or [])

    def list_thresholds(self) -> List[NutritionalThreshold]:
        return list(self.thresholds)

    def list_ranges(self) -> List[ValidationRange]:
        return list(self.ranges)

    def list_recommendations(self) -> List[Recommendation]:
        return list(self.recommendations)


@dataclass(frozen=True)
class Lookup(Generic[T]):
    entry: T
    source: str  # CATALOG | DEFAULT

    @property
    def used_default(self) -> bool:
        return self.source == DEFAULT


def age_group(age: int) -> str:
    """
    Map an age in years to its catalog band.
    Ages under 3 have no band and raise ValueError.
    """
    if age < 3:
        raise ValueError(f"No age group defined for age {age}")
    if age <= 5:
        return "3-5"
    if age <= 10:
        return "6-10"
    if age <= 17:
        return "11-17"
    return "18+"


def _default_values(table: str, group: str, gender: str) -> dict:
    try:
        return DEFAULTS[table][(group, gender)]
    except KeyError:
        raise ValueError(f"No default {table} entry for age group {group!r}, gender {gender!r}") from None


def default_threshold(group: str, gender: str) -> NutritionalThreshold:
    values = _default_values("thresholds", group, gender)
    return NutritionalThreshold(id=f"default-{group}-{gender}", age_group=group, gender=gender, **values)


def default_range(group: str, gender: str) -> ValidationRange:
    values = _default_values("ranges", group, gender)
    return ValidationRange(id=f"default-{group}-{gender}", age_group=group, gender=gender, **values)


def default_recommendation(status: str) -> Recommendation:
    values = DEFAULTS["recommendations"][status]
    return Recommendation(id=f"default-{status}", status=status, **values)


def check_threshold_order(thresholds: List[NutritionalThreshold]) -> List[str]:
    """Returns one problem string per active threshold whose cut points are not strictly ascending."""
    problems: List[str] = []
    for t in thresholds:
        if not t.is_active:
            continue
        if not (t.red_max < t.yellow_max < t.green_max):
            problems.append(
                f"Threshold {t.id} ({t.age_group}/{t.gender}): expected red_max < yellow_max < green_max, "
                f"got {t.red_max} / {t.yellow_max} / {t.green_max}"
            )
    return problems


def _first_active(entries, **key):
    for e in entries:
        if e.is_active and all(getattr(e, k) == v for k, v in key.items()):
            return e
    return None


class CatalogLookup:
    """
    Read-only view over a catalog store.

    Every getter returns a Lookup tagged with where the entry came from:
    the first active catalog match, or the built-in default table.
    """

    def __init__(self, store: CatalogStore):
        self.store = store

    def get_threshold(self, group: str, gender: str) -> Lookup[NutritionalThreshold]:
        entry = _first_active(self.store.list_thresholds(), age_group=group, gender=gender)
        if entry is not None:
            return Lookup(entry, CATALOG)
        logger.warning("No active threshold for %s/%s in catalog; using built-in default", group, gender)
        return Lookup(default_threshold(group, gender), DEFAULT)

    def get_range(self, group: str, gender: str) -> Lookup[ValidationRange]:
        entry = _first_active(self.store.list_ranges(), age_group=group, gender=gender)
        if entry is not None:
            return Lookup(entry, CATALOG)
        logger.warning("No active validation range for %s/%s in catalog; using built-in default", group, gender)
        return Lookup(default_range(group, gender), DEFAULT)

    def get_recommendation(self, status: str) -> Lookup[Recommendation]:
        entry = _first_active(self.store.list_recommendations(), status=status)
        if entry is not None:
            return Lookup(entry, CATALOG)
        logger.warning("No active recommendation for status %s in catalog; using built-in default", status)
        return Lookup(default_recommendation(status), DEFAULT)

    def threshold_for_age(self, age: int, gender: str) -> Lookup[NutritionalThreshold]:
        return self.get_threshold(age_group(age), gender)

    def range_for_age(self, age: int, gender: str) -> Lookup[ValidationRange]:
        return self.get_range(age_group(age), gender)


def all_default_thresholds() -> List[NutritionalThreshold]:
    return [default_threshold(g, s) for (g, s) in DEFAULTS["thresholds"]]


def all_default_ranges() -> List[ValidationRange]:
    return [default_range(g, s) for (g, s) in DEFAULTS["ranges"]]
