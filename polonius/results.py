"""Analysis variants, their shared context, and the results they produce."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Collection

from .datalog import Relation

logger = logging.getLogger(__name__)


class Algorithm(Enum):
    """The available borrow-check variants."""

    NAIVE = "Naive"
    DATAFROG_OPT = "DatafrogOpt"
    LOCATION_INSENSITIVE = "LocationInsensitive"
    COMPARE = "Compare"
    HYBRID = "Hybrid"

    @classmethod
    def variants(cls) -> tuple[str, ...]:
        """The names of all variants."""
        return tuple(member.value for member in cls)

    @classmethod
    def from_str(cls, text: str) -> Algorithm:
        """Parse a variant name, ignoring case."""
        lowered = text.lower()
        for member in cls:
            if member.value.lower() == lowered:
                return member
        raise ValueError("valid values: " + ", ".join(cls.variants()))

    def __str__(self) -> str:
        return self.value


# Optimized variants that ought to be equivalent to the naive one.
OPTIMIZED_ALGORITHMS = (Algorithm.DATAFROG_OPT,)


@dataclass
class Output:
    """Errors found by an analysis, plus intermediate relations when dumping."""

    dump_enabled: bool = False
    errors: dict = field(default_factory=dict)
    subset_errors: dict = field(default_factory=dict)
    move_errors: dict = field(default_factory=dict)

    borrow_live_at: dict = field(default_factory=dict)
    restricts: dict = field(default_factory=dict)
    restricts_anywhere: dict = field(default_factory=dict)
    origin_live_on_entry: dict = field(default_factory=dict)
    invalidates: dict = field(default_factory=dict)
    subset: dict = field(default_factory=dict)
    subset_anywhere: dict = field(default_factory=dict)
    var_live_on_entry: dict = field(default_factory=dict)
    var_drop_live_on_entry: dict = field(default_factory=dict)
    path_maybe_initialized_on_exit: dict = field(default_factory=dict)
    path_maybe_uninitialized_on_exit: dict = field(default_factory=dict)
    known_contains: dict = field(default_factory=dict)
    var_maybe_partly_initialized_on_exit: dict = field(default_factory=dict)

    def _require_dump(self) -> None:
        if not self.dump_enabled:
            raise RuntimeError("this information is only recorded when dumping is enabled")

    def errors_at(self, location: Any) -> list:
        """Loans with illegal accesses at ``location``."""
        return self.errors.get(location, [])

    def borrows_in_scope_at(self, location: Any) -> list:
        """Loans live at ``location``."""
        return self.borrow_live_at.get(location, [])

    def restricts_at(self, location: Any) -> dict:
        """Map of origin to the loans it requires at ``location``."""
        self._require_dump()
        return self.restricts.get(location, {})

    def regions_live_at(self, location: Any) -> list:
        """Origins live on entry to ``location``."""
        self._require_dump()
        return self.origin_live_on_entry.get(location, [])

    def subsets_at(self, location: Any) -> dict:
        """Map of origin to the origins it is a subset of at ``location``."""
        self._require_dump()
        return self.subset.get(location, {})


@dataclass
class Context:
    """Static inputs shared by the borrow-check variants."""

    origin_live_on_entry: Relation
    invalidates: Relation
    outlives: list
    borrow_region: list
    cfg_node: Collection[Any]
    killed: Relation
    known_contains: Relation
    placeholder_origin: Relation
    placeholder_loan: Relation
    cfg_edge: Relation
    potential_errors: frozenset | None = None


def compare_errors(all_naive_errors: dict, all_opt_errors: dict) -> bool:
    """Return true if the two error maps differ, logging each difference."""
    differ = False
    points = dict.fromkeys([*all_naive_errors, *all_opt_errors])
    for point in points:
        naive_errors = sorted(all_naive_errors.get(point, []))
        opt_errors = sorted(all_opt_errors.get(point, []))

        for err in naive_errors:
            if err not in opt_errors:
                logger.error("Error %r at %r reported by naive, but not opt.", err, point)
                differ = True

        for err in opt_errors:
            if err not in naive_errors:
                logger.error("Error %r at %r reported by opt, but not naive.", err, point)
                differ = True

    return differ