"""Input facts for the borrow analysis."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

Atom = Any


@dataclass
class AllFacts:
    """The facts a borrow analysis is computed from.

    Atoms (origins, loans, points, variables and paths) may be any hashable
    values that can be ordered among their own kind; small integers are typical.
    """

    # (origin, loan, point): `origin` may refer to data from `loan` starting at `point`.
    borrow_region: list[tuple[Atom, Atom, Atom]] = field(default_factory=list)
    # origin: a free region within the function body.
    universal_region: list[Atom] = field(default_factory=list)
    # (point1, point2): an edge of the control flow graph.
    cfg_edge: list[tuple[Atom, Atom]] = field(default_factory=list)
    # (loan, point): some prefix of the path borrowed at `loan` is assigned at `point`.
    killed: list[tuple[Atom, Atom]] = field(default_factory=list)
    # (origin1, origin2, point): `origin1@point: origin2@point` is required.
    outlives: list[tuple[Atom, Atom, Atom]] = field(default_factory=list)
    # (point, loan): `loan` is invalidated at `point`.
    invalidates: list[tuple[Atom, Atom]] = field(default_factory=list)
    # (var, point): `var` is used for anything but a drop at `point`.
    var_used_at: list[tuple[Atom, Atom]] = field(default_factory=list)
    # (var, point): `var` is overwritten at `point`.
    var_defined_at: list[tuple[Atom, Atom]] = field(default_factory=list)
    # (var, point): `var` is used in a drop at `point`.
    var_dropped_at: list[tuple[Atom, Atom]] = field(default_factory=list)
    # (var, origin): references with `origin` may be dereferenced when `var` is used.
    use_of_var_derefs_origin: list[tuple[Atom, Atom]] = field(default_factory=list)
    # (var, origin): the type of `var` includes `origin` and uses it when dropped.
    drop_of_var_derefs_origin: list[tuple[Atom, Atom]] = field(default_factory=list)
    # (child, parent): `child` is a direct child path of `parent`.
    child_path: list[tuple[Atom, Atom]] = field(default_factory=list)
    # (path, var): the root path `path` starts in variable `var`.
    path_is_var: list[tuple[Atom, Atom]] = field(default_factory=list)
    # (path, point): `path` was initialized at `point` (prefix paths only).
    path_assigned_at_base: list[tuple[Atom, Atom]] = field(default_factory=list)
    # (path, point): `path` was moved at `point` (prefix paths only).
    path_moved_at_base: list[tuple[Atom, Atom]] = field(default_factory=list)
    # (path, point): `path` was accessed at `point` (prefix paths only).
    path_accessed_at_base: list[tuple[Atom, Atom]] = field(default_factory=list)
    # (origin1, origin2): declared or implied `'origin1: 'origin2` relations.
    known_subset: list[tuple[Atom, Atom]] = field(default_factory=list)
    # (origin, loan): a placeholder origin and its placeholder loan.
    placeholder: list[tuple[Atom, Atom]] = field(default_factory=list)