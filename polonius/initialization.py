"""Initialization analysis: transitive path operations, move errors and partly
initialized variables."""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass, field
from typing import Any, Iterable

from .datalog import ExtendAnti, ExtendWith, Iteration, Relation
from .results import Output

logger = logging.getLogger(__name__)


@dataclass
class InitializationContext:
    """The facts the initialization analysis needs."""

    child_path: list = field(default_factory=list)
    path_is_var: list = field(default_factory=list)
    path_assigned_at_base: list = field(default_factory=list)
    path_moved_at_base: list = field(default_factory=list)
    path_accessed_at_base: list = field(default_factory=list)


@dataclass
class TransitivePaths:
    """Path operations extended from each path to all of its descendants."""

    path_moved_at: Relation
    path_assigned_at: Relation
    path_accessed_at: Relation
    path_begins_with_var: Relation


def _relation(data: Iterable[Any]) -> Relation:
    return data if isinstance(data, Relation) else Relation(data)


def compute_transitive_paths(
    child_path: Iterable[Any],
    path_assigned_at_base: Iterable[Any],
    path_moved_at_base: Iterable[Any],
    path_accessed_at_base: Iterable[Any],
    path_is_var: Iterable[Any],
) -> TransitivePaths:
    """Extend moves, assignments, accesses and variable roots to child paths."""
    iteration = Iteration()
    child_path_rel = _relation(child_path)

    ancestor_path = iteration.variable("ancestor")
    path_moved_at = iteration.variable("path_moved_at")
    path_assigned_at = iteration.variable("path_initialized_at")
    path_accessed_at = iteration.variable("path_accessed_at")
    path_begins_with_var = iteration.variable("path_begins_with_var")

    # ancestor_path(parent, child) :- child_path(child, parent).
    ancestor_path.extend((parent, child) for child, parent in child_path_rel)
    path_moved_at.insert(_relation(path_moved_at_base))
    path_assigned_at.insert(_relation(path_assigned_at_base))
    path_accessed_at.insert(_relation(path_accessed_at_base))
    path_begins_with_var.insert(_relation(path_is_var))

    def to_child(_parent: Any, value: Any, child: Any) -> tuple:
        return (child, value)

    while iteration.changed():
        # ancestor_path(grandparent, child) :-
        #   ancestor_path(parent, child), child_path(parent, grandparent).
        ancestor_path.from_join(
            ancestor_path,
            child_path_rel,
            lambda _parent, child, grandparent: (grandparent, child),
        )
        path_moved_at.from_join(path_moved_at, ancestor_path, to_child)
        path_assigned_at.from_join(path_assigned_at, ancestor_path, to_child)
        path_accessed_at.from_join(path_accessed_at, ancestor_path, to_child)
        path_begins_with_var.from_join(path_begins_with_var, ancestor_path, to_child)

    return TransitivePaths(
        path_moved_at=path_moved_at.complete(),
        path_assigned_at=path_assigned_at.complete(),
        path_accessed_at=path_accessed_at.complete(),
        path_begins_with_var=path_begins_with_var.complete(),
    )


def compute_move_errors(
    paths: TransitivePaths, cfg_edge: Iterable[Any], output: Output
) -> tuple[Relation, Relation]:
    """Propagate (de)initialization along the CFG.

    Returns ``(var_maybe_partly_initialized_on_exit, move_error)``.
    """
    cfg_edge = _relation(cfg_edge)
    iteration = Iteration()

    var_maybe_partly_initialized_on_exit = iteration.variable(
        "var_maybe_partly_initialized_on_exit"
    )
    path_maybe_initialized_on_exit = iteration.variable("path_maybe_initialized_on_exit")
    path_maybe_uninitialized_on_exit = iteration.variable(
        "path_maybe_uninitialized_on_exit"
    )
    move_error = iteration.variable("move_error")

    path_maybe_initialized_on_exit.insert(paths.path_assigned_at)
    path_maybe_uninitialized_on_exit.insert(paths.path_moved_at)

    while iteration.changed():
        # path_maybe_initialized_on_exit(path, point2) :-
        #   path_maybe_initialized_on_exit(path, point1),
        #   cfg_edge(point1, point2), !path_moved_at(path, point2).
        path_maybe_initialized_on_exit.from_leapjoin(
            path_maybe_initialized_on_exit,
            (
                ExtendWith(cfg_edge, lambda t: t[1]),
                ExtendAnti(paths.path_moved_at, lambda t: t[0]),
            ),
            lambda t, point2: (t[0], point2),
        )

        # path_maybe_uninitialized_on_exit(path, point2) :-
        #   path_maybe_uninitialized_on_exit(path, point1),
        #   cfg_edge(point1, point2), !path_assigned_at(path, point2).
        path_maybe_uninitialized_on_exit.from_leapjoin(
            path_maybe_uninitialized_on_exit,
            (
                ExtendWith(cfg_edge, lambda t: t[1]),
                ExtendAnti(paths.path_assigned_at, lambda t: t[0]),
            ),
            lambda t, point2: (t[0], point2),
        )

        # var_maybe_partly_initialized_on_exit(var, point) :-
        #   path_maybe_initialized_on_exit(path, point), path_begins_with_var(path, var).
        var_maybe_partly_initialized_on_exit.from_leapjoin(
            path_maybe_initialized_on_exit,
            ExtendWith(paths.path_begins_with_var, lambda t: t[0]),
            lambda t, var: (var, t[1]),
        )

        # move_error(path, target) :-
        #   path_maybe_uninitialized_on_exit(path, source),
        #   cfg_edge(source, target), path_accessed_at(path, target).
        move_error.from_leapjoin(
            path_maybe_uninitialized_on_exit,
            (
                ExtendWith(cfg_edge, lambda t: t[1]),
                ExtendWith(paths.path_accessed_at, lambda t: t[0]),
            ),
            lambda t, target: (t[0], target),
        )

    if output.dump_enabled:
        for path, location in path_maybe_initialized_on_exit.complete():
            output.path_maybe_initialized_on_exit.setdefault(location, []).append(path)
        for path, location in path_maybe_uninitialized_on_exit.complete():
            output.path_maybe_uninitialized_on_exit.setdefault(location, []).append(path)

    return var_maybe_partly_initialized_on_exit.complete(), move_error.complete()


def compute(
    ctx: InitializationContext, cfg_edge: Iterable[Any], output: Output
) -> tuple[Relation, Relation]:
    """Compute variables that may be partly initialized, and move errors.

    Returns ``(var_maybe_partly_initialized_on_exit, move_errors)``.
    """
    start = time.perf_counter()

    paths = compute_transitive_paths(
        ctx.child_path,
        ctx.path_assigned_at_base,
        ctx.path_moved_at_base,
        ctx.path_accessed_at_base,
        ctx.path_is_var,
    )
    logger.info("initialization phase 1 completed: %.6fs", time.perf_counter() - start)

    var_maybe_partly_initialized_on_exit, move_error = compute_move_errors(
        paths, cfg_edge, output
    )
    logger.info(
        "initialization phase 2: %d move errors in %.6fs",
        len(move_error),
        time.perf_counter() - start,
    )

    if output.dump_enabled:
        for var, location in var_maybe_partly_initialized_on_exit:
            output.var_maybe_partly_initialized_on_exit.setdefault(location, []).append(var)

    return var_maybe_partly_initialized_on_exit, move_error