"""Origin liveness: which origins are live on entry to each point."""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass, field
from typing import Any, Iterable

from .datalog import ExtendAnti, ExtendWith, Iteration, Relation, join_relations, leapjoin
from .results import Output

logger = logging.getLogger(__name__)


@dataclass
class LivenessContext:
    """The facts the liveness analysis needs."""

    var_used_at: list = field(default_factory=list)
    var_defined_at: list = field(default_factory=list)
    var_dropped_at: list = field(default_factory=list)
    use_of_var_derefs_origin: list = field(default_factory=list)
    drop_of_var_derefs_origin: list = field(default_factory=list)


def _relation(data: Iterable[Any]) -> Relation:
    return data if isinstance(data, Relation) else Relation(data)


def compute_live_origins(
    ctx: LivenessContext,
    cfg_edge: Iterable[Any],
    var_maybe_partly_initialized_on_exit: Iterable[Any],
    output: Output,
) -> list:
    """Return the ``(origin, point)`` pairs where the origin is live on entry."""
    start = time.perf_counter()
    cfg_edge = _relation(cfg_edge)
    var_maybe_partly_initialized_on_exit = _relation(var_maybe_partly_initialized_on_exit)
    iteration = Iteration()

    var_defined_at = Relation(ctx.var_defined_at)
    cfg_edge_reverse = Relation((point2, point1) for point1, point2 in cfg_edge)
    use_of_var_derefs_origin = Relation(ctx.use_of_var_derefs_origin)
    drop_of_var_derefs_origin = Relation(ctx.drop_of_var_derefs_origin)
    var_dropped_at = Relation(((var, point), ()) for var, point in ctx.var_dropped_at)

    var_live_on_entry = iteration.variable("var_live_on_entry")
    var_drop_live_on_entry = iteration.variable("var_drop_live_on_entry")
    origin_live_on_entry = iteration.variable("origin_live_on_entry")

    # var_live_on_entry(var, point) :- var_used_at(var, point).
    var_live_on_entry.insert(Relation(ctx.var_used_at))

    # var_maybe_partly_initialized_on_entry(var, point2) :-
    #   var_maybe_partly_initialized_on_exit(var, point1), cfg_edge(point1, point2).
    var_maybe_partly_initialized_on_entry = leapjoin(
        var_maybe_partly_initialized_on_exit,
        ExtendWith(cfg_edge, lambda t: t[1]),
        lambda t, point2: ((t[0], point2), ()),
    )

    # var_drop_live_on_entry(var, point) :-
    #   var_dropped_at(var, point), var_maybe_partly_initialized_on_entry(var, point).
    var_drop_live_on_entry.insert(
        join_relations(
            var_dropped_at,
            var_maybe_partly_initialized_on_entry,
            lambda key, _a, _b: key,
        )
    )

    while iteration.changed():
        origin_live_on_entry.from_join(
            var_drop_live_on_entry,
            drop_of_var_derefs_origin,
            lambda _var, point, origin: (origin, point),
        )
        origin_live_on_entry.from_join(
            var_live_on_entry,
            use_of_var_derefs_origin,
            lambda _var, point, origin: (origin, point),
        )

        # var_live_on_entry(var, point1) :-
        #   var_live_on_entry(var, point2), cfg_edge(point1, point2),
        #   !var_defined_at(var, point1).
        var_live_on_entry.from_leapjoin(
            var_live_on_entry,
            (
                ExtendAnti(var_defined_at, lambda t: t[0]),
                ExtendWith(cfg_edge_reverse, lambda t: t[1]),
            ),
            lambda t, point1: (t[0], point1),
        )

        # var_drop_live_on_entry(var, source) :-
        #   var_drop_live_on_entry(var, target), cfg_edge(source, target),
        #   !var_defined_at(var, source),
        #   var_maybe_partly_initialized_on_exit(var, source).
        var_drop_live_on_entry.from_leapjoin(
            var_drop_live_on_entry,
            (
                ExtendAnti(var_defined_at, lambda t: t[0]),
                ExtendWith(cfg_edge_reverse, lambda t: t[1]),
                ExtendWith(var_maybe_partly_initialized_on_exit, lambda t: t[0]),
            ),
            lambda t, source: (t[0], source),
        )

    live = origin_live_on_entry.complete()
    logger.info(
        "compute_live_origins() completed: %d tuples, %.6fs",
        len(live),
        time.perf_counter() - start,
    )

    if output.dump_enabled:
        for var, location in var_drop_live_on_entry.complete():
            output.var_drop_live_on_entry.setdefault(location, []).append(var)
        for var, location in var_live_on_entry.complete():
            output.var_live_on_entry.setdefault(location, []).append(var)

    return list(live.elements)


def make_universal_regions_live(
    origin_live_on_entry: list,
    cfg_node: Iterable[Any],
    universal_regions: Iterable[Any],
) -> list:
    """Append every universal region as live at every CFG node; returns the list."""
    logger.debug("make_universal_regions_live()")
    nodes = list(cfg_node)
    origin_live_on_entry.extend(
        (origin, point) for origin in universal_regions for point in nodes
    )
    return origin_live_on_entry