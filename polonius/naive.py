"""The naive, location-sensitive borrow check."""

from __future__ import annotations

import logging
import time

from .datalog import (
    ExtendWith,
    FilterAnti,
    FilterWith,
    Iteration,
    Relation,
    ValueFilter,
)
from .results import Context, Output

logger = logging.getLogger(__name__)


def compute(ctx: Context, result: Output) -> tuple[Relation, Relation]:
    """Return ``(errors, subset_errors)``.

    ``errors`` holds ``(loan, point)`` illegal accesses; ``subset_errors`` holds
    ``(origin1, origin2, point)`` subset relations between placeholder origins
    that the declared bounds do not allow.
    """
    start = time.perf_counter()

    origin_live_on_entry_rel = ctx.origin_live_on_entry
    cfg_edge_rel = ctx.cfg_edge
    killed_rel = ctx.killed
    known_contains = ctx.known_contains
    placeholder_origin = ctx.placeholder_origin
    placeholder_loan = ctx.placeholder_loan

    iteration = Iteration()

    subset = iteration.variable("subset")
    requires = iteration.variable("requires")
    borrow_live_at = iteration.variable("borrow_live_at")
    invalidates = iteration.variable("invalidates")

    subset_o1p = iteration.variable_indistinct("subset_o1p")
    subset_o2p = iteration.variable_indistinct("subset_o2p")
    requires_op = iteration.variable_indistinct("requires_op")

    origin_live_on_entry_var = iteration.variable("origin_live_on_entry")

    errors = iteration.variable("errors")
    subset_errors = iteration.variable("subset_errors")

    subset.extend(ctx.outlives)
    requires.extend(ctx.borrow_region)
    invalidates.extend(((loan, point), ()) for loan, point in ctx.invalidates)
    origin_live_on_entry_var.extend(
        ((origin, point), ()) for origin, point in origin_live_on_entry_rel
    )

    # Placeholder loans are contained by their placeholder origin at every CFG node.
    nodes = list(ctx.cfg_node)
    requires.extend(
        (origin, loan, node) for loan, origin in placeholder_loan for node in nodes
    )

    while iteration.changed():
        # Drop origins that are subsets of themselves.
        subset.retain_recent(lambda t: t[0] != t[1])

        subset_o1p.from_map(subset, lambda t: ((t[0], t[2]), t[1]))
        subset_o2p.from_map(subset, lambda t: ((t[1], t[2]), t[0]))
        requires_op.from_map(requires, lambda t: ((t[0], t[2]), t[1]))

        # subset(origin1, origin3, point) :-
        #   subset(origin1, origin2, point), subset(origin2, origin3, point).
        subset.from_join(
            subset_o2p,
            subset_o1p,
            lambda key, origin1, origin3: (origin1, origin3, key[1]),
        )

        # subset(origin1, origin2, point2) :-
        #   subset(origin1, origin2, point1), cfg_edge(point1, point2),
        #   origin_live_on_entry(origin1, point2),
        #   origin_live_on_entry(origin2, point2).
        subset.from_leapjoin(
            subset,
            (
                ExtendWith(cfg_edge_rel, lambda t: t[2]),
                ExtendWith(origin_live_on_entry_rel, lambda t: t[0]),
                ExtendWith(origin_live_on_entry_rel, lambda t: t[1]),
            ),
            lambda t, point2: (t[0], t[1], point2),
        )

        # requires(origin2, loan, point) :-
        #   requires(origin1, loan, point), subset(origin1, origin2, point).
        requires.from_join(
            requires_op,
            subset_o1p,
            lambda key, loan, origin2: (origin2, loan, key[1]),
        )

        # requires(origin, loan, point2) :-
        #   requires(origin, loan, point1), !killed(loan, point1),
        #   cfg_edge(point1, point2), origin_live_on_entry(origin, point2).
        requires.from_leapjoin(
            requires,
            (
                FilterAnti(killed_rel, lambda t: (t[1], t[2])),
                ExtendWith(cfg_edge_rel, lambda t: t[2]),
                ExtendWith(origin_live_on_entry_rel, lambda t: t[0]),
            ),
            lambda t, point2: (t[0], t[1], point2),
        )

        # borrow_live_at(loan, point) :-
        #   requires(origin, loan, point), origin_live_on_entry(origin, point).
        borrow_live_at.from_join(
            requires_op,
            origin_live_on_entry_var,
            lambda key, loan, _unit: ((loan, key[1]), ()),
        )

        # errors(loan, point) :- invalidates(loan, point), borrow_live_at(loan, point).
        errors.from_join(invalidates, borrow_live_at, lambda key, _a, _b: key)

        # subset_errors(origin1, origin2, point) :-
        #   requires(origin2, loan1, point), placeholder(origin2, _),
        #   placeholder(origin1, loan1), !known_contains(origin2, loan1).
        subset_errors.from_leapjoin(
            requires,
            (
                FilterWith(placeholder_origin, lambda t: (t[0], ())),
                ExtendWith(placeholder_loan, lambda t: t[1]),
                FilterAnti(known_contains, lambda t: (t[0], t[1])),
                ValueFilter(lambda t, origin1: t[0] != origin1),
            ),
            lambda t, origin1: (origin1, t[0], t[2]),
        )

    if result.dump_enabled:
        complete_subset = subset.complete()
        if any(origin1 == origin2 for origin1, origin2, _ in complete_subset):
            raise RuntimeError("unwanted subset symmetries")
        for origin1, origin2, location in complete_subset:
            result.subset.setdefault(location, {}).setdefault(origin1, set()).add(origin2)

        for origin, loan, location in requires.complete():
            result.restricts.setdefault(location, {}).setdefault(origin, set()).add(loan)

        for (loan, location), _ in borrow_live_at.complete():
            result.borrow_live_at.setdefault(location, []).append(loan)

    error_rel = errors.complete()
    subset_error_rel = subset_errors.complete()
    logger.info(
        "analysis done: %d `errors` tuples, %d `subset_errors` tuples, %.6fs",
        len(error_rel),
        len(subset_error_rel),
        time.perf_counter() - start,
    )
    return error_rel, subset_error_rel