"""The optimized, location-sensitive borrow check.

Subset relations are only carried across a CFG edge when both origins stay
live; when an origin dies on an edge, the loans it requires and the live
origins it can reach are worked out just for that edge.
"""

from __future__ import annotations

import logging
import time

from .datalog import ExtendAnti, ExtendWith, FilterAnti, Iteration, Relation
from .results import Context, Output

logger = logging.getLogger(__name__)


def compute(ctx: Context, result: Output) -> Relation:
    """Return the ``(loan, point)`` pairs where a live loan is invalidated."""
    start = time.perf_counter()

    origin_live_on_entry_rel = ctx.origin_live_on_entry
    cfg_edge_rel = ctx.cfg_edge
    killed_rel = ctx.killed

    iteration = Iteration()

    invalidates = iteration.variable("invalidates")
    # Needed as a variable for joins and as a relation for antijoins and leapers.
    origin_live_on_entry_var = iteration.variable("origin_live_on_entry")
    borrow_region_op = iteration.variable("borrow_region_op")

    # ((origin1, point), origin2): origin1 is a subset of origin2 at point.
    subset_o1p = iteration.variable("subset_o1p")
    # ((origin, point), loan): things with origin may depend on loan at point.
    requires_op = iteration.variable("requires_op")
    # ((loan, point), ()): the loan's restrictions are enforced at point.
    borrow_live_at = iteration.variable("borrow_live_at")

    # ((origin2, point1, point2), origin1): on edge point1 -> point2, origin1 <= origin2
    # at point1, origin1 is live at point2 and origin2 is dead there.
    live_to_dying_regions_o2pq = iteration.variable("live_to_dying_regions_o2pq")
    # ((origin, point1, point2), loan): origin requires loan but dies on the edge.
    dying_region_requires = iteration.variable("dying_region_requires")
    # ((origin, point1), point2): dying origins whose reachable origins are wanted.
    dying_can_reach_origins = iteration.variable("dying_can_reach_origins")
    # ((origin2, point2), (origin1, point1)): origin1, dead at point2, reaches origin2.
    dying_can_reach_o2q = iteration.variable("dying_can_reach")
    dying_can_reach_1 = iteration.variable_indistinct("dying_can_reach_1")
    # ((origin1, point1, point2), origin2): as above, with origin2 live at point2.
    dying_can_reach_live = iteration.variable("dying_can_reach_live")

    # ((origin, point), loan): a borrow region not live on entry to its point.
    dead_borrow_region_can_reach_root = iteration.variable(
        "dead_borrow_region_can_reach_root"
    )
    dead_borrow_region_can_reach_dead = iteration.variable(
        "dead_borrow_region_can_reach_dead"
    )
    dead_borrow_region_can_reach_dead_1 = iteration.variable_indistinct(
        "dead_borrow_region_can_reach_dead_1"
    )

    errors = iteration.variable("errors")

    borrow_region_op.extend(
        ((origin, point), loan) for origin, loan, point in ctx.borrow_region
    )
    invalidates.extend(((loan, point), ()) for loan, point in ctx.invalidates)
    origin_live_on_entry_var.extend(
        ((origin, point), ()) for origin, point in origin_live_on_entry_rel
    )

    # subset(origin1, origin2, point) :- outlives(origin1, origin2, point).
    subset_o1p.extend(
        ((origin1, point), origin2) for origin1, origin2, point in ctx.outlives
    )

    # requires(origin, loan, point) :- borrow_region(origin, loan, point).
    requires_op.extend(((origin, point), loan) for origin, loan, point in ctx.borrow_region)

    def point1_of(t):
        return t[0][1]

    def origin_of(t):
        return t[0][0]

    while iteration.changed():
        # Drop origins that are subsets of themselves.
        subset_o1p.retain_recent(lambda t: t[0][0] != t[1])

        # live_to_dying_regions(origin1, origin2, point1, point2) :-
        #   subset(origin1, origin2, point1), cfg_edge(point1, point2),
        #   origin_live_on_entry(origin1, point2),
        #   !origin_live_on_entry(origin2, point2).
        live_to_dying_regions_o2pq.from_leapjoin(
            subset_o1p,
            (
                ExtendWith(cfg_edge_rel, point1_of),
                ExtendWith(origin_live_on_entry_rel, origin_of),
                ExtendAnti(origin_live_on_entry_rel, lambda t: t[1]),
            ),
            lambda t, point2: ((t[1], t[0][1], point2), t[0][0]),
        )

        # dying_region_requires((origin, point1, point2), loan) :-
        #   requires(origin, loan, point1), !killed(loan, point1),
        #   cfg_edge(point1, point2), !origin_live_on_entry(origin, point2).
        dying_region_requires.from_leapjoin(
            requires_op,
            (
                FilterAnti(killed_rel, lambda t: (t[1], t[0][1])),
                ExtendWith(cfg_edge_rel, point1_of),
                ExtendAnti(origin_live_on_entry_rel, origin_of),
            ),
            lambda t, point2: ((t[0][0], t[0][1], point2), t[1]),
        )

        # dying_can_reach_origins(origin2, point1, point2) :-
        #   live_to_dying_regions(_, origin2, point1, point2).
        dying_can_reach_origins.from_map(
            live_to_dying_regions_o2pq, lambda t: ((t[0][0], t[0][1]), t[0][2])
        )

        # dying_can_reach_origins(origin, point1, point2) :-
        #   dying_region_requires(origin, point1, point2, _loan).
        dying_can_reach_origins.from_map(
            dying_region_requires, lambda t: ((t[0][0], t[0][1]), t[0][2])
        )

        # dying_can_reach(origin1, origin2, point1, point2) :-
        #   dying_can_reach_origins(origin1, point1, point2),
        #   subset(origin1, origin2, point1).
        dying_can_reach_o2q.from_join(
            dying_can_reach_origins,
            subset_o1p,
            lambda key, point2, origin2: ((origin2, point2), key),
        )

        # dying_can_reach(origin1, origin3, point1, point2) :-
        #   dying_can_reach(origin1, origin2, point1, point2),
        #   !origin_live_on_entry(origin2, point2),
        #   subset(origin2, origin3, point1).
        dying_can_reach_1.from_antijoin(
            dying_can_reach_o2q,
            origin_live_on_entry_rel,
            lambda key, value: ((key[0], value[1]), (value[0], key[1])),
        )
        dying_can_reach_o2q.from_join(
            dying_can_reach_1,
            subset_o1p,
            lambda key, value, origin3: ((origin3, value[1]), (value[0], key[1])),
        )

        # dying_can_reach_live(origin1, origin2, point1, point2) :-
        #   dying_can_reach(origin1, origin2, point1, point2),
        #   origin_live_on_entry(origin2, point2).
        dying_can_reach_live.from_join(
            dying_can_reach_o2q,
            origin_live_on_entry_var,
            lambda key, value, _unit: ((value[0], value[1], key[1]), key[0]),
        )

        # subset(origin1, origin2, point2) :-
        #   subset(origin1, origin2, point1), cfg_edge(point1, point2),
        #   origin_live_on_entry(origin1, point2),
        #   origin_live_on_entry(origin2, point2).
        subset_o1p.from_leapjoin(
            subset_o1p,
            (
                ExtendWith(cfg_edge_rel, point1_of),
                ExtendWith(origin_live_on_entry_rel, origin_of),
                ExtendWith(origin_live_on_entry_rel, lambda t: t[1]),
            ),
            lambda t, point2: ((t[0][0], point2), t[1]),
        )

        # subset(origin1, origin3, point2) :-
        #   live_to_dying_regions(origin1, origin2, point1, point2),
        #   dying_can_reach_live(origin2, origin3, point1, point2).
        subset_o1p.from_join(
            live_to_dying_regions_o2pq,
            dying_can_reach_live,
            lambda key, origin1, origin3: ((origin1, key[2]), origin3),
        )

        # requires(origin2, loan, point2) :-
        #   dying_region_requires(origin1, loan, point1, point2),
        #   dying_can_reach_live(origin1, origin2, point1, point2).
        requires_op.from_join(
            dying_region_requires,
            dying_can_reach_live,
            lambda key, loan, origin2: ((origin2, key[2]), loan),
        )

        # requires(origin, loan, point2) :-
        #   requires(origin, loan, point1), !killed(loan, point1),
        #   cfg_edge(point1, point2), origin_live_on_entry(origin, point2).
        requires_op.from_leapjoin(
            requires_op,
            (
                FilterAnti(killed_rel, lambda t: (t[1], t[0][1])),
                ExtendWith(cfg_edge_rel, point1_of),
                ExtendWith(origin_live_on_entry_rel, origin_of),
            ),
            lambda t, point2: ((t[0][0], point2), t[1]),
        )

        # dead_borrow_region_can_reach_root((origin, point), loan) :-
        #   borrow_region(origin, loan, point), !origin_live_on_entry(origin, point).
        dead_borrow_region_can_reach_root.from_antijoin(
            borrow_region_op,
            origin_live_on_entry_rel,
            lambda key, loan: (key, loan),
        )

        # dead_borrow_region_can_reach_dead((origin, point), loan) :-
        #   dead_borrow_region_can_reach_root((origin, point), loan).
        dead_borrow_region_can_reach_dead.from_map(
            dead_borrow_region_can_reach_root, lambda t: t
        )

        # dead_borrow_region_can_reach_dead((origin2, point), loan) :-
        #   dead_borrow_region_can_reach_dead(origin1, loan, point),
        #   subset(origin1, origin2, point),
        #   !origin_live_on_entry(origin2, point).
        dead_borrow_region_can_reach_dead_1.from_join(
            dead_borrow_region_can_reach_dead,
            subset_o1p,
            lambda key, loan, origin2: ((origin2, key[1]), loan),
        )
        dead_borrow_region_can_reach_dead.from_antijoin(
            dead_borrow_region_can_reach_dead_1,
            origin_live_on_entry_rel,
            lambda key, loan: (key, loan),
        )

        # borrow_live_at(loan, point) :-
        #   requires(origin, loan, point), origin_live_on_entry(origin, point).
        borrow_live_at.from_join(
            requires_op,
            origin_live_on_entry_var,
            lambda key, loan, _unit: ((loan, key[1]), ()),
        )

        # borrow_live_at(loan, point) :-
        #   dead_borrow_region_can_reach_dead(origin1, loan, point),
        #   subset(origin1, origin2, point),
        #   origin_live_on_entry(origin2, point).
        borrow_live_at.from_join(
            dead_borrow_region_can_reach_dead_1,
            origin_live_on_entry_var,
            lambda key, loan, _unit: ((loan, key[1]), ()),
        )

        # errors(loan, point) :- invalidates(loan, point), borrow_live_at(loan, point).
        errors.from_join(invalidates, borrow_live_at, lambda key, _a, _b: key)

    if result.dump_enabled:
        complete_subset = subset_o1p.complete()
        if any(origin1 == origin2 for (origin1, _), origin2 in complete_subset):
            raise RuntimeError("unwanted subset symmetries")
        for (origin1, location), origin2 in complete_subset:
            result.subset.setdefault(location, {}).setdefault(origin1, set()).add(origin2)

        for (origin, location), loan in requires_op.complete():
            result.restricts.setdefault(location, {}).setdefault(origin, set()).add(loan)

        for (loan, location), _ in borrow_live_at.complete():
            result.borrow_live_at.setdefault(location, []).append(loan)

    error_rel = errors.complete()
    logger.info(
        "errors is complete: %d tuples, %.6fs",
        len(error_rel),
        time.perf_counter() - start,
    )
    return error_rel