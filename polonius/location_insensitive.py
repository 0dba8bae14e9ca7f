"""Location-insensitive borrow check: fast, but may report false positives."""

from __future__ import annotations

import logging
import time

from .datalog import ExtendWith, Iteration, Relation
from .results import Context, Output

logger = logging.getLogger(__name__)


def compute(ctx: Context, result: Output) -> Relation:
    """Return the ``(loan, point)`` pairs that may be errors.

    Subset and requires relations are computed without regard to points, so
    every real error is reported, along with possibly some spurious ones.
    """
    start = time.perf_counter()

    origin_live_on_entry = ctx.origin_live_on_entry
    invalidates = ctx.invalidates

    iteration = Iteration()
    subset = iteration.variable("subset")
    requires = iteration.variable("requires")
    potential_errors = iteration.variable("potential_errors")

    # subset(origin1, origin2) :- outlives(origin1, origin2, _point).
    subset.extend((origin1, origin2) for origin1, origin2, _point in ctx.outlives)

    # requires(origin, loan) :- borrow_region(origin, loan, _point).
    requires.extend((origin, loan) for origin, loan, _point in ctx.borrow_region)

    while iteration.changed():
        # requires(origin2, loan) :- requires(origin1, loan), subset(origin1, origin2).
        requires.from_join(
            requires,
            subset,
            lambda _origin1, loan, origin2: (origin2, loan),
        )

        # potential_errors(loan, point) :-
        #   requires(origin, loan),
        #   origin_live_on_entry(origin, point),
        #   invalidates(loan, point).
        potential_errors.from_leapjoin(
            requires,
            (
                ExtendWith(origin_live_on_entry, lambda t: t[0]),
                ExtendWith(invalidates, lambda t: t[1]),
            ),
            lambda t, point: (t[1], point),
        )

    if result.dump_enabled:
        for origin1, origin2 in subset.complete():
            result.subset_anywhere.setdefault(origin1, set()).add(origin2)
        for origin, loan in requires.complete():
            result.restricts_anywhere.setdefault(origin, set()).add(loan)

    errors = potential_errors.complete()
    logger.info(
        "potential_errors is complete: %d tuples, %.6fs",
        len(errors),
        time.perf_counter() - start,
    )
    return errors