"""Entry point of the borrow analysis: prepares the shared inputs and runs a variant."""

from __future__ import annotations

import logging
from typing import Any, Iterable

from . import datafrog_opt, initialization, liveness, location_insensitive, naive
from .datalog import Iteration, Relation
from .facts import AllFacts
from .results import Algorithm, Context, Output, compare_errors

logger = logging.getLogger(__name__)


class AlgorithmMismatchError(RuntimeError):
    """The naive and the optimized variants reported different errors."""


def compute_known_contains(
    known_subset: Iterable[Any], placeholder: Iterable[Any]
) -> Relation:
    """Return the ``(origin, loan)`` placeholder loans each placeholder origin contains.

    This is the transitive closure of ``known_subset`` applied to the
    placeholder loans.
    """
    known_subset_rel = known_subset if isinstance(known_subset, Relation) else Relation(known_subset)
    iteration = Iteration()
    known_contains = iteration.variable("known_contains")

    # known_contains(origin, loan) :- placeholder(origin, loan).
    known_contains.extend(placeholder)

    while iteration.changed():
        # known_contains(origin2, loan) :-
        #   known_contains(origin1, loan), known_subset(origin1, origin2).
        known_contains.from_join(
            known_contains,
            known_subset_rel,
            lambda _origin1, loan, origin2: (origin2, loan),
        )

    return known_contains.complete()


def _group_by_point(errors: Iterable[Any]) -> dict:
    grouped: dict = {}
    for loan, point in errors:
        grouped.setdefault(point, []).append(loan)
    return grouped


def compute(
    all_facts: AllFacts, algorithm: Algorithm | str, dump_enabled: bool = False
) -> Output:
    """Run the borrow analysis on ``all_facts`` with the chosen variant."""
    if isinstance(algorithm, str):
        algorithm = Algorithm.from_str(algorithm)

    result = Output(dump_enabled=dump_enabled)
    cfg_edge = Relation(all_facts.cfg_edge)

    # 1) Initialization
    initialization_ctx = initialization.InitializationContext(
        child_path=list(all_facts.child_path),
        path_is_var=list(all_facts.path_is_var),
        path_assigned_at_base=list(all_facts.path_assigned_at_base),
        path_moved_at_base=list(all_facts.path_moved_at_base),
        path_accessed_at_base=list(all_facts.path_accessed_at_base),
    )
    var_maybe_partly_initialized_on_exit, move_errors = initialization.compute(
        initialization_ctx, cfg_edge, result
    )
    for path, location in move_errors:
        result.move_errors.setdefault(location, []).append(path)

    # 2) Liveness
    liveness_ctx = liveness.LivenessContext(
        var_used_at=list(all_facts.var_used_at),
        var_defined_at=list(all_facts.var_defined_at),
        var_dropped_at=list(all_facts.var_dropped_at),
        use_of_var_derefs_origin=list(all_facts.use_of_var_derefs_origin),
        drop_of_var_derefs_origin=list(all_facts.drop_of_var_derefs_origin),
    )
    origin_live_on_entry = liveness.compute_live_origins(
        liveness_ctx, cfg_edge, var_maybe_partly_initialized_on_exit, result
    )

    cfg_node = sorted({point for edge in cfg_edge for point in edge})
    liveness.make_universal_regions_live(
        origin_live_on_entry, cfg_node, all_facts.universal_region
    )

    # 3) Borrow checking
    known_subset = Relation(all_facts.known_subset)
    ctx = Context(
        origin_live_on_entry=Relation(origin_live_on_entry),
        invalidates=Relation((loan, point) for point, loan in all_facts.invalidates),
        outlives=list(all_facts.outlives),
        borrow_region=list(all_facts.borrow_region),
        cfg_node=cfg_node,
        killed=Relation(all_facts.killed),
        known_contains=compute_known_contains(known_subset, all_facts.placeholder),
        placeholder_origin=Relation((origin, ()) for origin in all_facts.universal_region),
        placeholder_loan=Relation((loan, origin) for origin, loan in all_facts.placeholder),
        cfg_edge=cfg_edge,
    )

    if algorithm is Algorithm.LOCATION_INSENSITIVE:
        errors = location_insensitive.compute(ctx, result)
    elif algorithm is Algorithm.NAIVE:
        errors, subset_errors = naive.compute(ctx, result)
        for origin1, origin2, location in subset_errors:
            result.subset_errors.setdefault(location, set()).add((origin1, origin2))
    elif algorithm is Algorithm.DATAFROG_OPT:
        errors = datafrog_opt.compute(ctx, result)
    elif algorithm is Algorithm.HYBRID:
        # The location-insensitive pre-pass finds no subset errors, so none are
        # checked here either.
        potential_errors = location_insensitive.compute(ctx, result)
        if not potential_errors:
            errors = potential_errors
        else:
            ctx.potential_errors = frozenset(loan for loan, _ in potential_errors)
            errors = datafrog_opt.compute(ctx, result)
    elif algorithm is Algorithm.COMPARE:
        naive_errors, _ = naive.compute(ctx, result)
        opt_errors = datafrog_opt.compute(ctx, result)
        if compare_errors(_group_by_point(naive_errors), _group_by_point(opt_errors)):
            raise AlgorithmMismatchError(
                "The errors reported by the naive algorithm differ from the errors "
                "reported by the optimized algorithm. See the error log for details."
            )
        logger.debug("Naive and optimized algorithms reported the same errors.")
        errors = naive_errors
    else:
        raise ValueError(f"unknown algorithm: {algorithm!r}")

    for loan, location in errors:
        result.errors.setdefault(location, []).append(loan)

    if dump_enabled:
        for origin, location in ctx.origin_live_on_entry:
            result.origin_live_on_entry.setdefault(location, []).append(origin)
        for origin, loan in ctx.known_contains:
            result.known_contains.setdefault(origin, set()).add(loan)

    return result