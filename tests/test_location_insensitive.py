from polonius.datalog import Relation
from polonius.location_insensitive import compute
from polonius.results import Context, Output


def make_context(
    *,
    borrow_region=(),
    outlives=(),
    cfg_edge=(),
    origin_live=(),
    invalidates=(),
    killed=(),
):
    edges = Relation(cfg_edge)
    nodes = sorted({p for edge in edges for p in edge})
    return Context(
        origin_live_on_entry=Relation(origin_live),
        invalidates=Relation(invalidates),
        outlives=list(outlives),
        borrow_region=list(borrow_region),
        cfg_node=nodes,
        killed=Relation(killed),
        known_contains=Relation(),
        placeholder_origin=Relation(),
        placeholder_loan=Relation(),
        cfg_edge=edges,
    )


def test_empty_context_has_no_errors():
    assert len(compute(make_context(), Output())) == 0


def test_direct_borrow_invalidated_while_live():
    ctx = make_context(
        borrow_region=[("o0", "L0", 0)],
        cfg_edge=[(0, 1)],
        origin_live=[("o0", 1)],
        invalidates=[("L0", 1)],
    )
    assert compute(ctx, Output()) == Relation([("L0", 1)])


def test_no_error_where_origin_is_dead():
    ctx = make_context(
        borrow_region=[("o0", "L0", 0)],
        cfg_edge=[(0, 1), (1, 2)],
        origin_live=[("o0", 1)],
        invalidates=[("L0", 2)],
    )
    assert compute(ctx, Output()) == Relation()


def test_loan_flows_through_subset():
    ctx = make_context(
        borrow_region=[("o0", "L0", 0)],
        outlives=[("o0", "o1", 0)],
        cfg_edge=[(0, 1)],
        origin_live=[("o1", 1)],
        invalidates=[("L0", 1)],
    )
    assert compute(ctx, Output()) == Relation([("L0", 1)])


def test_kills_are_ignored():
    ctx = make_context(
        borrow_region=[("o0", "L0", 0)],
        cfg_edge=[(0, 1)],
        origin_live=[("o0", 1)],
        invalidates=[("L0", 1)],
        killed=[("L0", 0)],
    )
    assert ("L0", 1) in compute(ctx, Output())


def test_dump_records_anywhere_relations():
    ctx = make_context(
        borrow_region=[("o0", "L0", 0)],
        outlives=[("o0", "o1", 0), ("o1", "o2", 1)],
        cfg_edge=[(0, 1)],
    )
    output = Output(dump_enabled=True)
    compute(ctx, output)
    assert output.subset_anywhere == {"o0": {"o1"}, "o1": {"o2"}}
    assert output.restricts_anywhere == {
        "o0": {"L0"},
        "o1": {"L0"},
        "o2": {"L0"},
    }


def test_nothing_dumped_when_disabled():
    ctx = make_context(
        borrow_region=[("o0", "L0", 0)],
        outlives=[("o0", "o1", 0)],
    )
    output = Output()
    compute(ctx, output)
    assert output.subset_anywhere == {}
    assert output.restricts_anywhere == {}