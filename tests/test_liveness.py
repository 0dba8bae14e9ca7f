from polonius.datalog import Relation
from polonius.liveness import (
    LivenessContext,
    compute_live_origins,
    make_universal_regions_live,
)
from polonius.results import Output

CHAIN = [("p0", "p1"), ("p1", "p2")]


def test_make_universal_regions_live_covers_every_node():
    live = [("r0", "p0")]
    result = make_universal_regions_live(live, {"p1", "p2"}, ["u1", "u2"])
    assert result is live
    assert set(live) == {
        ("r0", "p0"),
        ("u1", "p1"),
        ("u1", "p2"),
        ("u2", "p1"),
        ("u2", "p2"),
    }
    assert len(live) == 5


def test_make_universal_regions_live_without_regions():
    live = []
    make_universal_regions_live(live, {"p1"}, [])
    assert live == []


def test_use_liveness_flows_backwards_until_definition():
    ctx = LivenessContext(
        var_used_at=[("v", "p2")],
        var_defined_at=[("v", "p0")],
        use_of_var_derefs_origin=[("v", "r")],
    )
    live = compute_live_origins(ctx, Relation(CHAIN), Relation(), Output())
    assert set(live) == {("r", "p1"), ("r", "p2")}


def test_use_liveness_without_definition_reaches_entry():
    ctx = LivenessContext(
        var_used_at=[("v", "p2")],
        use_of_var_derefs_origin=[("v", "r")],
    )
    live = compute_live_origins(ctx, CHAIN, [], Output())
    assert set(live) == {("r", "p0"), ("r", "p1"), ("r", "p2")}


def test_drop_liveness_requires_initialization():
    ctx = LivenessContext(
        var_dropped_at=[("d", "p2")],
        drop_of_var_derefs_origin=[("d", "q")],
    )
    live = compute_live_origins(ctx, CHAIN, Relation([("d", "p1")]), Output())
    assert set(live) == {("q", "p1"), ("q", "p2")}


def test_drop_of_uninitialized_variable_keeps_nothing_live():
    ctx = LivenessContext(
        var_dropped_at=[("d", "p2")],
        drop_of_var_derefs_origin=[("d", "q")],
    )
    live = compute_live_origins(ctx, CHAIN, Relation(), Output())
    assert live == []


def test_use_origin_not_made_live_by_drop_facts():
    ctx = LivenessContext(
        var_dropped_at=[("d", "p2")],
        use_of_var_derefs_origin=[("d", "r")],
    )
    live = compute_live_origins(ctx, CHAIN, Relation([("d", "p1")]), Output())
    assert live == []


def test_dump_records_variable_liveness():
    ctx = LivenessContext(
        var_used_at=[("v", "p2")],
        var_defined_at=[("v", "p1")],
        var_dropped_at=[("d", "p2")],
        use_of_var_derefs_origin=[("v", "r")],
        drop_of_var_derefs_origin=[("d", "q")],
    )
    output = Output(dump_enabled=True)
    compute_live_origins(ctx, CHAIN, Relation([("d", "p1")]), output)
    assert output.var_live_on_entry == {"p2": ["v"]}
    assert {p: sorted(v) for p, v in output.var_drop_live_on_entry.items()} == {
        "p1": ["d"],
        "p2": ["d"],
    }


def test_no_dump_leaves_output_empty():
    ctx = LivenessContext(var_used_at=[("v", "p2")], use_of_var_derefs_origin=[("v", "r")])
    output = Output()
    live = compute_live_origins(ctx, CHAIN, Relation(), output)
    assert ("r", "p2") in live
    assert output.var_live_on_entry == {}
    assert output.var_drop_live_on_entry == {}