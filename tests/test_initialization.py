import pytest

from polonius.datalog import Relation
from polonius.initialization import (
    InitializationContext,
    TransitivePaths,
    compute,
    compute_move_errors,
    compute_transitive_paths,
)
from polonius.results import Output


CHAIN = [("p0", "p1"), ("p1", "p2"), ("p2", "p3")]


def _paths(**kwargs):
    args = dict(
        child_path=[],
        path_assigned_at_base=[],
        path_moved_at_base=[],
        path_accessed_at_base=[],
        path_is_var=[],
    )
    args.update(kwargs)
    return compute_transitive_paths(**args)


def test_moves_extend_to_all_descendants():
    # "x.f" is a child of "x", "x.f.g" a child of "x.f".
    paths = _paths(
        child_path=[("x.f", "x"), ("x.f.g", "x.f")],
        path_moved_at_base=[("x", "p1")],
    )
    assert set(paths.path_moved_at) == {("x", "p1"), ("x.f", "p1"), ("x.f.g", "p1")}


def test_assignment_of_child_does_not_reach_parent():
    paths = _paths(
        child_path=[("x.f", "x")],
        path_assigned_at_base=[("x.f", "p1")],
    )
    assert set(paths.path_assigned_at) == {("x.f", "p1")}


def test_accesses_and_variable_roots_extend():
    paths = _paths(
        child_path=[("x.f", "x"), ("x.g", "x")],
        path_accessed_at_base=[("x", "p2")],
        path_is_var=[("x", "var_x")],
    )
    assert set(paths.path_accessed_at) == {("x", "p2"), ("x.f", "p2"), ("x.g", "p2")}
    assert set(paths.path_begins_with_var) == {
        ("x", "var_x"),
        ("x.f", "var_x"),
        ("x.g", "var_x"),
    }


def test_move_then_access_is_a_move_error():
    paths = _paths(
        path_assigned_at_base=[("x", "p0")],
        path_moved_at_base=[("x", "p1")],
        path_accessed_at_base=[("x", "p2")],
        path_is_var=[("x", "var_x")],
    )
    _, move_error = compute_move_errors(paths, CHAIN, Output())
    assert set(move_error) == {("x", "p2")}


def test_reinitialization_prevents_move_error():
    paths = _paths(
        path_assigned_at_base=[("x", "p0"), ("x", "p2")],
        path_moved_at_base=[("x", "p1")],
        path_accessed_at_base=[("x", "p3")],
        path_is_var=[("x", "var_x")],
    )
    _, move_error = compute_move_errors(paths, CHAIN, Output())
    assert len(move_error) == 0


def test_var_partly_initialized_until_moved():
    paths = _paths(
        path_assigned_at_base=[("x", "p0")],
        path_moved_at_base=[("x", "p2")],
        path_is_var=[("x", "var_x")],
    )
    var_init, _ = compute_move_errors(paths, CHAIN, Output())
    assert set(var_init) == {("var_x", "p0"), ("var_x", "p1")}


def test_move_of_child_keeps_variable_partly_initialized():
    paths = _paths(
        child_path=[("x.f", "x")],
        path_assigned_at_base=[("x", "p0")],
        path_moved_at_base=[("x.f", "p1")],
        path_is_var=[("x", "var_x")],
    )
    var_init, _ = compute_move_errors(paths, CHAIN, Output())
    points = {point for var, point in var_init if var == "var_x"}
    assert points == {"p0", "p1", "p2", "p3"}


def test_dump_records_maybe_initialized_paths():
    paths = TransitivePaths(
        path_moved_at=Relation([("x", "p2")]),
        path_assigned_at=Relation([("x", "p0")]),
        path_accessed_at=Relation(),
        path_begins_with_var=Relation([("x", "var_x")]),
    )
    output = Output(dump_enabled=True)
    compute_move_errors(paths, CHAIN, output)
    assert output.path_maybe_initialized_on_exit == {"p0": ["x"], "p1": ["x"]}
    assert set(output.path_maybe_uninitialized_on_exit) == {"p2", "p3"}


def test_no_dump_leaves_output_empty():
    paths = TransitivePaths(
        path_moved_at=Relation([("x", "p2")]),
        path_assigned_at=Relation([("x", "p0")]),
        path_accessed_at=Relation(),
        path_begins_with_var=Relation([("x", "var_x")]),
    )
    output = Output()
    compute_move_errors(paths, CHAIN, output)
    assert output.path_maybe_initialized_on_exit == {}
    assert output.path_maybe_uninitialized_on_exit == {}


@pytest.mark.parametrize("dump", [True, False])
def test_compute_full_pipeline(dump):
    ctx = InitializationContext(
        child_path=[("x.f", "x")],
        path_is_var=[("x", "var_x")],
        path_assigned_at_base=[("x", "p0")],
        path_moved_at_base=[("x", "p1")],
        path_accessed_at_base=[("x.f", "p2")],
    )
    output = Output(dump_enabled=dump)
    var_init, move_errors = compute(ctx, Relation(CHAIN), output)
    assert set(move_errors) == {("x.f", "p2")}
    assert set(var_init) == {("var_x", "p0")}
    if dump:
        assert output.var_maybe_partly_initialized_on_exit == {"p0": ["var_x"]}
    else:
        assert output.var_maybe_partly_initialized_on_exit == {}