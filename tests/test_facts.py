from dataclasses import asdict, fields, replace

from polonius.facts import AllFacts


def test_defaults_are_empty():
    facts = AllFacts()
    assert all(getattr(facts, f.name) == [] for f in fields(AllFacts))


def test_default_lists_are_independent():
    first = AllFacts()
    second = AllFacts()
    first.cfg_edge.append((0, 1))
    assert second.cfg_edge == []
    assert first.cfg_edge == [(0, 1)]


def test_keyword_construction_keeps_other_fields_empty():
    facts = AllFacts(borrow_region=[("a", "L0", 1)], universal_region=["a"])
    assert facts.borrow_region == [("a", "L0", 1)]
    assert facts.universal_region == ["a"]
    assert facts.outlives == []
    assert facts.placeholder == []


def test_asdict_round_trip():
    facts = AllFacts(
        cfg_edge=[(0, 1), (1, 2)],
        killed=[(5, 1)],
        known_subset=[(1, 2)],
    )
    rebuilt = AllFacts(**asdict(facts))
    assert rebuilt == facts


def test_replace_changes_only_one_field():
    facts = AllFacts(invalidates=[(3, 7)])
    changed = replace(facts, var_used_at=[(1, 3)])
    assert changed.invalidates == [(3, 7)]
    assert changed.var_used_at == [(1, 3)]
    assert facts.var_used_at == []