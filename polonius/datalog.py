"""Semi-naive Datalog evaluation over sorted, deduplicated tuple relations."""

from __future__ import annotations

from dataclasses import dataclass
from itertools import chain
from typing import Any, Callable, Iterable


class Relation:
    """An immutable, sorted set of tuples.

    Relations used in joins and leapers hold ``(key, value)`` pairs.
    """

    __slots__ = ("elements", "_members", "_by_key")

    def __init__(self, elements: Iterable[Any] = ()) -> None:
        self.elements: tuple = tuple(sorted(set(elements)))
        self._members: frozenset | None = None
        self._by_key: dict | None = None

    def merge(self, other: Iterable[Any]) -> Relation:
        """Return the union of this relation and ``other``."""
        return Relation(chain(self.elements, other))

    def _member_set(self) -> frozenset:
        if self._members is None:
            self._members = frozenset(self.elements)
        return self._members

    def _index(self) -> dict:
        if self._by_key is None:
            index: dict = {}
            for key, value in self.elements:
                index.setdefault(key, []).append(value)
            self._by_key = {key: tuple(values) for key, values in index.items()}
        return self._by_key

    def _values(self, key: Any) -> tuple:
        return self._index().get(key, ())

    def __iter__(self):
        return iter(self.elements)

    def __len__(self) -> int:
        return len(self.elements)

    def __bool__(self) -> bool:
        return bool(self.elements)

    def __contains__(self, item: Any) -> bool:
        return item in self._member_set()

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Relation):
            return NotImplemented
        return self.elements == other.elements

    def __hash__(self) -> int:
        return hash(self.elements)

    def __repr__(self) -> str:
        return f"Relation({list(self.elements)!r})"


def _as_relation(data: Iterable[Any]) -> Relation:
    return data if isinstance(data, Relation) else Relation(data)


class _Leaper:
    """Base of the leapjoin participants."""

    def _accepts(self, tuple_: Any) -> bool:
        return True

    def _keeps(self, tuple_: Any, value: Any) -> bool:
        return True


@dataclass(frozen=True, eq=False)
class ExtendWith(_Leaper):
    """Proposes the values paired with ``key(tuple)`` in ``relation``."""

    relation: Relation
    key: Callable[[Any], Any]

    def _propose(self, tuple_: Any) -> tuple:
        return self.relation._values(self.key(tuple_))

    def _keeps(self, tuple_: Any, value: Any) -> bool:
        return (self.key(tuple_), value) in self.relation


@dataclass(frozen=True, eq=False)
class ExtendAnti(_Leaper):
    """Removes values paired with ``key(tuple)`` in ``relation``."""

    relation: Relation
    key: Callable[[Any], Any]

    def _keeps(self, tuple_: Any, value: Any) -> bool:
        return (self.key(tuple_), value) not in self.relation


@dataclass(frozen=True, eq=False)
class FilterWith(_Leaper):
    """Keeps source tuples whose ``key(tuple)`` pair is in ``relation``."""

    relation: Relation
    key: Callable[[Any], Any]

    def _accepts(self, tuple_: Any) -> bool:
        return self.key(tuple_) in self.relation


@dataclass(frozen=True, eq=False)
class FilterAnti(_Leaper):
    """Keeps source tuples whose ``key(tuple)`` pair is not in ``relation``."""

    relation: Relation
    key: Callable[[Any], Any]

    def _accepts(self, tuple_: Any) -> bool:
        return self.key(tuple_) not in self.relation


@dataclass(frozen=True, eq=False)
class ValueFilter(_Leaper):
    """Keeps proposed values for which ``predicate(tuple, value)`` holds."""

    predicate: Callable[[Any, Any], bool]

    def _keeps(self, tuple_: Any, value: Any) -> bool:
        return bool(self.predicate(tuple_, value))


def _join_into(left: Relation, right: Relation, logic: Callable, out: list) -> None:
    left_index = left._index()
    right_index = right._index()
    if len(left_index) <= len(right_index):
        for key, left_values in left_index.items():
            right_values = right_index.get(key)
            if right_values:
                out.extend(logic(key, a, b) for a in left_values for b in right_values)
    else:
        for key, right_values in right_index.items():
            left_values = left_index.get(key)
            if left_values:
                out.extend(logic(key, a, b) for a in left_values for b in right_values)


def join_relations(left: Iterable[Any], right: Iterable[Any], logic: Callable) -> Relation:
    """Join two relations of ``(key, value)`` pairs; ``logic(key, v1, v2)`` builds results."""
    out: list = []
    _join_into(_as_relation(left), _as_relation(right), logic, out)
    return Relation(out)


def leapjoin(tuples: Iterable[Any], leapers: Any, logic: Callable) -> Relation:
    """Extend each source tuple with the values all leapers agree on.

    ``leapers`` is a single leaper or a sequence of them; at least one must be
    an :class:`ExtendWith`. ``logic(tuple, value)`` builds results.
    """
    if isinstance(leapers, _Leaper):
        leapers = (leapers,)
    leapers = tuple(leapers)
    proposers = [leaper for leaper in leapers if isinstance(leaper, ExtendWith)]
    if not proposers:
        raise ValueError("a leapjoin needs at least one ExtendWith leaper")

    results = []
    for tuple_ in tuples:
        if not all(leaper._accepts(tuple_) for leaper in leapers):
            continue
        leader, values = min(
            ((leaper, leaper._propose(tuple_)) for leaper in proposers),
            key=lambda proposal: len(proposal[1]),
        )
        if not values:
            continue
        checks = [leaper for leaper in leapers if leaper is not leader]
        for value in values:
            if all(leaper._keeps(tuple_, value) for leaper in checks):
                results.append(logic(tuple_, value))
    return Relation(results)


def _parts(source: Variable | Relation) -> tuple[Relation, list[Relation]]:
    if isinstance(source, Variable):
        return source.recent, list(source.stable)
    return Relation(), [_as_relation(source)]


class Variable:
    """A monotonically growing relation evaluated semi-naively."""

    def __init__(self, name: str, distinct: bool = True) -> None:
        self.name = name
        self.distinct = distinct
        self.stable: list[Relation] = []
        self.recent = Relation()
        self.to_add: list[Relation] = []

    def extend(self, tuples: Iterable[Any]) -> None:
        """Queue tuples to be added in the next round."""
        self.insert(Relation(tuples))

    def insert(self, relation: Iterable[Any]) -> None:
        """Queue a relation to be added in the next round."""
        relation = _as_relation(relation)
        if relation:
            self.to_add.append(relation)

    def retain_recent(self, predicate: Callable[[Any], bool]) -> None:
        """Drop the recent tuples for which ``predicate`` is false."""
        self.recent = Relation(t for t in self.recent if predicate(t))

    def from_map(self, source: Variable, logic: Callable[[Any], Any]) -> None:
        self.insert(Relation(logic(t) for t in source.recent))

    def from_join(self, left: Variable | Relation, right: Variable | Relation, logic: Callable) -> None:
        """Add ``logic(key, v1, v2)`` for newly matching pairs of ``left`` and ``right``."""
        left_recent, left_stable = _parts(left)
        right_recent, right_stable = _parts(right)
        out: list = []
        for batch in right_stable:
            _join_into(left_recent, batch, logic, out)
        for batch in left_stable:
            _join_into(batch, right_recent, logic, out)
        _join_into(left_recent, right_recent, logic, out)
        self.insert(Relation(out))

    def from_antijoin(self, source: Variable, relation: Relation, logic: Callable) -> None:
        """Add ``logic(key, value)`` for recent pairs whose key is not in ``relation``."""
        relation = _as_relation(relation)
        self.insert(Relation(logic(k, v) for k, v in source.recent if k not in relation))

    def from_leapjoin(self, source: Variable, leapers: Any, logic: Callable) -> None:
        self.insert(leapjoin(source.recent, leapers, logic))

    def complete(self) -> Relation:
        """Return every tuple of the variable once it has reached a fixed point."""
        if self.recent or self.to_add:
            raise RuntimeError(f"variable {self.name!r} has not reached a fixed point")
        return Relation(chain.from_iterable(self.stable))

    def _changed(self) -> bool:
        if self.recent:
            recent = self.recent
            self.recent = Relation()
            while self.stable and len(self.stable[-1]) <= 2 * len(recent):
                recent = recent.merge(self.stable.pop())
            self.stable.append(recent)

        if self.to_add:
            to_add = self.to_add.pop()
            while self.to_add:
                to_add = to_add.merge(self.to_add.pop())
            if self.distinct and self.stable:
                to_add = Relation(
                    t for t in to_add if not any(t in batch for batch in self.stable)
                )
            self.recent = to_add

        return bool(self.recent)

    def __repr__(self) -> str:
        return f"Variable({self.name!r}, distinct={self.distinct})"


class Iteration:
    """A set of variables evaluated together until none changes."""

    def __init__(self) -> None:
        self._variables: list[Variable] = []

    def variable(self, name: str) -> Variable:
        """Create a variable whose new tuples are deduplicated against earlier ones."""
        variable = Variable(name, distinct=True)
        self._variables.append(variable)
        return variable

    def variable_indistinct(self, name: str) -> Variable:
        """Create a variable that does not filter out previously seen tuples."""
        variable = Variable(name, distinct=False)
        self._variables.append(variable)
        return variable

    def changed(self) -> bool:
        """Advance every variable one round; true while any has new tuples."""
        changed = False
        for variable in self._variables:
            changed = variable._changed() or changed
        return changed