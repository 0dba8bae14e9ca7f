# polonius

A borrow checking engine that works on *facts*: tuples describing a
function's control-flow graph, loans, origins, variables and move paths.
From these facts it computes illegal accesses to borrowed data, illegal
subset relations between placeholder origins, and moves out of
possibly-uninitialized paths.

The analysis is a set of Datalog rules evaluated to a fixed point with a
small semi-naive evaluator (`polonius.datalog`).

## Installation

```
pip install .
```

The package has no runtime dependencies. Install the `test` extra to run
the tests with pytest.

## Usage

Facts are gathered in an `AllFacts` instance (`polonius.facts`). Atoms
(origins, loans, points, variables, paths) may be any hashable values that
can be ordered among their own kind, such as integers or strings.

```python
from polonius.facts import AllFacts
from polonius.results import Algorithm
from polonius.analysis import compute

facts = AllFacts()
facts.cfg_edge = [(0, 1), (1, 2)]
facts.borrow_region = [("r", "L0", 0)]     # (origin, loan, point)
facts.var_used_at = [("v", 2)]             # (variable, point)
facts.use_of_var_derefs_origin = [("v", "r")]
facts.invalidates = [(1, "L0")]            # (point, loan)

output = compute(facts, Algorithm.NAIVE, dump_enabled=True)
print(output.errors_at(1))            # ['L0']
print(output.borrows_in_scope_at(1))  # ['L0']
```

`compute(all_facts, algorithm, dump_enabled=False)` also accepts the
algorithm as a name, e.g. `compute(facts, "datafrogopt")`.

### Algorithms

`Algorithm` (in `polonius.results`) selects the variant.
`Algorithm.variants()` lists the names, and `Algorithm.from_str` parses
them without regard to case, raising `ValueError` for anything else:

| Name                  | Meaning                                                            |
|-----------------------|--------------------------------------------------------------------|
| `Naive`               | Simple rules, slower to run; also reports subset errors            |
| `DatafrogOpt`         | Optimized rules computing the same loan errors                     |
| `LocationInsensitive` | Fast and imprecise: may report false positives, never misses one   |
| `Compare`             | Runs `Naive` and `DatafrogOpt`; raises `polonius.analysis.AlgorithmMismatchError` if they disagree |
| `Hybrid`              | `LocationInsensitive` pre-pass, then `DatafrogOpt` only if it found potential errors |

The individual variants can also be run directly on a prepared
`Context` through `polonius.naive.compute`,
`polonius.datafrog_opt.compute` and
`polonius.location_insensitive.compute`.

### Output

`Output` holds, keyed by point:

- `errors`: loans invalidated while live (`errors_at(point)`),
- `subset_errors`: pairs of placeholder origins related without a known bound (`Naive` only),
- `move_errors`: paths accessed while possibly moved out.

With `dump_enabled=True` it also keeps intermediate relations for
inspection: `borrows_in_scope_at`, `restricts_at`, `regions_live_at`,
`subsets_at`, the `LocationInsensitive` maps `subset_anywhere` and
`restricts_anywhere`, `known_contains`, and the liveness and
initialization maps. `restricts_at`, `regions_live_at` and `subsets_at`
raise `RuntimeError` when dumping is disabled.

### Helpers

- `polonius.results.compare_errors(a, b)` returns true when two
  point-to-loans maps differ, logging each difference.
- `polonius.analysis.compute_known_contains(known_subset, placeholder)`
  gives the placeholder loans each placeholder origin transitively contains.
- `polonius.initialization` and `polonius.liveness` expose the
  initialization and origin-liveness steps on their own.

## What it does not do

The package works only on facts given to it in Python. It does not
extract facts from source code, does not read fact files from disk, and
has no command-line tool.