"""1D cellular automaton simulation engine with arbitrary neighbourhoods and state counts."""

import numpy as np
from dataclasses import dataclass
from typing import Dict, List, Optional, Sequence, Tuple, Union

from .errors import InvalidRule, InvalidState, OutOfRange


DEFAULT_NEIGHBOURHOOD = (-1, 0, 1)

# Symbols for writing states and rule tables in base k
DIGITS = "0123456789abcdefghijklmnopqrstuvwxyz"


def decimal_to_base_n(decimal: int, base: int) -> List[int]:
    """
    Convert a non-negative integer to its base-`base` digits, most significant first.

    The result has the minimal number of digits, so 0 converts to [0].
    """
    if base < 2:
        raise ValueError(f"base must be at least 2, got {base}")
    if decimal < 0:
        raise ValueError(f"decimal must be non-negative, got {decimal}")

    digits = []
    while True:
        decimal, digit = divmod(decimal, base)
        digits.append(digit)
        if decimal == 0:
            break
    return digits[::-1]


def decimal_to_rule_table(decimal: int, neighbourhood_size: int, num_states: int) -> np.ndarray:
    """
    Expand a rule identifier into its lookup table of num_states**neighbourhood_size entries.

    The table is the identifier written in base num_states, left-padded with zeros.
    Identifiers >= num_states**(num_states**neighbourhood_size) raise OutOfRange.
    """
    size = num_states ** neighbourhood_size
    if decimal < 0:
        raise OutOfRange(f"Rule identifier must be non-negative, got {decimal}")

    digits = decimal_to_base_n(decimal, num_states)
    # More digits than table entries means decimal >= k^(k^n)
    if len(digits) > size:
        raise OutOfRange(
            f"{num_states} states with a neighbourhood of {neighbourhood_size} "
            f"cannot represent rule {decimal}"
        )

    table = np.zeros(size, dtype=np.min_scalar_type(num_states - 1))
    table[size - len(digits):] = digits
    return table


def neighbourhood_index(states, num_states: int) -> Union[int, np.ndarray]:
    """
    Read neighbourhood states as a base-num_states number, first state most significant.

    A 1-D sequence of n states gives a single int. A 2-D array of shape (n, m)
    gives the m indices of m neighbourhoods at once.
    """
    digits = np.asarray(states)
    if digits.size and (digits.min() < 0 or digits.max() >= num_states):
        raise ValueError(f"Neighbourhood states must lie in [0, {num_states})")

    if digits.ndim <= 1:
        index = 0
        for digit in digits.reshape(-1).tolist():
            index = index * num_states + int(digit)
        return index

    index = np.zeros(digits.shape[1:], dtype=np.int64)
    for row in digits:
        index = index * num_states + row
    return index


def _as_int_tuple(values, what: str) -> Tuple[int, ...]:
    arr = np.asarray(values)
    if arr.ndim != 1 or (arr.size and not np.issubdtype(arr.dtype, np.integer)):
        raise InvalidRule(f"{what} must be a flat sequence of integers")
    return tuple(int(v) for v in arr.tolist())


@dataclass(frozen=True)
class Rule:
    """Transition rule: neighbourhood offsets, number of states and the full lookup table."""
    neighbourhood: Tuple[int, ...]
    num_states: int
    table: Tuple[int, ...]

    def __post_init__(self):
        if isinstance(self.num_states, bool) or not isinstance(self.num_states, (int, np.integer)):
            raise InvalidRule(f"Number of states must be an integer, got {self.num_states!r}")
        if self.num_states < 2:
            raise InvalidRule(f"Number of states must be at least 2, got {self.num_states}")

        neighbourhood = _as_int_tuple(self.neighbourhood, "Neighbourhood")
        if not neighbourhood:
            raise InvalidRule("Neighbourhood must contain at least one offset")
        table = _as_int_tuple(self.table, "Rule table")

        # Frozen dataclass: normalise fields in place
        object.__setattr__(self, "neighbourhood", neighbourhood)
        object.__setattr__(self, "num_states", int(self.num_states))
        object.__setattr__(self, "table", table)

        if len(table) != self.size:
            raise InvalidRule(
                f"Rule table needs {self.size} entries for {self.num_states} states "
                f"and a neighbourhood of {len(neighbourhood)}, got {len(table)}"
            )
        bad = [v for v in table if not 0 <= v < self.num_states]
        if bad:
            raise InvalidRule(f"Rule table entries must lie in [0, {self.num_states}), got {bad[0]}")

    @classmethod
    def from_table(cls, neighbourhood: Sequence[int], num_states: int, table: Sequence[int]) -> "Rule":
        return cls(neighbourhood=tuple(neighbourhood), num_states=num_states, table=tuple(table))

    @classmethod
    def from_decimal(cls, neighbourhood: Sequence[int], num_states: int, decimal: int) -> "Rule":
        """Build a rule from its identifier (table read most-significant entry first)."""
        neighbourhood = tuple(neighbourhood)
        if num_states < 2:
            raise InvalidRule(f"Number of states must be at least 2, got {num_states}")
        table = decimal_to_rule_table(decimal, len(neighbourhood), num_states)
        return cls.from_table(neighbourhood, num_states, table)

    @classmethod
    def from_wolfram(
        cls,
        code: int,
        neighbourhood: Sequence[int] = DEFAULT_NEIGHBOURHOOD,
        num_states: int = 2,
    ) -> "Rule":
        """Build a rule from its Wolfram code, where table entry i has place value k**i."""
        neighbourhood = tuple(neighbourhood)
        if num_states < 2:
            raise InvalidRule(f"Number of states must be at least 2, got {num_states}")
        table = decimal_to_rule_table(code, len(neighbourhood), num_states)
        return cls.from_table(neighbourhood, num_states, table[::-1])

    @classmethod
    def random(
        cls,
        neighbourhood: Sequence[int] = DEFAULT_NEIGHBOURHOOD,
        num_states: int = 2,
        rng: Optional[np.random.Generator] = None,
    ) -> "Rule":
        """Generate a random rule."""
        if rng is None:
            rng = np.random.default_rng()
        size = num_states ** len(neighbourhood)
        return cls.from_table(neighbourhood, num_states, rng.integers(0, num_states, size))

    @property
    def size(self) -> int:
        """Number of neighbourhood configurations, k**n."""
        return self.num_states ** len(self.neighbourhood)

    @property
    def rule_count(self) -> int:
        """Number of distinct rules for this neighbourhood and state count."""
        return self.num_states ** self.size

    def to_decimal(self) -> int:
        return neighbourhood_index(self.table, self.num_states)

    def to_wolfram(self) -> int:
        return neighbourhood_index(self.table[::-1], self.num_states)

    def to_string(self) -> str:
        """Rule table written in the base of its states, e.g. '01111000'."""
        if self.num_states > len(DIGITS):
            return ",".join(str(v) for v in self.table)
        return "".join(DIGITS[v] for v in self.table)

    def lambda_parameter(self) -> float:
        """Langton's lambda: fraction of transitions leading away from the quiescent state 0."""
        return sum(1 for v in self.table if v != 0) / self.size


class CellularAutomaton:
    """1D cellular automaton on a ring of cells."""

    def __init__(self, rule: Rule, state: Optional[Sequence[int]] = None, width: int = 145):
        self._rule = rule
        self._lookup = np.asarray(rule.table, dtype=np.min_scalar_type(rule.num_states - 1))
        self._lookup.flags.writeable = False
        self.generation = 0
        if state is None:
            if width < 1:
                raise InvalidState(f"Width must be at least 1, got {width}")
            state = np.zeros(width, dtype=self._lookup.dtype)
        self.set_state(state)

    @classmethod
    def create(
        cls,
        neighbourhood: Sequence[int],
        num_states: int,
        rule: Union[int, Sequence[int]],
        state: Sequence[int],
    ) -> "CellularAutomaton":
        """Build from a rule identifier (int) or an already expanded rule table."""
        if isinstance(rule, (int, np.integer)) and not isinstance(rule, bool):
            built = Rule.from_decimal(neighbourhood, num_states, int(rule))
        else:
            built = Rule.from_table(neighbourhood, num_states, rule)
        return cls(built, state)

    @property
    def state(self) -> np.ndarray:
        """Current generation as a read-only array; never modified by later steps."""
        return self._state

    @property
    def rule(self) -> Rule:
        return self._rule

    @property
    def neighbourhood(self) -> Tuple[int, ...]:
        return self._rule.neighbourhood

    @property
    def num_states(self) -> int:
        return self._rule.num_states

    @property
    def table(self) -> np.ndarray:
        return self._lookup

    @property
    def width(self) -> int:
        return self._state.size

    def _validated(self, cells: Sequence[int]) -> np.ndarray:
        """Check cells are a non-empty 1-D run of states in [0, k) and copy them to the state dtype."""
        arr = np.asarray(cells)
        if arr.ndim != 1 or arr.size == 0:
            raise InvalidState("State must be a non-empty 1-D sequence")
        if arr.dtype == bool:
            arr = arr.astype(np.uint8)
        if not np.issubdtype(arr.dtype, np.integer):
            raise InvalidState(f"State cells must be integers, got dtype {arr.dtype}")
        if arr.min() < 0 or arr.max() >= self.num_states:
            raise InvalidState(f"State cells must lie in [0, {self.num_states})")
        return arr.astype(self._lookup.dtype)

    def set_state(self, state: Sequence[int]):
        """Replace the current state vector and reset the generation counter."""
        self._freeze(self._validated(state))
        self.generation = 0

    def clear(self):
        """Set every cell to state 0."""
        self.set_state(np.zeros(self.width, dtype=self._lookup.dtype))

    def seed_center(self, value: int = 1):
        """Clear the ring and put a single cell in state `value` at index width // 2."""
        state = np.zeros(self.width, dtype=self._lookup.dtype)
        state[self.width // 2] = self._validated([value])[0]
        self.set_state(state)

    def randomize(self, rng: Optional[np.random.Generator] = None):
        """Fill the ring with uniformly random states."""
        if rng is None:
            rng = np.random.default_rng()
        self.set_state(rng.integers(0, self.num_states, self.width))

    def set_pattern(self, pattern: Sequence[int], x: int = 0):
        """Place a pattern on the ring starting at position x, wrapping around."""
        values = self._validated(pattern) if len(pattern) else []
        state = self._state.copy()
        for dx, value in enumerate(values):
            state[(x + dx) % self.width] = value
        self.set_state(state)

    def _freeze(self, arr: np.ndarray):
        arr.flags.writeable = False
        self._state = arr

    def step(self) -> np.ndarray:
        """Advance simulation by one generation and return the new state."""
        # Row j holds state[(i + offset_j) mod m] for every cell i
        windows = np.stack([np.roll(self._state, -offset) for offset in self.neighbourhood])
        indices = neighbourhood_index(windows, self.num_states)

        self._freeze(self._lookup[indices])
        self.generation += 1
        return self._state

    def run(self, steps: int) -> List[np.ndarray]:
        """Run simulation for multiple steps, returning every generation including the first."""
        history = [self._state]
        for _ in range(steps):
            history.append(self.step())
        return history

    def population_by_state(self) -> Dict[int, int]:
        """Count cells in each state."""
        unique, counts = np.unique(self._state, return_counts=True)
        return {int(s): int(c) for s, c in zip(unique, counts)}

    def density(self) -> float:
        """Fraction of cells not in state 0."""
        return float(np.count_nonzero(self._state)) / self.width


# Some well-known elementary rules
RULE_30 = Rule.from_wolfram(30)
RULE_90 = Rule.from_wolfram(90)
RULE_110 = Rule.from_wolfram(110)
RULE_184 = Rule.from_wolfram(184)
