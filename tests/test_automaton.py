import itertools

import numpy as np
import pytest

from ca1d.automaton import (
    RULE_30,
    RULE_90,
    CellularAutomaton,
    Rule,
    decimal_to_base_n,
    decimal_to_rule_table,
    neighbourhood_index,
)
from ca1d.errors import InvalidRule, InvalidState, OutOfRange


def test_decimal_to_base_n_known_values():
    assert decimal_to_base_n(0, 2) == [0]
    assert decimal_to_base_n(30, 2) == [1, 1, 1, 1, 0]
    assert decimal_to_base_n(9, 3) == [1, 0, 0]
    assert decimal_to_base_n(255, 16) == [15, 15]


def test_decimal_to_base_n_recomposes_with_minimal_length():
    for base in range(2, 8):
        for decimal in range(0, 300):
            digits = decimal_to_base_n(decimal, base)
            d = len(digits)
            assert all(0 <= digit < base for digit in digits)
            assert sum(digit * base ** (d - 1 - i) for i, digit in enumerate(digits)) == decimal
            assert base ** d > decimal
            assert d == 1 or base ** (d - 1) <= decimal


def test_decimal_to_base_n_handles_big_integers():
    decimal = 3 ** 27 - 1
    assert decimal_to_base_n(decimal, 3) == [2] * 27


def test_decimal_to_base_n_rejects_bad_input():
    with pytest.raises(ValueError):
        decimal_to_base_n(-1, 2)
    with pytest.raises(ValueError):
        decimal_to_base_n(5, 1)


def test_decimal_to_rule_table_right_aligns_digits():
    assert decimal_to_rule_table(30, 3, 2).tolist() == [0, 0, 0, 1, 1, 1, 1, 0]
    assert decimal_to_rule_table(0, 3, 2).tolist() == [0] * 8
    assert decimal_to_rule_table(5, 2, 3).tolist() == [0, 0, 0, 0, 0, 0, 0, 1, 2]


@pytest.mark.parametrize("n,k", [(1, 2), (3, 2), (2, 3), (3, 3), (1, 5)])
def test_decimal_to_rule_table_length(n, k):
    maximum = k ** (k ** n) - 1
    for decimal in (0, 1, maximum // 2, maximum):
        table = decimal_to_rule_table(decimal, n, k)
        assert len(table) == k ** n
        assert table.min() >= 0 and table.max() < k


def test_decimal_to_rule_table_boundary():
    assert decimal_to_rule_table(255, 3, 2).tolist() == [1] * 8
    with pytest.raises(OutOfRange):
        decimal_to_rule_table(256, 3, 2)

    assert decimal_to_rule_table(3 ** 9 - 1, 2, 3).tolist() == [2] * 9
    with pytest.raises(OutOfRange):
        decimal_to_rule_table(3 ** 9, 2, 3)

    with pytest.raises(OutOfRange):
        decimal_to_rule_table(-1, 3, 2)


def test_neighbourhood_index_known_values():
    assert neighbourhood_index([1, 0, 1], 2) == 5
    assert neighbourhood_index([2, 1], 3) == 7
    assert neighbourhood_index([0], 4) == 0


def test_neighbourhood_index_inverts_base_decomposition():
    for k, n in [(2, 3), (3, 2), (4, 2), (3, 3)]:
        for position, digits in enumerate(itertools.product(range(k), repeat=n)):
            index = neighbourhood_index(digits, k)
            assert index == position
            back = decimal_to_base_n(index, k)
            assert [0] * (n - len(back)) + back == list(digits)


def test_neighbourhood_index_vectorised_over_columns():
    windows = np.array([[0, 1, 1], [1, 1, 0]])
    assert neighbourhood_index(windows, 2).tolist() == [1, 3, 2]


def test_neighbourhood_index_rejects_out_of_range_states():
    with pytest.raises(ValueError):
        neighbourhood_index([0, 2], 2)


def test_rule_validation():
    with pytest.raises(InvalidRule):
        Rule.from_table((-1, 0, 1), 2, [0, 1, 1])
    with pytest.raises(InvalidRule):
        Rule.from_table((-1, 0, 1), 2, [0, 1, 1, 1, 1, 0, 0, 2])
    with pytest.raises(InvalidRule):
        Rule.from_table((0,), 1, [0])
    with pytest.raises(InvalidRule):
        Rule.from_table((), 2, [0])
    with pytest.raises(InvalidRule):
        Rule.from_decimal((0,), 1, 0)


def test_rule_encodings():
    assert RULE_30.table == (0, 1, 1, 1, 1, 0, 0, 0)
    assert RULE_30.to_wolfram() == 30
    assert RULE_30.to_decimal() == 120
    assert RULE_30.to_string() == "01111000"
    assert Rule.from_decimal((-1, 0, 1), 2, 120) == RULE_30
    assert len({RULE_30, Rule.from_wolfram(30)}) == 1


def test_rule_decimal_round_trip_for_three_states():
    rule = Rule.from_decimal((-1, 0, 1), 3, 123456789)
    assert rule.size == 27
    assert rule.to_decimal() == 123456789


def test_rule_lambda_parameter():
    assert RULE_30.lambda_parameter() == 0.5
    assert Rule.from_decimal((0,), 2, 0).lambda_parameter() == 0.0


def test_repeated_offsets_size_table_by_count():
    rule = Rule.from_decimal((0, 0), 2, 6)
    assert rule.size == 4
    assert rule.table == (0, 1, 1, 0)

    ca = CellularAutomaton(rule, [0, 1, 1, 0])
    # (s, s) only ever hits index 0 or 3, both map to 0
    assert ca.step().tolist() == [0, 0, 0, 0]


def test_rule_30_scenario():
    ca = CellularAutomaton.create((-1, 0, 1), 2, [0, 1, 1, 1, 1, 0, 0, 0], [0, 0, 0, 1, 0, 0, 0])
    assert ca.step().tolist() == [0, 0, 1, 1, 1, 0, 0]
    assert ca.step().tolist() == [0, 1, 1, 0, 0, 1, 0]
    assert ca.generation == 2


def test_create_from_identifier_matches_table():
    from_id = CellularAutomaton.create((-1, 0, 1), 2, 120, [0, 0, 0, 1, 0, 0, 0])
    assert from_id.table.tolist() == [0, 1, 1, 1, 1, 0, 0, 0]
    assert from_id.step().tolist() == [0, 0, 1, 1, 1, 0, 0]


def test_create_with_out_of_range_identifier():
    with pytest.raises(OutOfRange):
        CellularAutomaton.create((-1, 0, 1), 2, 256, [0, 1, 0])


def test_rule_90_single_seed():
    ca = CellularAutomaton(RULE_90, width=7)
    ca.seed_center()
    assert ca.step().tolist() == [0, 0, 1, 0, 1, 0, 0]


def test_three_state_additive_rule():
    table = [(a + b) % 3 for a in range(3) for b in range(3)]
    ca = CellularAutomaton.create((-1, 1), 3, table, [0, 1, 0, 0, 2])
    assert ca.step().tolist() == [0, 0, 1, 2, 0]


def test_shift_rule():
    ca = CellularAutomaton.create((1,), 2, [0, 1], [1, 0, 0, 0])
    assert ca.step().tolist() == [0, 0, 0, 1]


def test_step_is_deterministic():
    rng = np.random.default_rng(7)
    rule = Rule.random((-2, 0, 1), 3, rng)
    initial = rng.integers(0, 3, 40)

    first = CellularAutomaton(rule, initial).run(25)
    second = CellularAutomaton(rule, initial).run(25)
    for a, b in zip(first, second):
        np.testing.assert_array_equal(a, b)


def test_offset_equal_to_width_behaves_like_zero():
    rng = np.random.default_rng(3)
    rule = Rule.random((0, -1), 2, rng)
    initial = rng.integers(0, 2, 7)

    wrapped = CellularAutomaton(Rule.from_table((7, -1), 2, rule.table), initial)
    plain = CellularAutomaton(rule, initial)
    for _ in range(10):
        np.testing.assert_array_equal(wrapped.step(), plain.step())


def test_large_negative_offsets_wrap():
    rng = np.random.default_rng(11)
    rule = Rule.random((-1, 0), 2, rng)
    initial = rng.integers(0, 2, 7)

    far = CellularAutomaton(Rule.from_table((-15, 0), 2, rule.table), initial)
    near = CellularAutomaton(rule, initial)
    np.testing.assert_array_equal(far.run(5)[-1], near.run(5)[-1])


def test_snapshots_are_read_only_and_stable():
    ca = CellularAutomaton(RULE_30, width=9)
    ca.seed_center()
    before = ca.state
    expected = before.tolist()

    ca.step()
    assert before.tolist() == expected
    assert not before.flags.writeable
    with pytest.raises(ValueError):
        before[0] = 1


def test_state_is_copied_from_caller():
    initial = np.array([0, 1, 0, 0])
    ca = CellularAutomaton(RULE_30, initial)
    initial[0] = 1
    assert ca.state.tolist() == [0, 1, 0, 0]


def test_invalid_states():
    with pytest.raises(InvalidState):
        CellularAutomaton(RULE_30, [])
    with pytest.raises(InvalidState):
        CellularAutomaton(RULE_30, [0, 2, 0])
    with pytest.raises(InvalidState):
        CellularAutomaton(RULE_30, [[0, 1], [1, 0]])
    with pytest.raises(InvalidState):
        CellularAutomaton(RULE_30, [0.0, 1.0])


def test_single_cell_ring():
    ca = CellularAutomaton(RULE_30, [1])
    # Every neighbour is the cell itself: 111 -> 0
    assert ca.step().tolist() == [0]


def test_run_returns_initial_and_each_generation():
    ca = CellularAutomaton(RULE_30, width=11)
    ca.seed_center()
    history = ca.run(3)
    assert len(history) == 4
    assert history[0].tolist()[5] == 1
    np.testing.assert_array_equal(history[-1], ca.state)
    assert ca.generation == 3


def test_state_setters_reset_generation():
    ca = CellularAutomaton(RULE_30, width=5)
    ca.seed_center()
    assert ca.state.tolist() == [0, 0, 1, 0, 0]
    ca.step()

    ca.set_pattern([1, 1], x=4)
    assert ca.generation == 0
    assert ca.state.tolist() == [1, 1, 1, 1, 1]

    ca.clear()
    assert ca.state.tolist() == [0, 0, 0, 0, 0]

    ca.randomize(np.random.default_rng(0))
    assert ca.width == 5
    assert set(ca.state.tolist()) <= {0, 1}


def test_population_and_density():
    ca = CellularAutomaton.create((0,), 3, [0, 1, 2], [0, 1, 2, 2])
    assert ca.population_by_state() == {0: 1, 1: 1, 2: 2}
    assert ca.density() == 0.75
    assert ca.neighbourhood == (0,)
    assert ca.num_states == 3


@pytest.mark.parametrize("pattern", [[300], [-1], [0, 2]])
def test_set_pattern_rejects_out_of_range_values(pattern):
    ca = CellularAutomaton(RULE_30, width=5)
    ca.seed_center()
    with pytest.raises(InvalidState):
        ca.set_pattern(pattern)
    assert ca.state.tolist() == [0, 0, 1, 0, 0]


@pytest.mark.parametrize("value", [300, -1, 2])
def test_seed_center_rejects_out_of_range_values(value):
    ca = CellularAutomaton(RULE_30, width=5)
    with pytest.raises(InvalidState):
        ca.seed_center(value)


def test_set_pattern_with_empty_pattern_keeps_state():
    ca = CellularAutomaton(RULE_30, [0, 1, 0])
    ca.set_pattern([])
    assert ca.state.tolist() == [0, 1, 0]


@pytest.mark.parametrize("width", [0, -3])
def test_non_positive_width(width):
    with pytest.raises(InvalidState):
        CellularAutomaton(RULE_30, width=width)


def test_seed_center_uses_middle_index():
    ca = CellularAutomaton(RULE_30, width=145)
    ca.seed_center()
    assert np.flatnonzero(ca.state).tolist() == [72]
