"""ca1d - One-dimensional cellular automata with arbitrary neighbourhoods and state counts."""

from .automaton import (
    CellularAutomaton,
    Rule,
    decimal_to_base_n,
    decimal_to_rule_table,
    neighbourhood_index,
)
from .errors import (
    CellularAutomatonError,
    IncompleteSymbolMap,
    InvalidRule,
    InvalidState,
    OutOfRange,
)
from .render import render_state

__all__ = [
    "CellularAutomaton",
    "Rule",
    "decimal_to_base_n",
    "decimal_to_rule_table",
    "neighbourhood_index",
    "render_state",
    "CellularAutomatonError",
    "IncompleteSymbolMap",
    "InvalidRule",
    "InvalidState",
    "OutOfRange",
]
