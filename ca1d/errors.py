"""Exceptions raised by the automaton engine and its renderers."""


class CellularAutomatonError(ValueError):
    """Base class for all ca1d errors."""


class InvalidRule(CellularAutomatonError):
    """Rule table, neighbourhood or state count are inconsistent."""


class OutOfRange(CellularAutomatonError):
    """Rule identifier cannot be represented with the given states and neighbourhood."""


class IncompleteSymbolMap(CellularAutomatonError):
    """Display mapping lacks a symbol for some state."""


class InvalidState(CellularAutomatonError):
    """State vector is empty, not 1-D, or holds values outside [0, k)."""
