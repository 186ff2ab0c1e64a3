"""
Movement ledger folding.

A movement's effect on a running quantity is one of two explicit variants:
``Delta`` (``in`` adds, ``out`` subtracts) or ``AbsoluteSet`` (``adjust``
replaces the running total). Folding never inspects a raw movement type
directly, so delta and absolute semantics cannot be mixed up.
"""
from dataclasses import dataclass
from typing import Iterable, Tuple, Union

MOVEMENT_IN = 'in'
MOVEMENT_OUT = 'out'
MOVEMENT_ADJUST = 'adjust'


@dataclass(frozen=True)
class Delta:
    """Signed change to the running quantity."""
    qty: float

    def apply(self, running: float) -> float:
        return running + self.qty


@dataclass(frozen=True)
class AbsoluteSet:
    """Checkpoint that replaces the running quantity."""
    qty: float

    def apply(self, running: float) -> float:
        return self.qty


Effect = Union[Delta, AbsoluteSet]


def _type_value(movement_type) -> str:
    return str(getattr(movement_type, 'value', movement_type)).lower()


def effect_for(movement_type, qty) -> Effect:
    """Translate a stored movement into its effect on the running quantity.

    Args:
        movement_type: 'in', 'out' or 'adjust' (string or enum member)
        qty: Stored quantity; always positive for in/out, absolute for adjust

    Returns:
        Delta or AbsoluteSet

    Raises:
        ValueError for an unknown movement type
    """
    kind = _type_value(movement_type)
    qty = float(qty or 0)

    if kind == MOVEMENT_IN:
        return Delta(qty)
    if kind == MOVEMENT_OUT:
        return Delta(-qty)
    if kind == MOVEMENT_ADJUST:
        return AbsoluteSet(qty)

    raise ValueError(f"Invalid movement type: {movement_type}. Valid values are: in, out, adjust")


def fold_effects(effects: Iterable[Effect], opening: float = 0.0) -> float:
    """Fold effects in order, starting from an opening quantity."""
    running = opening
    for effect in effects:
        running = effect.apply(running)
    return running


def fold_movements(movements: Iterable[Tuple[object, float]]) -> float:
    """Fold (type, qty) pairs already sorted in chronological order.

    Args:
        movements: Iterable of (movement_type, qty)

    Returns:
        Folded current quantity
    """
    return fold_effects(effect_for(kind, qty) for kind, qty in movements)
