"""
Calculator registry — maps calculator names to calculator classes.
"""

from .base import BaseCalculator
from .concrete import ConcreteCalculator
from .excavation import ExcavationCalculator
from .plaster import PlasterCalculator
from .walling import WallingCalculator

CALCULATOR_REGISTRY: dict[str, type] = {
    "concrete": ConcreteCalculator,
    "walling": WallingCalculator,
    "plaster": PlasterCalculator,
    "excavation": ExcavationCalculator,
}


def get_calculator(name: str) -> BaseCalculator:
    """Returns an instance of the named calculator, or raises ValueError."""
    if name not in CALCULATOR_REGISTRY:
        raise ValueError(
            f"No calculator registered for: {name}. "
            f"Available: {list(CALCULATOR_REGISTRY.keys())}"
        )
    return CALCULATOR_REGISTRY[name]()


def has_calculator(name: str) -> bool:
    return name in CALCULATOR_REGISTRY


def list_calculators() -> list[str]:
    return list(CALCULATOR_REGISTRY.keys())
