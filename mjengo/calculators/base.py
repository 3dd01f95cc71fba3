"""
Abstract base class for all construction-cost calculators.

Input: submitted form fields dict
Output: CalculationResult dict (line items, materials, labour, total)
"""

import logging
import math
from abc import ABC, abstractmethod

logger = logging.getLogger(__name__)


class CalculatorInputError(ValueError):
    """Form input that can't be turned into a quantity."""


class BaseCalculator(ABC):
    """All calculators inherit from this."""

    name = ""
    title = ""
    fields: tuple = ()  # Required form field names

    # Bulk densities (kg/m³)
    CEMENT_DENSITY = 1448
    SAND_DENSITY = 1600
    BALLAST_DENSITY = 2000

    CEMENT_BAG_KG = 50
    TONNE_KG = 1000

    @abstractmethod
    def calculate(self, fields: dict) -> dict:
        """
        Takes the submitted form fields.
        Returns a CalculationResult dict.
        """
        pass

    def validate(self, fields: dict) -> None:
        """Check required fields before any quota is drawn down."""
        missing = [f for f in self.fields if fields.get(f) in (None, "")]
        if missing:
            raise CalculatorInputError(f"Missing required fields: {', '.join(missing)}")

    # --- Helper methods for all calculators ---

    def parse_number(self, fields: dict, key: str, allow_zero: bool = False) -> float:
        """Parse a non-negative number from a form field."""
        value = fields.get(key)
        try:
            number = float(value)
        except (TypeError, ValueError):
            raise CalculatorInputError(f"{key} must be a number, got {value!r}")
        if math.isnan(number) or math.isinf(number) or number < 0 or (number == 0 and not allow_zero):
            raise CalculatorInputError(f"{key} must be a positive number")
        return number

    def parse_ratio(self, value, parts: int) -> list[float]:
        """Parse a mix ratio like '1:2:4' into its proportions."""
        pieces = str(value or "").replace(" ", "").split(":")
        if len(pieces) != parts:
            raise CalculatorInputError(f"Mix ratio must have {parts} parts (e.g. {':'.join(['1'] * parts)})")
        try:
            ratio = [float(p) for p in pieces]
        except ValueError:
            raise CalculatorInputError(f"Invalid mix ratio: {value!r}")
        if any(r < 0 for r in ratio) or sum(ratio) <= 0:
            raise CalculatorInputError(f"Invalid mix ratio: {value!r}")
        return ratio

    def split_by_ratio(self, dry_volume: float, ratio: list[float]) -> list[float]:
        """Volume of each component of a dry mix."""
        total = sum(ratio)
        return [dry_volume * r / total for r in ratio]

    def cement_bags(self, volume_m3: float) -> int:
        """Always rounds up — you can't buy half a bag."""
        return math.ceil(volume_m3 * self.CEMENT_DENSITY / self.CEMENT_BAG_KG)

    def tonnes(self, volume_m3: float, density: float) -> int:
        return math.ceil(volume_m3 * density / self.TONNE_KG)

    def line_item(self, description: str, quantity: float, unit: str, unit_price: float) -> dict:
        return {
            "description": description,
            "quantity": quantity,
            "unit": unit,
            "unit_price": unit_price,
            "cost": round(quantity * unit_price, 2),
        }

    def labor_cost(self, materials_cost: float, labor_pct: float) -> float:
        """Labour is quoted as a percentage of materials."""
        return round(labor_pct * materials_cost / 100, 2)

    def make_result(self, inputs: dict, line_items: list, labor_pct: float) -> dict:
        materials = round(sum(item["cost"] for item in line_items), 2)
        labor = self.labor_cost(materials, labor_pct)
        return {
            "calculator": self.name,
            "inputs": inputs,
            "line_items": line_items,
            "materials_cost": materials,
            "labor_cost": labor,
            "total_cost": round(materials + labor, 2),
        }
