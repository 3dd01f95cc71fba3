"""
Walling calculator — blocks plus joint mortar for a wall area.

Block size is "LxTxH" in mm; each block takes a 20 mm joint on length
and height. Mortar volume is the wall volume minus the blocks.
"""

import math

from .base import BaseCalculator, CalculatorInputError


class WallingCalculator(BaseCalculator):
    name = "walling"
    title = "Walling"
    fields = (
        "wall_area", "block_size", "block_price", "mortar_ratio",
        "cement_price", "sand_price", "labor_price",
    )

    JOINT_M = 0.02
    DRY_VOLUME_FACTOR = 1.33

    def parse_block_size(self, value) -> tuple[float, float, float]:
        """'400x200x200' (mm) → (length, thickness, height) in metres."""
        dims = str(value or "").lower().replace(" ", "").split("x")
        try:
            length, thickness, height = (float(d) / 1000 for d in dims)
        except ValueError:
            raise CalculatorInputError(f"Block size must look like 400x200x200 (mm), got {value!r}")
        if min(length, thickness, height) <= 0:
            raise CalculatorInputError("Block dimensions must be positive")
        return length, thickness, height

    def calculate(self, fields: dict) -> dict:
        self.validate(fields)
        area = self.parse_number(fields, "wall_area")
        length, thickness, height = self.parse_block_size(fields["block_size"])
        block_price = self.parse_number(fields, "block_price", allow_zero=True)
        ratio = self.parse_ratio(fields["mortar_ratio"], 2)
        cement_price = self.parse_number(fields, "cement_price", allow_zero=True)
        sand_price = self.parse_number(fields, "sand_price", allow_zero=True)
        labor_pct = self.parse_number(fields, "labor_price", allow_zero=True)

        face_area = (length + self.JOINT_M) * (height + self.JOINT_M)
        blocks = math.ceil(area / face_area)

        mortar_volume = max(area * thickness - blocks * length * thickness * height, 0.0)
        cement_vol, sand_vol = self.split_by_ratio(mortar_volume * self.DRY_VOLUME_FACTOR, ratio)

        line_items = [
            self.line_item(f"{fields['block_size']} blocks", blocks, "pcs", block_price),
            self.line_item((fields.get("cement") or "cement").lower(), self.cement_bags(cement_vol), "bags", cement_price),
            self.line_item((fields.get("sand") or "sand").lower(), self.tonnes(sand_vol, self.SAND_DENSITY), "tons", sand_price),
        ]
        inputs = {"area_m2": area, "block_size": fields["block_size"], "ratio": fields["mortar_ratio"]}
        return self.make_result(inputs, line_items, labor_pct)
