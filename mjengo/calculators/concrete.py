"""
Concrete calculator — cement, sand and ballast for a wet volume.

Dry volume = wet volume × 1.54, split by the c:s:b mix ratio.
"""

from .base import BaseCalculator


class ConcreteCalculator(BaseCalculator):
    name = "concrete"
    title = "Concrete"
    fields = (
        "concrete_volume", "concrete_ratio",
        "cement_price", "sand_price", "ballast_price", "labor_price",
    )

    DRY_VOLUME_FACTOR = 1.54

    def calculate(self, fields: dict) -> dict:
        self.validate(fields)
        volume = self.parse_number(fields, "concrete_volume")
        ratio = self.parse_ratio(fields["concrete_ratio"], 3)
        cement_price = self.parse_number(fields, "cement_price", allow_zero=True)
        sand_price = self.parse_number(fields, "sand_price", allow_zero=True)
        ballast_price = self.parse_number(fields, "ballast_price", allow_zero=True)
        labor_pct = self.parse_number(fields, "labor_price", allow_zero=True)

        cement_vol, sand_vol, ballast_vol = self.split_by_ratio(volume * self.DRY_VOLUME_FACTOR, ratio)

        line_items = [
            self.line_item(fields.get("cement") or "cement", self.cement_bags(cement_vol), "bags", cement_price),
            self.line_item(fields.get("sand") or "sand", self.tonnes(sand_vol, self.SAND_DENSITY), "tons", sand_price),
            self.line_item(
                fields.get("ballast") or "ballast",
                self.tonnes(ballast_vol, self.BALLAST_DENSITY),
                "tons",
                ballast_price,
            ),
        ]
        inputs = {"volume_m3": volume, "ratio": fields["concrete_ratio"]}
        return self.make_result(inputs, line_items, labor_pct)
