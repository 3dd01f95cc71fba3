from .base import BaseCalculator


class PlasterCalculator(BaseCalculator):
    """Cement and sand for plastering an area at a given thickness (mm)."""

    name = "plaster"
    title = "Plaster"
    fields = (
        "plaster_area", "plaster_thickness", "plaster_ratio",
        "cement_price", "sand_price", "labor_price",
    )

    DRY_VOLUME_FACTOR = 1.33

    def calculate(self, fields: dict) -> dict:
        self.validate(fields)
        area = self.parse_number(fields, "plaster_area")
        thickness_mm = self.parse_number(fields, "plaster_thickness")
        ratio = self.parse_ratio(fields["plaster_ratio"], 2)
        cement_price = self.parse_number(fields, "cement_price", allow_zero=True)
        sand_price = self.parse_number(fields, "sand_price", allow_zero=True)
        labor_pct = self.parse_number(fields, "labor_price", allow_zero=True)

        volume = area * thickness_mm / 1000
        cement_vol, sand_vol = self.split_by_ratio(volume * self.DRY_VOLUME_FACTOR, ratio)

        line_items = [
            self.line_item(fields.get("cement") or "cement", self.cement_bags(cement_vol), "bags", cement_price),
            self.line_item(fields.get("sand") or "sand", self.tonnes(sand_vol, self.SAND_DENSITY), "tons", sand_price),
        ]
        inputs = {"area_m2": area, "thickness_mm": thickness_mm, "ratio": fields["plaster_ratio"]}
        return self.make_result(inputs, line_items, labor_pct)
