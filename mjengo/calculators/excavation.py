from .base import BaseCalculator


class ExcavationCalculator(BaseCalculator):
    name = "excavation"
    title = "Excavation"
    fields = ("excavation_volume", "excavation_rate", "labor_price")

    def calculate(self, fields: dict) -> dict:
        self.validate(fields)
        volume = self.parse_number(fields, "excavation_volume")
        rate = self.parse_number(fields, "excavation_rate", allow_zero=True)
        labor_pct = self.parse_number(fields, "labor_price", allow_zero=True)

        line_items = [self.line_item("excavation", volume, "m³", rate)]
        return self.make_result({"volume_m3": volume, "rate": rate}, line_items, labor_pct)
