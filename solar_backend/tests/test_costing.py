"""
Service order costing tests.
"""
import pytest
from types import SimpleNamespace

from solar_backend.domain.costing import (
    PartLine,
    PartSelection,
    add_part,
    compute_costs,
    price_parts,
    remove_part,
    set_part_quantity,
)
from solar_backend.domain.exceptions import DraftValidationError, EntityNotFoundError

CATALOG = {
    "INV-1001": SimpleNamespace(name="Solar Panel 250W", category="Solar Panels", unit_cost=15000, buying_price=12000),
    "INV-1009": SimpleNamespace(name="Fuse 15A", category="Accessories", unit_cost=500, buying_price=300),
}


class TestComputeCosts:

    def test_zero_inputs(self):
        costs = compute_costs([])
        assert costs.model_dump() == {
            "parts_revenue": 0, "parts_cost": 0, "labor_cost": 0, "total_cost": 0,
            "estimated_invoice": 0, "estimated_profit": 0, "estimated_margin": 0,
        }

    def test_worked_example(self):
        parts = [PartLine(item_id="X", quantity=2, unit_selling_price=1000, unit_buying_price=800)]
        costs = compute_costs(parts, estimated_hours=4, labor_rate=500,
                              travel_cost=100, other_costs=50, overhead_costs=50)

        assert costs.parts_revenue == 2000
        assert costs.parts_cost == 1600
        assert costs.labor_cost == 2000
        assert costs.total_cost == 3800
        assert costs.estimated_invoice == 4200
        assert costs.estimated_profit == 400
        assert costs.estimated_margin == pytest.approx(0.0952, abs=1e-4)

    def test_pass_through_costs_earn_nothing(self):
        costs = compute_costs([], estimated_hours=8, labor_rate=3500, travel_cost=7500)
        assert costs.estimated_invoice == costs.total_cost == 35500
        assert costs.estimated_profit == 0
        assert costs.estimated_margin == 0


class TestPriceParts:

    def test_prices_from_catalog(self):
        lines = price_parts([PartSelection(item_id="INV-1001", quantity=3)], CATALOG)
        assert lines[0].name == "Solar Panel 250W"
        assert lines[0].revenue == 45000
        assert lines[0].cost == 36000

    def test_unknown_item_is_free(self):
        lines = price_parts([PartSelection(item_id="INV-0000", quantity=3)], CATALOG)
        assert lines[0].name == "Unknown Item"
        assert lines[0].revenue == 0

    def test_unknown_item_strict(self):
        with pytest.raises(EntityNotFoundError):
            price_parts([PartSelection(item_id="INV-0000")], CATALOG, strict=True)


class TestPartSelection:

    def test_add_part_bumps_quantity(self):
        parts = add_part([], "INV-1001")
        parts = add_part(parts, "INV-1009")
        parts = add_part(parts, "INV-1001")
        assert [(p.item_id, p.quantity) for p in parts] == [("INV-1001", 2), ("INV-1009", 1)]

    def test_remove_part(self):
        parts = remove_part(add_part([], "INV-1001"), "INV-1001")
        assert parts == []

    def test_set_quantity(self):
        parts = set_part_quantity(add_part([], "INV-1001"), "INV-1001", 6)
        assert parts[0].quantity == 6

    @pytest.mark.parametrize("quantity", [0, -2, None])
    def test_set_quantity_rejects_below_one(self, quantity):
        with pytest.raises(DraftValidationError):
            set_part_quantity(add_part([], "INV-1001"), "INV-1001", quantity)
