"""
Service order costing - parts revenue vs. buying cost, labor and overheads
"""
from typing import Iterable, List, Mapping, Optional, Sequence

from pydantic import BaseModel, Field

from solar_backend.domain.exceptions import DraftValidationError, EntityNotFoundError

UNKNOWN_ITEM_NAME = "Unknown Item"


class PartSelection(BaseModel):
    """A catalog item picked for a service order"""

    item_id: str
    quantity: int = Field(default=1, ge=1)


class PartLine(BaseModel):
    """A selected part priced from the catalog"""

    item_id: str
    name: str = UNKNOWN_ITEM_NAME
    category: str = ""
    quantity: int
    unit_selling_price: float = 0
    unit_buying_price: float = 0

    @property
    def revenue(self) -> float:
        return self.quantity * self.unit_selling_price

    @property
    def cost(self) -> float:
        return self.quantity * self.unit_buying_price


class CostSummary(BaseModel):
    parts_revenue: float = 0
    parts_cost: float = 0
    labor_cost: float = 0
    total_cost: float = 0
    estimated_invoice: float = 0
    estimated_profit: float = 0
    estimated_margin: float = 0


def compute_costs(
    selected_parts: Iterable[PartLine],
    estimated_hours: float = 0,
    labor_rate: float = 0,
    travel_cost: float = 0,
    other_costs: float = 0,
    overhead_costs: float = 0,
) -> CostSummary:
    """Cost and profit summary for a service order.

    Parts are billed at their selling price and costed at their buying
    price; labor, travel, other and overhead costs pass through to the
    invoice unchanged, so profit equals the parts markup. Margin is 0 when
    there is nothing to invoice.
    """
    parts = list(selected_parts)
    parts_revenue = sum(p.revenue for p in parts)
    parts_cost = sum(p.cost for p in parts)
    labor_cost = estimated_hours * labor_rate
    pass_through = travel_cost + other_costs + overhead_costs

    total_cost = parts_cost + labor_cost + pass_through
    estimated_invoice = parts_revenue + labor_cost + pass_through
    estimated_profit = estimated_invoice - total_cost
    estimated_margin = estimated_profit / estimated_invoice if estimated_invoice > 0 else 0

    return CostSummary(
        parts_revenue=parts_revenue,
        parts_cost=parts_cost,
        labor_cost=labor_cost,
        total_cost=total_cost,
        estimated_invoice=estimated_invoice,
        estimated_profit=estimated_profit,
        estimated_margin=estimated_margin,
    )


def price_parts(
    selections: Iterable[PartSelection],
    catalog: Mapping[str, object],
    strict: bool = False,
) -> List[PartLine]:
    """Attach catalog names and prices to selected parts.

    Catalog values need ``name``, ``category``, ``unit_cost`` (selling price)
    and ``buying_price`` attributes. Unknown items are priced at zero unless
    strict is set, in which case they raise EntityNotFoundError.
    """
    lines = []
    for selection in selections:
        item = catalog.get(selection.item_id)
        if item is None:
            if strict:
                raise EntityNotFoundError("Inventory item", selection.item_id)
            lines.append(PartLine(item_id=selection.item_id, quantity=selection.quantity))
            continue
        lines.append(PartLine(
            item_id=selection.item_id,
            name=item.name,
            category=item.category,
            quantity=selection.quantity,
            unit_selling_price=item.unit_cost,
            unit_buying_price=item.buying_price,
        ))
    return lines


# --- Part selection editing ---

def add_part(selections: Sequence[PartSelection], item_id: str) -> List[PartSelection]:
    """Select a part, or bump its quantity by one if already selected"""
    if any(s.item_id == item_id for s in selections):
        return [
            s.model_copy(update={"quantity": s.quantity + 1}) if s.item_id == item_id else s
            for s in selections
        ]
    return [*selections, PartSelection(item_id=item_id, quantity=1)]


def remove_part(selections: Sequence[PartSelection], item_id: str) -> List[PartSelection]:
    return [s for s in selections if s.item_id != item_id]


def set_part_quantity(
    selections: Sequence[PartSelection],
    item_id: str,
    quantity: Optional[int],
) -> List[PartSelection]:
    if quantity is None or quantity < 1:
        raise DraftValidationError("Quantity must be at least 1", "quantity")
    return [
        s.model_copy(update={"quantity": quantity}) if s.item_id == item_id else s
        for s in selections
    ]
