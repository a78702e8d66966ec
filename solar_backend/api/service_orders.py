"""
Service orders API - cost estimates and billable jobs against a site
"""
from datetime import date, datetime
from typing import Dict, List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from pydantic import BaseModel, ConfigDict, Field
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from solar_backend.api.auth import get_current_user
from solar_backend.api.pagination import PageResponse, search_page, to_response
from solar_backend.config import get_settings
from solar_backend.database import get_db
from solar_backend.domain.costing import (
    CostSummary,
    PartLine,
    PartSelection,
    compute_costs,
    price_parts,
)
from solar_backend.domain.enums import ServiceOrderPriority
from solar_backend.domain.exceptions import DraftValidationError, EntityNotFoundError
from solar_backend.models.inventory import InventoryItem
from solar_backend.models.service_order import ServiceOrder, ServiceOrderPart
from solar_backend.models.site import Site
from solar_backend.models.user import User
from solar_backend.utils.helpers import format_currency, generate_id
from solar_backend.utils.logger import get_logger

settings = get_settings()
logger = get_logger(__name__)

router = APIRouter()

SERVICE_ORDER_SEARCH_FIELDS = ("title", "id", "technician", "order_type")


# --- Pydantic Schemas ---

class CostInputs(BaseModel):
    parts: List[PartSelection] = []
    estimated_hours: float = Field(default_factory=lambda: settings.DEFAULT_ESTIMATED_HOURS, ge=0)
    labor_rate: float = Field(default_factory=lambda: settings.DEFAULT_LABOR_RATE, ge=0)
    travel_cost: float = Field(default_factory=lambda: settings.DEFAULT_TRAVEL_COST, ge=0)
    other_costs: float = Field(default_factory=lambda: settings.DEFAULT_OTHER_COSTS, ge=0)
    overhead_costs: float = Field(default_factory=lambda: settings.DEFAULT_OVERHEAD_COSTS, ge=0)


class EstimateResponse(BaseModel):
    lines: List[PartLine]
    costs: CostSummary


class ServiceOrderCreate(CostInputs):
    title: str
    site_id: str
    issuer_id: str
    technician: str
    order_type: str
    priority: ServiceOrderPriority = ServiceOrderPriority.MEDIUM
    description: Optional[str] = None
    scheduled_date: Optional[date] = None
    existing_power_setup: Optional[str] = None
    proposed_power_setup: Optional[str] = None
    energy_demand: float = 0
    solar_capacity: float = 0
    battery_capacity: float = 0
    rectifier_details: Optional[str] = None
    estimated_solar_production: float = 0
    notes: Optional[str] = None


class ServiceOrderPartResponse(BaseModel):
    item_id: str
    item_name: str
    quantity: int
    unit_selling_price: float
    unit_buying_price: float

    model_config = ConfigDict(from_attributes=True)


class ServiceOrderResponse(BaseModel):
    id: str
    title: str
    site_id: str
    issuer_id: str
    technician: str
    order_type: str
    priority: ServiceOrderPriority
    description: Optional[str]
    scheduled_date: Optional[date]
    existing_power_setup: Optional[str]
    proposed_power_setup: Optional[str]
    energy_demand: Optional[float]
    solar_capacity: Optional[float]
    battery_capacity: Optional[float]
    rectifier_details: Optional[str]
    estimated_solar_production: Optional[float]
    estimated_hours: float
    labor_rate: float
    travel_cost: float
    other_costs: float
    overhead_costs: float
    notes: Optional[str]
    parts_revenue: float
    parts_cost: float
    labor_cost: float
    total_cost: float
    estimated_invoice: float
    estimated_profit: float
    estimated_margin: float
    created_at: Optional[datetime]
    parts: List[ServiceOrderPartResponse] = []

    model_config = ConfigDict(from_attributes=True)


# --- Helpers ---

async def _catalog(db: AsyncSession, item_ids: List[str]) -> Dict[str, InventoryItem]:
    if not item_ids:
        return {}
    result = await db.execute(select(InventoryItem).where(InventoryItem.id.in_(item_ids)))
    return {item.id: item for item in result.scalars().all()}


async def _require(db: AsyncSession, model, entity_id: str, label: str):
    result = await db.execute(select(model).where(model.id == entity_id))
    found = result.scalar_one_or_none()
    if not found:
        raise HTTPException(status_code=404, detail=f"{label} not found")
    return found


def _costs_for(lines: List[PartLine], data: CostInputs) -> CostSummary:
    return compute_costs(
        lines,
        estimated_hours=data.estimated_hours,
        labor_rate=data.labor_rate,
        travel_cost=data.travel_cost,
        other_costs=data.other_costs,
        overhead_costs=data.overhead_costs,
    )


async def _load_order(db: AsyncSession, order_id: str) -> ServiceOrder:
    result = await db.execute(
        select(ServiceOrder).options(selectinload(ServiceOrder.parts)).where(ServiceOrder.id == order_id)
    )
    order = result.scalar_one_or_none()
    if not order:
        raise HTTPException(status_code=404, detail="Service order not found")
    return order


# --- Endpoints ---

@router.post("/estimate", response_model=EstimateResponse)
async def estimate(
    data: CostInputs,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    """Live cost summary for the order form; unknown parts are priced at zero"""
    catalog = await _catalog(db, [p.item_id for p in data.parts])
    lines = price_parts(data.parts, catalog)
    return EstimateResponse(lines=lines, costs=_costs_for(lines, data))


@router.get("/", response_model=PageResponse[ServiceOrderResponse])
async def list_service_orders(
    search: Optional[str] = None,
    priority: Optional[str] = "all",
    site_id: Optional[str] = "all",
    page: int = Query(1, ge=1),
    page_size: Optional[int] = Query(None, ge=1),
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    result = await db.execute(
        select(ServiceOrder).options(selectinload(ServiceOrder.parts)).order_by(ServiceOrder.created_at.desc())
    )
    orders = result.scalars().all()
    found = search_page(
        orders, search, SERVICE_ORDER_SEARCH_FIELDS,
        {"priority": priority, "site_id": site_id}, page, page_size,
    )
    return to_response(found, ServiceOrderResponse)


@router.get("/{order_id}", response_model=ServiceOrderResponse)
async def get_service_order(
    order_id: str,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    return await _load_order(db, order_id)


@router.post("/", response_model=ServiceOrderResponse)
async def create_service_order(
    data: ServiceOrderCreate,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    """Create an order and store the cost summary as computed at creation"""
    await _require(db, Site, data.site_id, "Site")
    await _require(db, User, data.issuer_id, "Issuer")

    catalog = await _catalog(db, [p.item_id for p in data.parts])
    try:
        lines = price_parts(data.parts, catalog, strict=True)
    except EntityNotFoundError as exc:
        raise DraftValidationError(exc.message, "parts") from exc
    costs = _costs_for(lines, data)

    order = ServiceOrder(
        id=generate_id("SO"),
        priority=data.priority.value,
        **data.model_dump(exclude={"parts", "priority"}),
        **costs.model_dump(),
    )
    order.parts = [
        ServiceOrderPart(
            item_id=line.item_id,
            item_name=line.name,
            quantity=line.quantity,
            unit_selling_price=line.unit_selling_price,
            unit_buying_price=line.unit_buying_price,
        )
        for line in lines
    ]
    db.add(order)
    await db.commit()

    logger.info(
        "Created service order %s for site %s: invoice %s, profit %s",
        order.id, order.site_id,
        format_currency(costs.estimated_invoice), format_currency(costs.estimated_profit),
    )
    return await _load_order(db, order.id)
