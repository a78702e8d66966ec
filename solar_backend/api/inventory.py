"""
Inventory API - parts catalog used by project inventory usage and service orders
"""
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from pydantic import BaseModel, ConfigDict, field_validator
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from solar_backend.api.auth import get_current_user
from solar_backend.api.pagination import PageResponse, search_page, to_response
from solar_backend.database import get_db
from solar_backend.models.inventory import InventoryItem
from solar_backend.models.user import User
from solar_backend.utils.helpers import generate_id
from solar_backend.utils.listing import INVENTORY_SEARCH_FIELDS
from solar_backend.utils.logger import get_logger
from solar_backend.utils.validators import validate_non_negative

logger = get_logger(__name__)

router = APIRouter()


# --- Pydantic Schemas ---

class InventoryItemResponse(BaseModel):
    id: str
    name: str
    category: str
    unit_cost: float
    buying_price: float
    quantity: int
    specifications: Optional[str]

    model_config = ConfigDict(from_attributes=True)


class InventoryItemCreate(BaseModel):
    name: str
    category: str
    unit_cost: float = 0
    buying_price: float = 0
    quantity: int = 0
    specifications: Optional[str] = None

    @field_validator("unit_cost", "buying_price", "quantity")
    @classmethod
    def check_amount(cls, value):
        return validate_non_negative(value)


class InventoryItemUpdate(BaseModel):
    name: Optional[str] = None
    category: Optional[str] = None
    unit_cost: Optional[float] = None
    buying_price: Optional[float] = None
    quantity: Optional[int] = None
    specifications: Optional[str] = None

    @field_validator("unit_cost", "buying_price", "quantity")
    @classmethod
    def check_amount(cls, value):
        return validate_non_negative(value) if value is not None else value


# --- Helper ---

async def get_item_or_404(db: AsyncSession, item_id: str) -> InventoryItem:
    result = await db.execute(select(InventoryItem).where(InventoryItem.id == item_id))
    item = result.scalar_one_or_none()
    if not item:
        raise HTTPException(status_code=404, detail="Inventory item not found")
    return item


# --- Endpoints ---

@router.get("/", response_model=PageResponse[InventoryItemResponse])
async def list_items(
    search: Optional[str] = None,
    category: Optional[str] = "all",
    page: int = Query(1, ge=1),
    page_size: Optional[int] = Query(None, ge=1),
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    result = await db.execute(select(InventoryItem).order_by(InventoryItem.id))
    items = result.scalars().all()
    found = search_page(
        items, search, INVENTORY_SEARCH_FIELDS, {"category": category}, page, page_size,
    )
    return to_response(found, InventoryItemResponse)


@router.get("/categories", response_model=List[str])
async def list_categories(
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    result = await db.execute(
        select(InventoryItem.category).distinct().order_by(InventoryItem.category)
    )
    return list(result.scalars().all())


@router.get("/{item_id}", response_model=InventoryItemResponse)
async def get_item(
    item_id: str,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    return await get_item_or_404(db, item_id)


@router.post("/", response_model=InventoryItemResponse)
async def create_item(
    data: InventoryItemCreate,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    item = InventoryItem(id=generate_id("INV"), **data.model_dump())
    db.add(item)
    await db.commit()
    await db.refresh(item)
    logger.info("Added catalog item %s (%s)", item.id, item.name)
    return item


@router.patch("/{item_id}", response_model=InventoryItemResponse)
async def update_item(
    item_id: str,
    data: InventoryItemUpdate,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    item = await get_item_or_404(db, item_id)
    for key, value in data.model_dump(exclude_unset=True).items():
        setattr(item, key, value)
    await db.commit()
    await db.refresh(item)
    return item
