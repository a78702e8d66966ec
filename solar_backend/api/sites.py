"""
Sites (locations) API - installation sites with search, county/status filters and summary metrics
"""
from collections import Counter
from datetime import datetime
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from pydantic import BaseModel, ConfigDict, field_validator
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from solar_backend.api.auth import get_current_user
from solar_backend.api.pagination import PageResponse, search_page, to_response
from solar_backend.database import get_db
from solar_backend.models.project import Project
from solar_backend.models.service_order import ServiceOrder
from solar_backend.models.site import Site
from solar_backend.models.user import User
from solar_backend.utils.helpers import days_ago, generate_id
from solar_backend.utils.listing import SITE_SEARCH_FIELDS
from solar_backend.utils.logger import get_logger
from solar_backend.utils.validators import validate_county, validate_latitude, validate_longitude

logger = get_logger(__name__)

router = APIRouter()

RECENT_SITE_DAYS = 30
TOP_COUNTIES = 5


# --- Pydantic Schemas ---

class SiteResponse(BaseModel):
    id: str
    name: str
    county: str
    address: str
    site_type: Optional[str]
    classification: Optional[str]
    contact_name: Optional[str]
    contact_phone: Optional[str]
    contact_email: Optional[str]
    latitude: Optional[float]
    longitude: Optional[float]
    capacity: Optional[float]
    is_active: bool
    created_at: Optional[datetime]

    model_config = ConfigDict(from_attributes=True)


class SiteCreate(BaseModel):
    name: str
    county: str
    address: str = ""
    site_type: Optional[str] = None
    classification: Optional[str] = None
    contact_name: Optional[str] = None
    contact_phone: Optional[str] = None
    contact_email: Optional[str] = None
    latitude: Optional[float] = None
    longitude: Optional[float] = None
    capacity: Optional[float] = None
    is_active: bool = True

    @field_validator("county")
    @classmethod
    def check_county(cls, value: str) -> str:
        return validate_county(value)

    @field_validator("latitude")
    @classmethod
    def check_latitude(cls, value: Optional[float]) -> Optional[float]:
        return validate_latitude(value)

    @field_validator("longitude")
    @classmethod
    def check_longitude(cls, value: Optional[float]) -> Optional[float]:
        return validate_longitude(value)


class SiteUpdate(BaseModel):
    name: Optional[str] = None
    county: Optional[str] = None
    address: Optional[str] = None
    site_type: Optional[str] = None
    classification: Optional[str] = None
    contact_name: Optional[str] = None
    contact_phone: Optional[str] = None
    contact_email: Optional[str] = None
    latitude: Optional[float] = None
    longitude: Optional[float] = None
    capacity: Optional[float] = None
    is_active: Optional[bool] = None

    @field_validator("county")
    @classmethod
    def check_county(cls, value: Optional[str]) -> Optional[str]:
        return validate_county(value) if value is not None else value

    @field_validator("latitude")
    @classmethod
    def check_latitude(cls, value: Optional[float]) -> Optional[float]:
        return validate_latitude(value)

    @field_validator("longitude")
    @classmethod
    def check_longitude(cls, value: Optional[float]) -> Optional[float]:
        return validate_longitude(value)


class CountyCount(BaseModel):
    name: str
    count: int


class SiteSummary(BaseModel):
    total_sites: int
    active_sites: int
    total_capacity: float
    recent_sites: int
    county_distribution: List[CountyCount]


# --- Helper ---

async def _get_site_or_404(db: AsyncSession, site_id: str) -> Site:
    result = await db.execute(select(Site).where(Site.id == site_id))
    site = result.scalar_one_or_none()
    if not site:
        raise HTTPException(status_code=404, detail="Site not found")
    return site


async def _all_sites(db: AsyncSession) -> List[Site]:
    result = await db.execute(select(Site).order_by(Site.created_at.desc()))
    return list(result.scalars().all())


# --- Endpoints ---

@router.get("/", response_model=PageResponse[SiteResponse])
async def list_sites(
    search: Optional[str] = None,
    county: Optional[str] = "all",
    status: Optional[str] = "all",
    page: int = Query(1, ge=1),
    page_size: Optional[int] = Query(None, ge=1),
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    """List sites. status: 'active' | 'inactive' | 'all'"""
    sites = await _all_sites(db)
    result = search_page(
        sites, search, SITE_SEARCH_FIELDS, {"county": county, "status": status}, page, page_size,
    )
    return to_response(result, SiteResponse)


@router.get("/summary", response_model=SiteSummary)
async def site_summary(
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    """Headline numbers for the sites screen"""
    sites = await _all_sites(db)
    cutoff = days_ago(RECENT_SITE_DAYS)
    counties = Counter(s.county for s in sites)

    return SiteSummary(
        total_sites=len(sites),
        active_sites=sum(1 for s in sites if s.is_active),
        total_capacity=round(sum(s.capacity or 0 for s in sites), 2),
        recent_sites=sum(1 for s in sites if s.created_at and s.created_at > cutoff),
        county_distribution=[
            CountyCount(name=name, count=count)
            for name, count in counties.most_common(TOP_COUNTIES)
        ],
    )


@router.get("/counties", response_model=List[str])
async def list_counties(
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    """Distinct counties that have at least one site"""
    result = await db.execute(select(Site.county).distinct().order_by(Site.county))
    return [row for row in result.scalars().all()]


@router.get("/{site_id}", response_model=SiteResponse)
async def get_site(
    site_id: str,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    return await _get_site_or_404(db, site_id)


@router.post("/", response_model=SiteResponse)
async def create_site(
    data: SiteCreate,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    site = Site(id=generate_id("SITE"), **data.model_dump())
    db.add(site)
    await db.commit()
    await db.refresh(site)
    logger.info("Created site %s (%s, %s)", site.id, site.name, site.county)
    return site


@router.patch("/{site_id}", response_model=SiteResponse)
async def update_site(
    site_id: str,
    data: SiteUpdate,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    site = await _get_site_or_404(db, site_id)
    for key, value in data.model_dump(exclude_unset=True).items():
        setattr(site, key, value)
    await db.commit()
    await db.refresh(site)
    return site


@router.delete("/{site_id}")
async def delete_site(
    site_id: str,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    site = await _get_site_or_404(db, site_id)

    projects = await db.execute(select(Project.id).where(Project.site_id == site_id).limit(1))
    orders = await db.execute(select(ServiceOrder.id).where(ServiceOrder.site_id == site_id).limit(1))
    if projects.scalar_one_or_none() or orders.scalar_one_or_none():
        raise HTTPException(
            status_code=400, detail="Site is referenced by projects or service orders"
        )

    await db.delete(site)
    await db.commit()
    logger.info("Deleted site %s", site_id)
    return {"message": "Site deleted"}
