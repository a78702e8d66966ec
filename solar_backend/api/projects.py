"""
Projects API endpoints - installation projects with milestones, risks, tasks,
inventory usage and assigned users.

Every mutation loads the project as a record, runs a transition from
``solar_backend.domain.transitions`` and writes the resulting record back.
"""
from datetime import date, datetime
from typing import Callable, List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from pydantic import BaseModel
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from solar_backend.api.auth import get_current_user
from solar_backend.api.inventory import get_item_or_404
from solar_backend.api.pagination import PageResponse, search_page, to_response
from solar_backend.config import get_settings
from solar_backend.database import get_db
from solar_backend.domain import records, transitions
from solar_backend.domain.enums import MilestoneStatus, ProjectStatus, RiskStatus, TaskStatus
from solar_backend.domain.progress import project_statistics, recompute_progress
from solar_backend.models.project import Project
from solar_backend.models.site import Site
from solar_backend.models.user import User
from solar_backend.services.project_store import (
    list_project_rows,
    load_project,
    reload_project,
    save_project,
    to_record,
)
from solar_backend.utils.helpers import generate_id
from solar_backend.utils.listing import PROJECT_SEARCH_FIELDS
from solar_backend.utils.logger import get_logger

settings = get_settings()
logger = get_logger(__name__)

router = APIRouter()


# --- Pydantic Schemas ---

class ProjectResponse(records.Project):
    site_id: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class ProjectCreate(BaseModel):
    name: str
    location: str = ""
    county: str = ""
    capacity: str = ""
    site_id: Optional[str] = None
    status: ProjectStatus = ProjectStatus.PLANNED
    start_date: Optional[date] = None
    target_completion_date: Optional[date] = None
    milestones: List[records.MilestoneDraft] = []
    risks: List[records.RiskDraft] = []
    tasks: List[records.TaskDraft] = []
    inventory_usage: List[records.InventoryUsageDraft] = []
    users: List[str] = []
    # None selects every standard milestone when no milestones are given
    template_milestones: Optional[List[str]] = None


class ProjectUpdate(BaseModel):
    name: Optional[str] = None
    location: Optional[str] = None
    county: Optional[str] = None
    capacity: Optional[str] = None
    site_id: Optional[str] = None
    status: Optional[ProjectStatus] = None
    start_date: Optional[date] = None
    target_completion_date: Optional[date] = None
    actual_completion_date: Optional[date] = None


class MilestoneUpdate(BaseModel):
    title: Optional[str] = None
    description: Optional[str] = None
    due_date: Optional[date] = None
    status: Optional[MilestoneStatus] = None


class MilestoneStatusChange(BaseModel):
    status: MilestoneStatus


class RiskStatusChange(BaseModel):
    status: RiskStatus


class TaskStatusChange(BaseModel):
    status: TaskStatus


class TemplateSelection(BaseModel):
    titles: List[str]


class UserAssignment(BaseModel):
    user_id: str


class TemplateMilestone(BaseModel):
    title: str
    description: str


class CountyProgress(BaseModel):
    name: str
    value: int


class ProjectStatistics(BaseModel):
    total: int
    completed: int
    in_progress: int
    planned: int
    on_hold: int
    average_progress: int
    progress_by_county: List[CountyProgress]


# --- Helpers ---

def _build_project_response(row: Project) -> ProjectResponse:
    return ProjectResponse.model_validate(row)


def _user_ref(user: User) -> records.UserRef:
    return records.UserRef(id=user.id, name=user.name, email=user.email)


async def _get_user_or_404(db: AsyncSession, user_id: str) -> User:
    result = await db.execute(select(User).where(User.id == user_id))
    user = result.scalar_one_or_none()
    if not user:
        raise HTTPException(status_code=404, detail="User not found")
    return user


async def _check_site(db: AsyncSession, site_id: Optional[str]) -> None:
    if site_id is None:
        return
    result = await db.execute(select(Site.id).where(Site.id == site_id))
    if result.scalar_one_or_none() is None:
        raise HTTPException(status_code=404, detail="Site not found")


async def _record_usage(
    db: AsyncSession, project: records.Project, draft: records.InventoryUsageDraft
) -> records.Project:
    """Snapshot the catalog name and append the usage; unknown items are a 404"""
    item_name = ""
    if draft.item_id:
        item = await get_item_or_404(db, draft.item_id)
        item_name = item.name
    return transitions.add_inventory_usage(project, draft, item_name, today=date.today())


async def _transition(
    db: AsyncSession,
    project_id: str,
    change: Callable[[records.Project], records.Project],
) -> ProjectResponse:
    row = await load_project(db, project_id)
    updated = change(to_record(row))
    await save_project(db, row, updated)
    await db.commit()
    return _build_project_response(await reload_project(db, row.id))


# --- Project endpoints ---

@router.get("/", response_model=PageResponse[ProjectResponse])
async def list_projects(
    search: Optional[str] = None,
    status: Optional[str] = "all",
    county: Optional[str] = "all",
    page: int = Query(1, ge=1),
    page_size: Optional[int] = Query(None, ge=1),
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    """List projects matching name/id/location, filtered by status and county"""
    rows = await list_project_rows(db)
    found = search_page(
        rows, search, PROJECT_SEARCH_FIELDS, {"status": status, "county": county}, page, page_size,
    )
    return to_response(found, ProjectResponse)


@router.get("/statistics", response_model=ProjectStatistics)
async def get_statistics(
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    rows = await list_project_rows(db)
    return project_statistics([to_record(row) for row in rows])


@router.get("/counties", response_model=List[str])
async def list_project_counties(
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    result = await db.execute(select(Project.county).distinct().order_by(Project.county))
    return [county for county in result.scalars().all() if county]


@router.get("/template-milestones", response_model=List[TemplateMilestone])
async def list_template_milestones(current_user: User = Depends(get_current_user)):
    return [
        TemplateMilestone(title=title, description=description)
        for title, description in transitions.TEMPLATE_MILESTONES
    ]


@router.get("/{project_id}", response_model=ProjectResponse)
async def get_project(
    project_id: str,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    return _build_project_response(await load_project(db, project_id))


@router.post("/", response_model=ProjectResponse)
async def create_project(
    data: ProjectCreate,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    """Create a project together with its initial milestones, risks, tasks and team"""
    await _check_site(db, data.site_id)
    today = date.today()

    project = records.Project(
        id=generate_id("PRJ"),
        name=data.name,
        location=data.location,
        county=data.county,
        capacity=data.capacity,
        status=data.status,
        start_date=data.start_date,
        target_completion_date=data.target_completion_date,
    )

    for draft in data.milestones:
        project = transitions.add_milestone(project, draft)
    titles = data.template_milestones
    if titles is None:
        titles = [] if data.milestones else [t for t, _ in transitions.TEMPLATE_MILESTONES]
    project = transitions.add_template_milestones(
        project, titles, today=today, spacing_days=settings.MILESTONE_SPACING_DAYS,
    )
    project = recompute_progress(project)

    for draft in data.risks:
        project = transitions.add_risk(project, draft, today=today)
    for draft in data.tasks:
        project = transitions.add_task(project, draft)
    for draft in data.inventory_usage:
        project = await _record_usage(db, project, draft)
    for user_id in data.users:
        project = transitions.assign_user(project, _user_ref(await _get_user_or_404(db, user_id)))

    row = Project(id=project.id, site_id=data.site_id)
    db.add(row)
    await save_project(db, row, project)
    await db.commit()

    logger.info(
        "Created project %s (%s) with %d milestones", project.id, project.name, len(project.milestones)
    )
    return _build_project_response(await reload_project(db, row.id))


@router.patch("/{project_id}", response_model=ProjectResponse)
async def update_project(
    project_id: str,
    data: ProjectUpdate,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    updates = data.model_dump(exclude_unset=True, exclude_none=True, exclude={"site_id"})
    relink_site = "site_id" in data.model_fields_set
    if relink_site:
        await _check_site(db, data.site_id)

    row = await load_project(db, project_id)
    if relink_site:
        row.site_id = data.site_id
    await save_project(db, row, to_record(row).model_copy(update=updates))
    await db.commit()
    return _build_project_response(await reload_project(db, row.id))


@router.delete("/{project_id}")
async def delete_project(
    project_id: str,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    row = await load_project(db, project_id)
    await db.delete(row)
    await db.commit()
    logger.info("Deleted project %s", project_id)
    return {"message": "Project deleted"}


# --- Milestone endpoints ---

@router.post("/{project_id}/milestones", response_model=ProjectResponse)
async def add_milestone(
    project_id: str,
    data: records.MilestoneDraft,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    return await _transition(db, project_id, lambda p: transitions.add_milestone(p, data))


@router.post("/{project_id}/template-milestones", response_model=ProjectResponse)
async def add_template_milestones(
    project_id: str,
    data: TemplateSelection,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    return await _transition(
        db, project_id,
        lambda p: transitions.add_template_milestones(
            p, data.titles, today=date.today(), spacing_days=settings.MILESTONE_SPACING_DAYS,
        ),
    )


@router.patch("/{project_id}/milestones/{milestone_id}", response_model=ProjectResponse)
async def update_milestone(
    project_id: str,
    milestone_id: str,
    data: MilestoneUpdate,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    def change(project: records.Project) -> records.Project:
        project = transitions.update_milestone(
            project, milestone_id,
            title=data.title, description=data.description, due_date=data.due_date,
        )
        if data.status is not None:
            project = transitions.set_milestone_status(project, milestone_id, data.status)
        return project

    return await _transition(db, project_id, change)


@router.put("/{project_id}/milestones/{milestone_id}/status", response_model=ProjectResponse)
async def set_milestone_status(
    project_id: str,
    milestone_id: str,
    data: MilestoneStatusChange,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    """Change a milestone's status; progress and project status follow"""
    return await _transition(
        db, project_id, lambda p: transitions.set_milestone_status(p, milestone_id, data.status),
    )


@router.delete("/{project_id}/milestones/{milestone_id}", response_model=ProjectResponse)
async def remove_milestone(
    project_id: str,
    milestone_id: str,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    return await _transition(db, project_id, lambda p: transitions.remove_milestone(p, milestone_id))


# --- Risk endpoints ---

@router.post("/{project_id}/risks", response_model=ProjectResponse)
async def add_risk(
    project_id: str,
    data: records.RiskDraft,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    return await _transition(db, project_id, lambda p: transitions.add_risk(p, data))


@router.put("/{project_id}/risks/{risk_id}/status", response_model=ProjectResponse)
async def set_risk_status(
    project_id: str,
    risk_id: str,
    data: RiskStatusChange,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    return await _transition(
        db, project_id, lambda p: transitions.set_risk_status(p, risk_id, data.status),
    )


# --- Inventory usage ---

@router.post("/{project_id}/inventory-usage", response_model=ProjectResponse)
async def add_inventory_usage(
    project_id: str,
    data: records.InventoryUsageDraft,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    row = await load_project(db, project_id)
    updated = await _record_usage(db, to_record(row), data)
    await save_project(db, row, updated)
    await db.commit()
    return _build_project_response(await reload_project(db, row.id))


# --- Task endpoints ---

@router.get("/{project_id}/tasks", response_model=List[records.Task])
async def list_tasks(
    project_id: str,
    milestone_id: str = "all",
    status: str = "all",
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    project = to_record(await load_project(db, project_id))
    return transitions.filter_tasks(project, milestone_id=milestone_id, status=status)


@router.post("/{project_id}/tasks", response_model=ProjectResponse)
async def add_task(
    project_id: str,
    data: records.TaskDraft,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    return await _transition(db, project_id, lambda p: transitions.add_task(p, data))


@router.put("/{project_id}/tasks/{task_id}/status", response_model=ProjectResponse)
async def set_task_status(
    project_id: str,
    task_id: str,
    data: TaskStatusChange,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    return await _transition(
        db, project_id, lambda p: transitions.set_task_status(p, task_id, data.status),
    )


# --- Assigned users ---

@router.post("/{project_id}/users", response_model=ProjectResponse)
async def assign_user(
    project_id: str,
    data: UserAssignment,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    user = _user_ref(await _get_user_or_404(db, data.user_id))
    return await _transition(db, project_id, lambda p: transitions.assign_user(p, user))


@router.delete("/{project_id}/users/{user_id}", response_model=ProjectResponse)
async def unassign_user(
    project_id: str,
    user_id: str,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    return await _transition(db, project_id, lambda p: transitions.unassign_user(p, user_id))
