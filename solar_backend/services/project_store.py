"""
Project store - loads project rows as immutable records and writes records back.

The transition functions in ``solar_backend.domain`` work on records only;
this module is the single place where a record is mapped onto the ORM rows
(scalar fields plus the milestone, risk, task, inventory and user lists).
"""
from datetime import datetime
from enum import Enum
from typing import List, Optional, Sequence

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from solar_backend.domain import records
from solar_backend.domain.exceptions import EntityNotFoundError
from solar_backend.models.project import (
    InventoryUsage,
    Milestone,
    Project,
    ProjectTask,
    Risk,
)
from solar_backend.models.user import User
from solar_backend.utils.logger import get_logger

logger = get_logger(__name__)

PROJECT_LOAD_OPTIONS = (
    selectinload(Project.milestones),
    selectinload(Project.risks),
    selectinload(Project.tasks),
    selectinload(Project.inventory_usage),
    selectinload(Project.users),
)

PROJECT_FIELDS = (
    "name", "location", "county", "capacity", "status", "start_date",
    "target_completion_date", "actual_completion_date", "progress",
)
MILESTONE_FIELDS = ("title", "description", "due_date", "completed_date", "status")
RISK_FIELDS = (
    "title", "description", "level", "status", "identified_date",
    "mitigation_plan", "resolved_date", "owner",
)
TASK_FIELDS = ("title", "description", "assigned_to", "due_date", "status", "milestone_id")
INVENTORY_FIELDS = ("item_id", "item_name", "quantity", "date_used", "used_by")


def _column_value(value):
    return value.value if isinstance(value, Enum) else value


def to_record(row: Project) -> records.Project:
    """Snapshot a fully loaded project row as an immutable record"""
    return records.Project.model_validate(row)


async def get_project_row(db: AsyncSession, project_id: str) -> Optional[Project]:
    result = await db.execute(
        select(Project).options(*PROJECT_LOAD_OPTIONS).where(Project.id == project_id)
    )
    return result.scalar_one_or_none()


async def load_project(db: AsyncSession, project_id: str) -> Project:
    """Fetch a project row with every owned collection loaded"""
    row = await get_project_row(db, project_id)
    if row is None:
        raise EntityNotFoundError("Project", project_id)
    return row


async def reload_project(db: AsyncSession, project_id: str) -> Project:
    """Re-select a committed project, overwriting the copy held in the session"""
    result = await db.execute(
        select(Project)
        .options(*PROJECT_LOAD_OPTIONS)
        .where(Project.id == project_id)
        .execution_options(populate_existing=True)
    )
    return result.scalar_one()


async def list_project_rows(db: AsyncSession) -> List[Project]:
    result = await db.execute(
        select(Project).options(*PROJECT_LOAD_OPTIONS).order_by(Project.created_at.desc())
    )
    return list(result.scalars().all())


def _sync_children(rows: Sequence, items: Sequence, model, project_id: str, fields: Sequence[str]) -> list:
    existing = {row.id: row for row in rows}
    synced = []
    for position, item in enumerate(items):
        row = existing.get(item.id) or model(id=item.id, project_id=project_id)
        for field in fields:
            setattr(row, field, _column_value(getattr(item, field)))
        row.position = position
        synced.append(row)
    return synced


async def save_project(db: AsyncSession, row: Project, record: records.Project) -> Project:
    """Write a record onto its row; children missing from the record are deleted"""
    for field in PROJECT_FIELDS:
        setattr(row, field, _column_value(getattr(record, field)))

    row.milestones = _sync_children(row.milestones, record.milestones, Milestone, row.id, MILESTONE_FIELDS)
    row.risks = _sync_children(row.risks, record.risks, Risk, row.id, RISK_FIELDS)
    row.tasks = _sync_children(row.tasks, record.tasks, ProjectTask, row.id, TASK_FIELDS)
    row.inventory_usage = _sync_children(
        row.inventory_usage, record.inventory_usage, InventoryUsage, row.id, INVENTORY_FIELDS,
    )

    user_ids = [u.id for u in record.users]
    by_id = {}
    if user_ids:
        result = await db.execute(select(User).where(User.id.in_(user_ids)))
        by_id = {u.id: u for u in result.scalars().all()}
    row.users = [by_id[uid] for uid in user_ids if uid in by_id]

    row.updated_at = datetime.utcnow()
    await db.flush()
    logger.debug("Saved project %s (progress=%s, status=%s)", row.id, row.progress, row.status)
    return row
