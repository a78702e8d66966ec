"""
Immutable project records.

Transition functions never mutate these; they return copies built with
``model_copy(update=...)``. Drafts carry the unvalidated form input for the
``add_*`` operations and may leave required fields empty.
"""
from datetime import date
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field

from solar_backend.domain.enums import (
    MilestoneStatus,
    ProjectStatus,
    RiskLevel,
    RiskStatus,
    TaskStatus,
)


class Record(BaseModel):
    model_config = ConfigDict(frozen=True, from_attributes=True)


class UserRef(Record):
    id: str
    name: str
    email: str


class Milestone(Record):
    id: str
    title: str
    description: str = ""
    due_date: date
    completed_date: Optional[date] = None
    status: MilestoneStatus = MilestoneStatus.PENDING


class Risk(Record):
    id: str
    title: str
    description: str
    level: RiskLevel = RiskLevel.MEDIUM
    status: RiskStatus = RiskStatus.OPEN
    identified_date: date
    mitigation_plan: Optional[str] = None
    resolved_date: Optional[date] = None
    owner: str = ""


class Task(Record):
    id: str
    title: str
    description: str = ""
    assigned_to: str = ""
    due_date: Optional[date] = None
    status: TaskStatus = TaskStatus.TODO
    milestone_id: Optional[str] = None


class InventoryUsage(Record):
    id: str
    item_id: str
    item_name: str
    quantity: int = Field(ge=1)
    date_used: date
    used_by: str = ""


class Project(Record):
    id: str
    name: str
    location: str = ""
    county: str = ""
    capacity: str = ""
    status: ProjectStatus = ProjectStatus.PLANNED
    start_date: Optional[date] = None
    target_completion_date: Optional[date] = None
    actual_completion_date: Optional[date] = None
    progress: int = Field(default=0, ge=0, le=100)
    milestones: List[Milestone] = []
    inventory_usage: List[InventoryUsage] = []
    risks: List[Risk] = []
    tasks: List[Task] = []
    users: List[UserRef] = []


# --- Drafts ---

class MilestoneDraft(BaseModel):
    title: Optional[str] = None
    description: str = ""
    due_date: Optional[date] = None
    status: MilestoneStatus = MilestoneStatus.PENDING


class RiskDraft(BaseModel):
    title: Optional[str] = None
    description: Optional[str] = None
    level: RiskLevel = RiskLevel.MEDIUM
    status: RiskStatus = RiskStatus.OPEN
    identified_date: Optional[date] = None
    mitigation_plan: Optional[str] = None
    resolved_date: Optional[date] = None
    owner: str = ""


class InventoryUsageDraft(BaseModel):
    item_id: Optional[str] = None
    quantity: Optional[int] = None
    date_used: Optional[date] = None
    used_by: str = ""


class TaskDraft(BaseModel):
    title: Optional[str] = None
    description: str = ""
    assigned_to: str = ""
    due_date: Optional[date] = None
    status: TaskStatus = TaskStatus.TODO
    milestone_id: Optional[str] = None
