"""
State transition rules for projects and their owned collections.

Every function takes a Project record and returns a new one; the input is
never modified. Child ids are scoped to the project as
``{project_id}-{kind}{index}``.
"""
from datetime import date, timedelta
from typing import List, Optional, Sequence, TypeVar

from solar_backend.domain.enums import (
    MilestoneStatus,
    RESOLVING_RISK_STATUSES,
    RiskStatus,
    TaskStatus,
)
from solar_backend.domain.exceptions import DraftValidationError, EntityNotFoundError
from solar_backend.domain.progress import recompute_progress
from solar_backend.domain.records import (
    InventoryUsage,
    InventoryUsageDraft,
    Milestone,
    MilestoneDraft,
    Project,
    Risk,
    RiskDraft,
    Task,
    TaskDraft,
    UserRef,
)
from solar_backend.utils.logger import get_logger

logger = get_logger(__name__)

T = TypeVar("T")

MILESTONE_PREFIX = "m"
RISK_PREFIX = "risk"
INVENTORY_PREFIX = "inv"
TASK_PREFIX = "t"

TEMPLATE_MILESTONES = [
    ("Site Assessment", "Initial site assessment and feasibility study"),
    ("Permit Acquisition", "Obtain necessary permits and approvals"),
    ("Material Procurement", "Procure solar panels and other equipment"),
    ("Installation Start", "Begin installation of mounting structures and panels"),
    ("Electrical Work", "Complete electrical wiring and connections"),
    ("Testing", "System testing and quality assurance"),
    ("Grid Connection", "Connect system to the grid and finalize"),
    ("Handover", "Final inspection and client handover"),
]


# --- Helpers ---

def next_child_id(project_id: str, prefix: str, existing: Sequence) -> str:
    """First free ``{project_id}-{prefix}{n}`` starting at len(existing) + 1"""
    taken = {item.id for item in existing}
    index = len(existing) + 1
    while f"{project_id}-{prefix}{index}" in taken:
        index += 1
    return f"{project_id}-{prefix}{index}"


def _find(items: Sequence[T], item_id: str, entity: str) -> T:
    for item in items:
        if item.id == item_id:
            return item
    raise EntityNotFoundError(entity, item_id)


def _replace(items: Sequence[T], updated: T) -> List[T]:
    return [updated if item.id == updated.id else item for item in items]


def _require(value, field: str, message: str) -> None:
    if value is None or (isinstance(value, str) and not value.strip()):
        raise DraftValidationError(message, field)


# --- Milestones ---

def set_milestone_status(
    project: Project,
    milestone_id: str,
    new_status: MilestoneStatus,
    today: Optional[date] = None,
) -> Project:
    """Set a milestone's status and re-derive the project's progress.

    Completing a milestone stamps completed_date with today. Any other status
    leaves completed_date as it was, including a date stamped by an earlier
    completion.
    """
    new_status = MilestoneStatus(new_status)
    milestone = _find(project.milestones, milestone_id, "Milestone")

    changes = {"status": new_status}
    if new_status == MilestoneStatus.COMPLETED:
        changes["completed_date"] = today or date.today()

    updated = milestone.model_copy(update=changes)
    project = project.model_copy(update={"milestones": _replace(project.milestones, updated)})
    project = recompute_progress(project)
    logger.debug(
        "Milestone %s -> %s (project %s progress=%s status=%s)",
        milestone_id, new_status.value, project.id, project.progress, project.status.value,
    )
    return project


def add_milestone(project: Project, draft: MilestoneDraft) -> Project:
    _require(draft.title, "title", "Milestone title is required")
    _require(draft.due_date, "due_date", "Milestone due date is required")

    milestone = Milestone(
        id=next_child_id(project.id, MILESTONE_PREFIX, project.milestones),
        title=draft.title.strip(),
        description=draft.description,
        due_date=draft.due_date,
        status=draft.status,
    )
    return project.model_copy(update={"milestones": [*project.milestones, milestone]})


def update_milestone(
    project: Project,
    milestone_id: str,
    title: Optional[str] = None,
    description: Optional[str] = None,
    due_date: Optional[date] = None,
) -> Project:
    """Edit a milestone's descriptive fields; status goes through set_milestone_status"""
    milestone = _find(project.milestones, milestone_id, "Milestone")
    changes = {}
    if title is not None:
        _require(title, "title", "Milestone title is required")
        changes["title"] = title.strip()
    if description is not None:
        changes["description"] = description
    if due_date is not None:
        changes["due_date"] = due_date

    updated = milestone.model_copy(update=changes)
    return project.model_copy(update={"milestones": _replace(project.milestones, updated)})


def remove_milestone(project: Project, milestone_id: str) -> Project:
    """Drop a milestone. Progress is left as it was until the next status change."""
    _find(project.milestones, milestone_id, "Milestone")
    remaining = [m for m in project.milestones if m.id != milestone_id]
    return project.model_copy(update={"milestones": remaining})


def add_template_milestones(
    project: Project,
    titles: Sequence[str],
    today: Optional[date] = None,
    spacing_days: int = 14,
) -> Project:
    """Append the selected standard milestones, due dates spaced spacing_days apart"""
    today = today or date.today()
    templates = dict(TEMPLATE_MILESTONES)
    milestones = list(project.milestones)

    position = 0
    for title in titles:
        if title not in templates:
            logger.debug("Skipping unknown template milestone %r", title)
            continue
        position += 1
        milestones.append(Milestone(
            id=next_child_id(project.id, MILESTONE_PREFIX, milestones),
            title=title,
            description=templates[title],
            due_date=today + timedelta(days=position * spacing_days),
            status=MilestoneStatus.PENDING,
        ))

    return project.model_copy(update={"milestones": milestones})


# --- Risks ---

def set_risk_status(
    project: Project,
    risk_id: str,
    new_status: RiskStatus,
    today: Optional[date] = None,
) -> Project:
    """Set a risk's status; Mitigated and Closed stamp resolved_date"""
    new_status = RiskStatus(new_status)
    risk = _find(project.risks, risk_id, "Risk")

    changes = {"status": new_status}
    if new_status in RESOLVING_RISK_STATUSES:
        changes["resolved_date"] = today or date.today()

    updated = risk.model_copy(update=changes)
    return project.model_copy(update={"risks": _replace(project.risks, updated)})


def add_risk(project: Project, draft: RiskDraft, today: Optional[date] = None) -> Project:
    _require(draft.title, "title", "Risk title is required")
    _require(draft.description, "description", "Risk description is required")

    risk = Risk(
        id=next_child_id(project.id, RISK_PREFIX, project.risks),
        title=draft.title.strip(),
        description=draft.description,
        level=draft.level,
        status=draft.status,
        identified_date=draft.identified_date or today or date.today(),
        mitigation_plan=draft.mitigation_plan,
        resolved_date=draft.resolved_date,
        owner=draft.owner,
    )
    return project.model_copy(update={"risks": [*project.risks, risk]})


# --- Inventory ---

def add_inventory_usage(
    project: Project,
    draft: InventoryUsageDraft,
    item_name: str,
    today: Optional[date] = None,
) -> Project:
    """Record catalog stock used on the project.

    item_name is the catalog name at the time of use; the record keeps it
    even if the catalog entry is renamed later.
    """
    _require(draft.item_id, "item_id", "Inventory item is required")
    if draft.quantity is None or draft.quantity < 1:
        raise DraftValidationError("Quantity must be at least 1", "quantity")

    usage = InventoryUsage(
        id=next_child_id(project.id, INVENTORY_PREFIX, project.inventory_usage),
        item_id=draft.item_id,
        item_name=item_name,
        quantity=draft.quantity,
        date_used=draft.date_used or today or date.today(),
        used_by=draft.used_by,
    )
    return project.model_copy(update={"inventory_usage": [*project.inventory_usage, usage]})


# --- Tasks ---

def add_task(project: Project, draft: TaskDraft) -> Project:
    _require(draft.title, "title", "Task title is required")
    _require(draft.due_date, "due_date", "Task due date is required")
    if draft.milestone_id is not None:
        _find(project.milestones, draft.milestone_id, "Milestone")

    task = Task(
        id=next_child_id(project.id, TASK_PREFIX, project.tasks),
        title=draft.title.strip(),
        description=draft.description,
        assigned_to=draft.assigned_to,
        due_date=draft.due_date,
        status=draft.status,
        milestone_id=draft.milestone_id,
    )
    return project.model_copy(update={"tasks": [*project.tasks, task]})


def set_task_status(project: Project, task_id: str, new_status: TaskStatus) -> Project:
    task = _find(project.tasks, task_id, "Task")
    updated = task.model_copy(update={"status": TaskStatus(new_status)})
    return project.model_copy(update={"tasks": _replace(project.tasks, updated)})


def filter_tasks(project: Project, milestone_id: str = "all", status: str = "all") -> List[Task]:
    """Tasks matching a milestone and a status; "all" bypasses either filter"""
    return [
        task for task in project.tasks
        if (milestone_id == "all" or task.milestone_id == milestone_id)
        and (status == "all" or task.status == status)
    ]


# --- Users ---

def assign_user(project: Project, user: UserRef) -> Project:
    """Link a user to the project; already-assigned users are left alone"""
    if any(u.id == user.id for u in project.users):
        return project
    return project.model_copy(update={"users": [*project.users, user]})


def unassign_user(project: Project, user_id: str) -> Project:
    _find(project.users, user_id, "User")
    return project.model_copy(update={"users": [u for u in project.users if u.id != user_id]})
