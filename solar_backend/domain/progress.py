"""
Progress derivation and project roll-ups
"""
from collections import OrderedDict
from typing import Dict, Iterable, List

from solar_backend.domain.enums import MilestoneStatus, ProjectStatus
from solar_backend.domain.records import Milestone, Project


def round_half_up(numerator: int, denominator: int) -> int:
    """Integer percentage of numerator/denominator, halves rounded up"""
    return (200 * numerator + denominator) // (2 * denominator)


def milestone_progress(milestones: Iterable[Milestone]) -> int:
    milestones = list(milestones)
    completed = sum(1 for m in milestones if m.status == MilestoneStatus.COMPLETED)
    return round_half_up(completed, len(milestones))


def recompute_progress(project: Project) -> Project:
    """Return a copy of the project with progress derived from its milestones.

    A project whose milestones are all completed is marked Completed. With no
    milestones the project is returned unchanged.
    """
    if not project.milestones:
        return project

    progress = milestone_progress(project.milestones)
    status = ProjectStatus.COMPLETED if progress == 100 else project.status
    return project.model_copy(update={"progress": progress, "status": status})


def average_progress(projects: Iterable[Project]) -> int:
    projects = list(projects)
    if not projects:
        return 0
    return round_half_up(sum(p.progress for p in projects), 100 * len(projects))


def progress_by_county(projects: Iterable[Project]) -> List[Dict]:
    """Average progress per county, counties in first-seen order"""
    by_county: "OrderedDict[str, List[Project]]" = OrderedDict()
    for project in projects:
        by_county.setdefault(project.county, []).append(project)
    return [
        {"name": county, "value": average_progress(members)}
        for county, members in by_county.items()
    ]


def project_statistics(projects: Iterable[Project]) -> Dict:
    projects = list(projects)

    def count(status: ProjectStatus) -> int:
        return sum(1 for p in projects if p.status == status)

    return {
        "total": len(projects),
        "completed": count(ProjectStatus.COMPLETED),
        "in_progress": count(ProjectStatus.IN_PROGRESS),
        "planned": count(ProjectStatus.PLANNED),
        "on_hold": count(ProjectStatus.ON_HOLD),
        "average_progress": average_progress(projects),
        "progress_by_county": progress_by_county(projects),
    }
