from solar_backend.models.user import User
from solar_backend.models.site import Site
from solar_backend.models.inventory import InventoryItem
from solar_backend.models.project import (
    Project,
    Milestone,
    Risk,
    ProjectTask,
    InventoryUsage,
    project_users,
)
from solar_backend.models.service_order import ServiceOrder, ServiceOrderPart

__all__ = [
    "User",
    "Site",
    "InventoryItem",
    "Project",
    "Milestone",
    "Risk",
    "ProjectTask",
    "InventoryUsage",
    "project_users",
    "ServiceOrder",
    "ServiceOrderPart",
]
