"""
HTTP client for the dashboard's REST resources.

Carries the dashboard-side contracts: a 401 becomes UnauthorizedError
pointing at the unauthorized route, list fetches fall back to an empty list
when the API is unreachable, and form submissions go through a single-flight
SubmissionGuard.
"""
from enum import Enum
from typing import Any, Awaitable, Callable, Dict, List, Mapping, Optional, Tuple, Union

import httpx
from pydantic import BaseModel

from solar_backend.config import get_settings
from solar_backend.domain import costing
from solar_backend.domain.costing import CostSummary, PartLine, PartSelection
from solar_backend.domain.enums import MilestoneStatus, RiskStatus, ServiceOrderPriority
from solar_backend.domain.records import Project, UserRef
from solar_backend.utils.logger import get_logger

settings = get_settings()
logger = get_logger(__name__)

PROJECT_SUB_LISTS = ("milestones", "inventory_usage", "risks", "tasks")
# Required before a service order may be submitted
SERVICE_ORDER_REQUIRED = ("title", "site_id", "order_type", "technician", "issuer_id")


class ApiError(Exception):
    """Non-2xx response or transport failure"""

    def __init__(self, message: str, status_code: Optional[int] = None):
        self.message = message
        self.status_code = status_code
        super().__init__(message)


class UnauthorizedError(ApiError):
    """The API answered 401; the caller should send the user to redirect_to"""

    def __init__(self, redirect_to: Optional[str] = None):
        self.redirect_to = redirect_to or settings.UNAUTHORIZED_ROUTE
        super().__init__("Unauthorized", status_code=401)


# --- Payload serialization ---

def _as_dict(value: Union[BaseModel, Mapping]) -> Dict[str, Any]:
    if isinstance(value, BaseModel):
        return value.model_dump(mode="json")
    return dict(value)


def _user_id(user: Union[str, UserRef, Mapping]) -> str:
    if isinstance(user, str):
        return user
    if isinstance(user, Mapping):
        return user["id"]
    return user.id


def build_project_payload(project: Union[Project, Mapping]) -> Dict[str, Any]:
    """Create payload for a project: sub-list ids dropped, users as id strings"""
    payload = _as_dict(project)
    for key in PROJECT_SUB_LISTS:
        payload[key] = [
            {k: v for k, v in _as_dict(item).items() if k != "id"}
            for item in payload.get(key) or []
        ]
    payload["users"] = [_user_id(u) for u in payload.get("users") or []]
    return payload


class ServiceOrderForm(BaseModel):
    """Service order being filled in on the create screen"""

    title: str = ""
    site_id: str = ""
    issuer: Optional[UserRef] = None
    technician: str = ""
    order_type: str = ""
    priority: ServiceOrderPriority = ServiceOrderPriority.MEDIUM
    description: Optional[str] = None
    scheduled_date: Optional[str] = None
    existing_power_setup: Optional[str] = None
    proposed_power_setup: Optional[str] = None
    energy_demand: float = 0
    solar_capacity: float = 0
    battery_capacity: float = 0
    rectifier_details: Optional[str] = None
    estimated_solar_production: float = 0
    estimated_hours: float = settings.DEFAULT_ESTIMATED_HOURS
    labor_rate: float = settings.DEFAULT_LABOR_RATE
    travel_cost: float = settings.DEFAULT_TRAVEL_COST
    other_costs: float = settings.DEFAULT_OTHER_COSTS
    overhead_costs: float = settings.DEFAULT_OVERHEAD_COSTS
    notes: Optional[str] = None
    parts: List[PartSelection] = []

    def add_part(self, item_id: str) -> None:
        self.parts = costing.add_part(self.parts, item_id)

    def remove_part(self, item_id: str) -> None:
        self.parts = costing.remove_part(self.parts, item_id)

    def set_part_quantity(self, item_id: str, quantity: Optional[int]) -> None:
        self.parts = costing.set_part_quantity(self.parts, item_id, quantity)

    def missing_fields(self) -> List[str]:
        values = {**self.model_dump(), "issuer_id": self.issuer.id if self.issuer else ""}
        return [name for name in SERVICE_ORDER_REQUIRED if not values.get(name)]

    def estimate(self, catalog: Mapping[str, object]) -> CostSummary:
        """Cost summary against a local catalog copy; unknown parts count as zero"""
        lines = costing.price_parts(self.parts, catalog)
        return costing.compute_costs(
            lines,
            estimated_hours=self.estimated_hours,
            labor_rate=self.labor_rate,
            travel_cost=self.travel_cost,
            other_costs=self.other_costs,
            overhead_costs=self.overhead_costs,
        )


def build_service_order_payload(form: Union[ServiceOrderForm, Mapping]) -> Dict[str, Any]:
    """Create payload for a service order: issuer flattened to issuer_id, part ids only"""
    payload = _as_dict(form)
    issuer = payload.pop("issuer", None)
    if issuer is not None:
        payload["issuer_id"] = _user_id(issuer)
    payload["parts"] = [
        {"item_id": part["item_id"], "quantity": part["quantity"]}
        for part in (_as_dict(p) for p in payload.get("parts") or [])
    ]
    return payload


# --- Request state ---

class RequestState(str, Enum):
    IDLE = "idle"
    PENDING = "pending"
    SUCCESS = "success"
    FAILED = "failed"


class SubmissionGuard:
    """Single-flight wrapper for a form's submit button.

    submit() returns False without calling the operation while an earlier
    submission is still pending. API failures leave the guard FAILED with
    the error kept on ``error``; a 401 is re-raised so the caller can redirect.
    """

    def __init__(self):
        self.state = RequestState.IDLE
        self.result: Any = None
        self.error: Optional[ApiError] = None

    @property
    def pending(self) -> bool:
        return self.state == RequestState.PENDING

    async def submit(self, operation: Callable[[], Awaitable[Any]]) -> bool:
        if self.pending:
            logger.debug("Submission ignored, another one is pending")
            return False

        self.state = RequestState.PENDING
        self.result = None
        self.error = None
        try:
            self.result = await operation()
        except UnauthorizedError:
            self.state = RequestState.FAILED
            raise
        except ApiError as exc:
            self.state = RequestState.FAILED
            self.error = exc
            logger.warning(f"Submission failed: {exc.message}")
            return True
        except Exception:
            self.state = RequestState.FAILED
            raise

        self.state = RequestState.SUCCESS
        return True

    def reset(self) -> None:
        self.state = RequestState.IDLE
        self.result = None
        self.error = None


# --- Client ---

class SolarApiClient:
    """Async client for /api. Use as ``async with SolarApiClient(...) as api``."""

    def __init__(
        self,
        base_url: Optional[str] = None,
        token: Optional[str] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        timeout: Optional[float] = None,
    ):
        self.token = token
        self._client = httpx.AsyncClient(
            base_url=base_url or settings.API_BASE_URL,
            transport=transport,
            timeout=timeout or settings.API_TIMEOUT_SECONDS,
            follow_redirects=True,
        )

    async def __aenter__(self) -> "SolarApiClient":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.close()

    async def close(self) -> None:
        await self._client.aclose()

    def _headers(self) -> Dict[str, str]:
        return {"Authorization": f"Bearer {self.token}"} if self.token else {}

    async def _request(self, method: str, path: str, **kwargs) -> Any:
        try:
            response = await self._client.request(method, path, headers=self._headers(), **kwargs)
        except httpx.HTTPError as exc:
            raise ApiError(f"{method} {path} failed: {exc}") from exc

        if response.status_code == 401:
            logger.warning(f"{method} {path} unauthorized")
            raise UnauthorizedError()
        if response.is_error:
            try:
                detail = response.json().get("detail", response.text)
            except (ValueError, AttributeError):
                detail = response.text
            raise ApiError(f"{method} {path} returned {response.status_code}: {detail}", response.status_code)
        try:
            return response.json()
        except ValueError as exc:
            raise ApiError(f"{method} {path} returned a non-JSON body", response.status_code) from exc

    async def _fetch_list(self, path: str, label: str, params: Optional[Dict] = None) -> List[Dict]:
        """GET a list resource; errors other than 401 are logged and give []"""
        try:
            data = await self._request("GET", path, params=params)
        except UnauthorizedError:
            raise
        except ApiError as exc:
            logger.error(f"Failed to fetch {label}: {exc.message}")
            return []
        return data.get("items", []) if isinstance(data, dict) else data

    # Auth

    async def login(self, email: str, password: str) -> str:
        data = await self._request("POST", "/auth/login", data={"username": email, "password": password})
        self.token = data["access_token"]
        return self.token

    # Locations

    async def fetch_locations(self, **params) -> List[Dict]:
        return await self._fetch_list("/locations/", "sites", params)

    async def get_location(self, site_id: str) -> Dict:
        return await self._request("GET", f"/locations/{site_id}")

    async def create_location(self, data: Mapping) -> Dict:
        return await self._request("POST", "/locations/", json=dict(data))

    async def update_location(self, site_id: str, data: Mapping) -> Dict:
        return await self._request("PATCH", f"/locations/{site_id}", json=dict(data))

    async def delete_location(self, site_id: str) -> Dict:
        return await self._request("DELETE", f"/locations/{site_id}")

    # Projects

    async def fetch_projects(self, **params) -> List[Dict]:
        return await self._fetch_list("/projects/", "projects", params)

    async def get_project(self, project_id: str) -> Project:
        return Project.model_validate(await self._request("GET", f"/projects/{project_id}"))

    async def create_project(self, project: Union[Project, Mapping]) -> Project:
        data = await self._request("POST", "/projects/", json=build_project_payload(project))
        return Project.model_validate(data)

    async def update_project(self, project_id: str, data: Mapping) -> Project:
        return Project.model_validate(
            await self._request("PATCH", f"/projects/{project_id}", json=dict(data))
        )

    async def delete_project(self, project_id: str) -> Dict:
        return await self._request("DELETE", f"/projects/{project_id}")

    async def set_milestone_status(self, project_id: str, milestone_id: str, status: MilestoneStatus) -> Project:
        data = await self._request(
            "PUT", f"/projects/{project_id}/milestones/{milestone_id}/status",
            json={"status": MilestoneStatus(status).value},
        )
        return Project.model_validate(data)

    async def set_risk_status(self, project_id: str, risk_id: str, status: RiskStatus) -> Project:
        data = await self._request(
            "PUT", f"/projects/{project_id}/risks/{risk_id}/status",
            json={"status": RiskStatus(status).value},
        )
        return Project.model_validate(data)

    async def fetch_project_statistics(self) -> Dict:
        return await self._request("GET", "/projects/statistics")

    # Users

    async def fetch_users(self, **params) -> List[Dict]:
        return await self._fetch_list("/users/", "users", params)

    async def get_user(self, user_id: str) -> Dict:
        return await self._request("GET", f"/users/{user_id}")

    async def update_user(self, user_id: str, data: Mapping) -> Dict:
        return await self._request("PATCH", f"/users/{user_id}", json=dict(data))

    async def delete_user(self, user_id: str) -> Dict:
        return await self._request("DELETE", f"/users/{user_id}")

    # Inventory and service orders

    async def fetch_inventory(self, **params) -> List[Dict]:
        return await self._fetch_list("/inventory/", "inventory", params)

    async def estimate_service_order(self, form: ServiceOrderForm) -> Tuple[List[PartLine], CostSummary]:
        """Priced part lines and cost summary as computed by the API"""
        data = await self._request("POST", "/service-orders/estimate", json=build_service_order_payload(form))
        return [PartLine.model_validate(line) for line in data["lines"]], CostSummary.model_validate(data["costs"])

    async def create_service_order(self, form: Union[ServiceOrderForm, Mapping]) -> Dict:
        return await self._request("POST", "/service-orders/", json=build_service_order_payload(form))

