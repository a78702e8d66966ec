"""
API endpoint tests for all routes.
Uses in-memory SQLite + dependency-overridden FastAPI test client.
"""
from datetime import date

from sqlalchemy import select

from solar_backend.models.service_order import ServiceOrder


async def _create_project(client, **overrides):
    payload = {
        "name": "Westlands Rooftop",
        "location": "Westlands",
        "county": "Nairobi",
        "capacity": "50 kW",
        "start_date": "2026-01-05",
        "target_completion_date": "2026-06-30",
    }
    payload.update(overrides)
    r = await client.post("/api/projects", json=payload)
    assert r.status_code == 200, r.text
    return r.json()


# ===================== HEALTH / ROOT =====================


async def test_root(client):
    r = await client.get("/")
    assert r.status_code == 200
    assert r.json()["status"] == "running"


async def test_health(client):
    r = await client.get("/health")
    assert r.status_code == 200
    assert r.json()["status"] == "healthy"


# ===================== AUTH =====================


async def test_login_success(unauth_client, seed_data):
    r = await unauth_client.post(
        "/api/auth/login",
        data={"username": "test@ofgen.co.ke", "password": "testpass123"},
    )
    assert r.status_code == 200
    assert "access_token" in r.json()


async def test_login_wrong_password(unauth_client, seed_data):
    r = await unauth_client.post(
        "/api/auth/login",
        data={"username": "test@ofgen.co.ke", "password": "wrong"},
    )
    assert r.status_code == 401


async def test_register_new_user_is_pending(unauth_client, seed_data):
    r = await unauth_client.post(
        "/api/auth/register",
        json={"email": "new@ofgen.co.ke", "name": "New User", "password": "pass123"},
    )
    assert r.status_code == 200
    assert r.json()["email"] == "new@ofgen.co.ke"
    assert r.json()["status"] == "pending"
    assert r.json()["role"] == "client"


async def test_register_duplicate_email(unauth_client, seed_data):
    r = await unauth_client.post(
        "/api/auth/register",
        json={"email": "test@ofgen.co.ke", "name": "Dup", "password": "pass123"},
    )
    assert r.status_code == 400


async def test_get_me(client):
    r = await client.get("/api/auth/me")
    assert r.status_code == 200
    assert r.json()["email"] == "test@ofgen.co.ke"


async def test_protected_route_no_token(unauth_client, seed_data):
    r = await unauth_client.get("/api/auth/me")
    assert r.status_code == 401


async def test_projects_require_token(unauth_client, seed_data):
    r = await unauth_client.get("/api/projects")
    assert r.status_code == 401


# ===================== LOCATIONS =====================


async def test_list_locations(client):
    r = await client.get("/api/locations")
    assert r.status_code == 200
    data = r.json()
    assert data["total"] == 2
    assert data["page"] == 1
    assert data["total_pages"] == 1


async def test_search_locations_case_insensitive(client):
    r = await client.get("/api/locations", params={"search": "NAIROBI"})
    assert r.status_code == 200
    names = [s["name"] for s in r.json()["items"]]
    assert names == ["Nairobi Solar Site 1"]


async def test_filter_locations_by_status(client):
    r = await client.get("/api/locations", params={"status": "inactive"})
    assert [s["id"] for s in r.json()["items"]] == ["SITE-KSM"]

    r = await client.get("/api/locations", params={"status": "all", "county": "Nairobi"})
    assert [s["id"] for s in r.json()["items"]] == ["SITE-NBO"]


async def test_location_page_is_clamped(client):
    r = await client.get("/api/locations", params={"page": 9, "page_size": 1})
    data = r.json()
    assert data["page"] == 2
    assert data["total_pages"] == 2
    assert len(data["items"]) == 1


async def test_create_location(client):
    r = await client.post("/api/locations", json={
        "name": "Mombasa Port Depot",
        "county": "mombasa",
        "address": "Kilindini",
        "latitude": -4.05,
        "longitude": 39.66,
        "capacity": 75,
    })
    assert r.status_code == 200
    data = r.json()
    assert data["id"].startswith("SITE-")
    assert data["county"] == "Mombasa"
    assert data["is_active"] is True


async def test_create_location_rejects_bad_latitude(client):
    r = await client.post("/api/locations", json={
        "name": "Nowhere", "county": "Nairobi", "latitude": 120,
    })
    assert r.status_code == 422


async def test_create_location_requires_county(client):
    r = await client.post("/api/locations", json={"name": "Nowhere", "county": "  "})
    assert r.status_code == 422


async def test_update_location(client):
    r = await client.patch("/api/locations/SITE-KSM", json={"is_active": True, "capacity": 30})
    assert r.status_code == 200
    assert r.json()["is_active"] is True
    assert r.json()["capacity"] == 30


async def test_get_location_not_found(client):
    r = await client.get("/api/locations/SITE-MISSING")
    assert r.status_code == 404


async def test_delete_location(client):
    r = await client.delete("/api/locations/SITE-KSM")
    assert r.status_code == 200
    r = await client.get("/api/locations/SITE-KSM")
    assert r.status_code == 404


async def test_delete_location_with_project_rejected(client):
    await _create_project(client, site_id="SITE-KSM")
    r = await client.delete("/api/locations/SITE-KSM")
    assert r.status_code == 400
    r = await client.get("/api/locations/SITE-KSM")
    assert r.status_code == 200


async def test_delete_location_with_service_order_rejected(client):
    r = await client.post("/api/service-orders", json={
        "title": "Inverter check", "site_id": "SITE-NBO", "issuer_id": "USER-TEST",
        "technician": "Alice", "order_type": "Inspection",
    })
    assert r.status_code == 200, r.text

    r = await client.delete("/api/locations/SITE-NBO")
    assert r.status_code == 400
    assert "service orders" in r.json()["detail"]


async def test_location_summary(client):
    r = await client.get("/api/locations/summary")
    assert r.status_code == 200
    data = r.json()
    assert data["total_sites"] == 2
    assert data["active_sites"] == 1
    assert data["total_capacity"] == 70
    assert data["recent_sites"] == 2
    assert {c["name"] for c in data["county_distribution"]} == {"Nairobi", "Kisumu"}


async def test_location_counties(client):
    r = await client.get("/api/locations/counties")
    assert r.json() == ["Kisumu", "Nairobi"]


# ===================== USERS =====================


async def test_list_users_filters_by_role(client):
    r = await client.get("/api/users", params={"role": "engineer"})
    assert r.status_code == 200
    assert [u["id"] for u in r.json()["items"]] == ["USER-ENG"]


async def test_search_users_by_company(client):
    r = await client.get("/api/users", params={"search": "ofgen"})
    # matches the company of one user and the email domain of both
    assert r.json()["total"] == 2


async def test_create_user(client):
    r = await client.post("/api/users", json={
        "name": "Brian Contractor",
        "email": "brian@ofgen.co.ke",
        "password": "secret",
        "role": "contractor",
    })
    assert r.status_code == 200
    assert r.json()["id"].startswith("USER-")
    assert "hashed_password" not in r.json()


async def test_create_user_duplicate_email(client):
    r = await client.post("/api/users", json={
        "name": "Dup", "email": "alice@ofgen.co.ke", "password": "x",
    })
    assert r.status_code == 400


async def test_update_user_status(client):
    r = await client.patch("/api/users/USER-ENG", json={"status": "inactive"})
    assert r.status_code == 200
    assert r.json()["status"] == "inactive"


async def test_delete_own_account_rejected(client):
    r = await client.delete("/api/users/USER-TEST")
    assert r.status_code == 400


async def test_delete_user(client):
    r = await client.delete("/api/users/USER-ENG")
    assert r.status_code == 200
    r = await client.get("/api/users/USER-ENG")
    assert r.status_code == 404


async def test_delete_user_with_service_orders_rejected(client):
    r = await client.post("/api/service-orders", json={
        "title": "Meter swap", "site_id": "SITE-NBO", "issuer_id": "USER-ENG",
        "technician": "Alice", "order_type": "Repair",
    })
    assert r.status_code == 200, r.text

    r = await client.delete("/api/users/USER-ENG")
    assert r.status_code == 400
    r = await client.get("/api/users/USER-ENG")
    assert r.status_code == 200


# ===================== INVENTORY =====================


async def test_list_inventory_by_category(client):
    r = await client.get("/api/inventory", params={"category": "Inverters"})
    assert [i["id"] for i in r.json()["items"]] == ["INV-1002"]


async def test_inventory_categories(client):
    r = await client.get("/api/inventory/categories")
    assert r.json() == ["Accessories", "Inverters", "Solar Panels"]


async def test_create_inventory_item(client):
    r = await client.post("/api/inventory", json={
        "name": "Grounding Kit", "category": "Installation",
        "unit_cost": 6000, "buying_price": 4500, "quantity": 20,
    })
    assert r.status_code == 200
    assert r.json()["id"].startswith("INV-")


async def test_create_inventory_item_negative_price(client):
    r = await client.post("/api/inventory", json={
        "name": "Broken", "category": "Installation", "unit_cost": -1,
    })
    assert r.status_code == 422


# ===================== PROJECTS =====================


async def test_create_project_adds_template_milestones(client):
    project = await _create_project(client, users=["USER-ENG"])

    assert project["id"].startswith("PRJ-")
    assert project["status"] == "Planned"
    assert project["progress"] == 0
    assert len(project["milestones"]) == 8
    assert project["milestones"][0]["id"] == f"{project['id']}-m1"
    assert project["milestones"][0]["title"] == "Site Assessment"
    assert project["milestones"][-1]["id"] == f"{project['id']}-m8"
    assert [u["id"] for u in project["users"]] == ["USER-ENG"]


async def test_create_minimal_project_then_mutate(client):
    r = await client.post("/api/projects", json={"name": "Thika Clinic", "county": "Kiambu"})
    assert r.status_code == 200, r.text
    project = r.json()
    pid = project["id"]
    assert project["users"] == []
    assert project["created_at"]

    r = await client.get(f"/api/projects/{pid}")
    assert r.status_code == 200
    assert len(r.json()["milestones"]) == 8

    r = await client.put(f"/api/projects/{pid}/milestones/{pid}-m2/status", json={"status": "In Progress"})
    assert r.status_code == 200
    assert r.json()["milestones"][1]["status"] == "In Progress"

    r = await client.get("/api/projects")
    assert [p["id"] for p in r.json()["items"]] == [pid]


async def test_create_project_with_own_milestones(client):
    project = await _create_project(client, milestones=[
        {"title": "Survey", "due_date": "2026-02-01"},
        {"title": "Install", "due_date": "2026-03-01", "status": "Completed"},
    ])
    assert [m["title"] for m in project["milestones"]] == ["Survey", "Install"]
    assert project["progress"] == 50


async def test_create_project_unknown_user(client):
    r = await client.post("/api/projects", json={"name": "X", "users": ["USER-NOPE"]})
    assert r.status_code == 404


async def test_get_project(client):
    project = await _create_project(client)
    r = await client.get(f"/api/projects/{project['id']}")
    assert r.status_code == 200
    assert r.json()["name"] == "Westlands Rooftop"


async def test_get_project_not_found(client):
    r = await client.get("/api/projects/PRJ-MISSING")
    assert r.status_code == 404


async def test_list_projects_search_and_filter(client):
    await _create_project(client)
    await _create_project(client, name="Kisumu School", location="Milimani", county="Kisumu")

    r = await client.get("/api/projects", params={"search": "westlands"})
    assert [p["name"] for p in r.json()["items"]] == ["Westlands Rooftop"]

    r = await client.get("/api/projects", params={"county": "Kisumu", "status": "All"})
    assert [p["name"] for p in r.json()["items"]] == ["Kisumu School"]


async def test_update_project(client):
    project = await _create_project(client)
    r = await client.patch(f"/api/projects/{project['id']}", json={
        "status": "In Progress", "site_id": "SITE-NBO",
    })
    assert r.status_code == 200
    assert r.json()["status"] == "In Progress"
    assert r.json()["site_id"] == "SITE-NBO"
    assert r.json()["name"] == "Westlands Rooftop"


async def test_delete_project(client):
    project = await _create_project(client)
    r = await client.delete(f"/api/projects/{project['id']}")
    assert r.status_code == 200
    r = await client.get(f"/api/projects/{project['id']}")
    assert r.status_code == 404


async def test_milestone_status_updates_progress(client):
    project = await _create_project(client)
    pid = project["id"]

    r = await client.put(f"/api/projects/{pid}/milestones/{pid}-m1/status", json={"status": "Completed"})
    assert r.status_code == 200
    data = r.json()
    assert data["progress"] == 13
    assert data["status"] == "Planned"
    assert data["milestones"][0]["completed_date"] == date.today().isoformat()


async def test_completing_every_milestone_completes_project(client):
    project = await _create_project(client, template_milestones=["Site Assessment", "Handover"])
    pid = project["id"]

    for milestone in project["milestones"]:
        r = await client.put(
            f"/api/projects/{pid}/milestones/{milestone['id']}/status", json={"status": "Completed"},
        )
    assert r.json()["progress"] == 100
    assert r.json()["status"] == "Completed"


async def test_milestone_status_unknown_milestone(client):
    project = await _create_project(client)
    r = await client.put(
        f"/api/projects/{project['id']}/milestones/nope/status", json={"status": "Completed"},
    )
    assert r.status_code == 404


async def test_add_milestone_requires_title(client):
    project = await _create_project(client)
    r = await client.post(f"/api/projects/{project['id']}/milestones", json={"due_date": "2026-05-01"})
    assert r.status_code == 422
    assert r.json()["field"] == "title"


async def test_add_and_edit_milestone(client):
    project = await _create_project(client, template_milestones=[])
    pid = project["id"]

    r = await client.post(f"/api/projects/{pid}/milestones", json={
        "title": "Commissioning", "due_date": "2026-05-01",
    })
    assert r.json()["milestones"][0]["id"] == f"{pid}-m1"

    r = await client.patch(f"/api/projects/{pid}/milestones/{pid}-m1", json={
        "title": "Commissioning & Handover", "status": "In Progress",
    })
    milestone = r.json()["milestones"][0]
    assert milestone["title"] == "Commissioning & Handover"
    assert milestone["status"] == "In Progress"


async def test_remove_milestone_keeps_progress(client):
    project = await _create_project(client, template_milestones=["Site Assessment", "Testing"])
    pid = project["id"]
    await client.put(f"/api/projects/{pid}/milestones/{pid}-m1/status", json={"status": "Completed"})

    r = await client.delete(f"/api/projects/{pid}/milestones/{pid}-m2")
    assert r.status_code == 200
    assert [m["id"] for m in r.json()["milestones"]] == [f"{pid}-m1"]
    assert r.json()["progress"] == 50


async def test_add_template_milestones(client):
    project = await _create_project(client, template_milestones=["Site Assessment"])
    pid = project["id"]
    r = await client.post(f"/api/projects/{pid}/template-milestones", json={
        "titles": ["Testing", "Not A Template", "Handover"],
    })
    assert [m["id"] for m in r.json()["milestones"]] == [f"{pid}-m1", f"{pid}-m2", f"{pid}-m3"]
    assert [m["title"] for m in r.json()["milestones"]] == ["Site Assessment", "Testing", "Handover"]


async def test_template_milestone_catalog(client):
    r = await client.get("/api/projects/template-milestones")
    assert len(r.json()) == 8
    assert r.json()[0]["title"] == "Site Assessment"


async def test_add_risk_and_mitigate(client):
    project = await _create_project(client)
    pid = project["id"]

    r = await client.post(f"/api/projects/{pid}/risks", json={
        "title": "Permit delay", "description": "County approvals backlog", "level": "High",
    })
    assert r.status_code == 200
    risk = r.json()["risks"][0]
    assert risk["id"] == f"{pid}-risk1"
    assert risk["status"] == "Open"
    assert risk["identified_date"] == date.today().isoformat()

    r = await client.put(f"/api/projects/{pid}/risks/{pid}-risk1/status", json={"status": "Mitigated"})
    assert r.json()["risks"][0]["resolved_date"] == date.today().isoformat()
    assert r.json()["progress"] == project["progress"]


async def test_add_risk_requires_description(client):
    project = await _create_project(client)
    r = await client.post(f"/api/projects/{project['id']}/risks", json={"title": "Theft"})
    assert r.status_code == 422
    assert r.json()["field"] == "description"


async def test_add_inventory_usage(client):
    project = await _create_project(client)
    pid = project["id"]
    r = await client.post(f"/api/projects/{pid}/inventory-usage", json={
        "item_id": "INV-1001", "quantity": 10, "used_by": "Alice Engineer",
    })
    assert r.status_code == 200
    usage = r.json()["inventory_usage"][0]
    assert usage["id"] == f"{pid}-inv1"
    assert usage["item_name"] == "Solar Panel 250W"
    assert usage["quantity"] == 10


async def test_add_inventory_usage_rejects_zero_quantity(client):
    project = await _create_project(client)
    pid = project["id"]
    r = await client.post(f"/api/projects/{pid}/inventory-usage", json={
        "item_id": "INV-1001", "quantity": 0,
    })
    assert r.status_code == 422
    assert r.json()["field"] == "quantity"

    r = await client.get(f"/api/projects/{pid}")
    assert r.json()["inventory_usage"] == []


async def test_add_inventory_usage_unknown_item(client):
    project = await _create_project(client)
    r = await client.post(f"/api/projects/{project['id']}/inventory-usage", json={
        "item_id": "INV-9999", "quantity": 1,
    })
    assert r.status_code == 404


async def test_tasks_add_filter_and_status(client):
    project = await _create_project(client)
    pid = project["id"]

    await client.post(f"/api/projects/{pid}/tasks", json={
        "title": "Book crane", "due_date": "2026-02-10", "milestone_id": f"{pid}-m4",
    })
    await client.post(f"/api/projects/{pid}/tasks", json={
        "title": "Submit permit forms", "due_date": "2026-01-20", "milestone_id": f"{pid}-m2",
    })
    r = await client.put(f"/api/projects/{pid}/tasks/{pid}-t2/status", json={"status": "Completed"})
    assert r.status_code == 200

    r = await client.get(f"/api/projects/{pid}/tasks", params={"milestone_id": f"{pid}-m4"})
    assert [t["title"] for t in r.json()] == ["Book crane"]

    r = await client.get(f"/api/projects/{pid}/tasks", params={"status": "Completed"})
    assert [t["id"] for t in r.json()] == [f"{pid}-t2"]


async def test_add_task_unknown_milestone(client):
    project = await _create_project(client)
    r = await client.post(f"/api/projects/{project['id']}/tasks", json={
        "title": "Orphan", "due_date": "2026-02-10", "milestone_id": "nope",
    })
    assert r.status_code == 404


async def test_assign_and_unassign_user(client):
    project = await _create_project(client)
    pid = project["id"]

    r = await client.post(f"/api/projects/{pid}/users", json={"user_id": "USER-ENG"})
    assert [u["id"] for u in r.json()["users"]] == ["USER-ENG"]

    r = await client.post(f"/api/projects/{pid}/users", json={"user_id": "USER-ENG"})
    assert len(r.json()["users"]) == 1

    r = await client.delete(f"/api/projects/{pid}/users/USER-ENG")
    assert r.json()["users"] == []


async def test_assigned_users_are_listed_by_name(client):
    project = await _create_project(client, users=["USER-TEST"])
    pid = project["id"]

    r = await client.post(f"/api/projects/{pid}/users", json={"user_id": "USER-ENG"})
    assert r.status_code == 200
    assert [u["name"] for u in r.json()["users"]] == ["Alice Engineer", "Test User"]


async def test_project_statistics(client):
    first = await _create_project(client, template_milestones=["Site Assessment", "Testing"])
    await _create_project(client, name="Kisumu School", county="Kisumu", status="On Hold")
    pid = first["id"]
    await client.put(f"/api/projects/{pid}/milestones/{pid}-m1/status", json={"status": "Completed"})

    r = await client.get("/api/projects/statistics")
    assert r.status_code == 200
    stats = r.json()
    assert stats["total"] == 2
    assert stats["planned"] == 1
    assert stats["on_hold"] == 1
    assert stats["average_progress"] == 25
    assert {c["name"]: c["value"] for c in stats["progress_by_county"]} == {"Nairobi": 50, "Kisumu": 0}


# ===================== SERVICE ORDERS =====================


async def test_estimate_service_order(client):
    r = await client.post("/api/service-orders/estimate", json={
        "parts": [{"item_id": "INV-1001", "quantity": 2}],
        "estimated_hours": 4, "labor_rate": 500,
        "travel_cost": 100, "other_costs": 50, "overhead_costs": 50,
    })
    assert r.status_code == 200
    costs = r.json()["costs"]
    assert costs["parts_revenue"] == 30000
    assert costs["parts_cost"] == 24000
    assert costs["labor_cost"] == 2000
    assert costs["total_cost"] == 26200
    assert costs["estimated_invoice"] == 32200
    assert costs["estimated_profit"] == 6000


async def test_estimate_uses_configured_defaults(client):
    r = await client.post("/api/service-orders/estimate", json={"parts": []})
    costs = r.json()["costs"]
    # 4h at 3500 plus 7500 + 2000 + 5000 pass-through
    assert costs["labor_cost"] == 14000
    assert costs["total_cost"] == 28500
    assert costs["estimated_profit"] == 0
    assert costs["estimated_margin"] == 0


async def test_estimate_prices_unknown_item_at_zero(client):
    r = await client.post("/api/service-orders/estimate", json={
        "parts": [{"item_id": "INV-9999", "quantity": 3}],
        "estimated_hours": 0, "labor_rate": 0, "travel_cost": 0, "other_costs": 0, "overhead_costs": 0,
    })
    data = r.json()
    assert data["lines"][0]["name"] == "Unknown Item"
    assert data["costs"]["parts_revenue"] == 0
    assert data["costs"]["estimated_margin"] == 0


async def test_create_service_order_stores_costs(client, db_session):
    r = await client.post("/api/service-orders", json={
        "title": "Battery bank replacement",
        "site_id": "SITE-NBO",
        "issuer_id": "USER-TEST",
        "technician": "Alice Engineer",
        "order_type": "Maintenance",
        "priority": "High",
        "parts": [{"item_id": "INV-1002", "quantity": 1}, {"item_id": "INV-1009", "quantity": 4}],
        "estimated_hours": 2, "labor_rate": 1000,
        "travel_cost": 0, "other_costs": 0, "overhead_costs": 0,
    })
    assert r.status_code == 200, r.text
    data = r.json()
    assert data["id"].startswith("SO-")
    assert data["parts_revenue"] == 47000
    assert data["parts_cost"] == 39200
    assert data["estimated_profit"] == 7800
    assert [p["item_name"] for p in data["parts"]] == ["Inverter 3kW", "Fuse 15A"]

    result = await db_session.execute(select(ServiceOrder).where(ServiceOrder.id == data["id"]))
    assert result.scalar_one().estimated_invoice == 49000


async def test_create_service_order_rejects_unknown_part(client):
    r = await client.post("/api/service-orders", json={
        "title": "Bad part", "site_id": "SITE-NBO", "issuer_id": "USER-TEST",
        "technician": "Alice", "order_type": "Installation",
        "parts": [{"item_id": "INV-9999", "quantity": 1}],
    })
    assert r.status_code == 422
    assert r.json()["field"] == "parts"


async def test_create_service_order_unknown_site(client):
    r = await client.post("/api/service-orders", json={
        "title": "Nowhere", "site_id": "SITE-NOPE", "issuer_id": "USER-TEST",
        "technician": "Alice", "order_type": "Installation",
    })
    assert r.status_code == 404


async def test_list_and_get_service_orders(client):
    r = await client.post("/api/service-orders", json={
        "title": "Panel cleaning", "site_id": "SITE-NBO", "issuer_id": "USER-TEST",
        "technician": "Alice", "order_type": "Maintenance", "priority": "Low",
    })
    order_id = r.json()["id"]

    r = await client.get("/api/service-orders", params={"priority": "Low"})
    assert [o["id"] for o in r.json()["items"]] == [order_id]

    r = await client.get(f"/api/service-orders/{order_id}")
    assert r.json()["title"] == "Panel cleaning"

    r = await client.get("/api/service-orders/SO-MISSING")
    assert r.status_code == 404
