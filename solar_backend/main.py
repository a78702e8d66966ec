"""
Main FastAPI application
"""
import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from solar_backend.config import get_settings
from solar_backend.database import AsyncSessionLocal, create_tables
from solar_backend.domain.enums import UserRole, UserStatus
from solar_backend.domain.exceptions import DomainError
from solar_backend.models import InventoryItem, User
from solar_backend.api.auth import get_password_hash
from solar_backend.api import auth, inventory, projects, service_orders, sites, users

settings = get_settings()
logger = logging.getLogger(__name__)

# (id, name, category, selling price, buying price, stock, specifications)
DEFAULT_INVENTORY = [
    ("INV-1001", "Solar Panel 250W", "Solar Panels", 15000, 12000, 25,
     "Monocrystalline, 250W, 24V, Efficiency: 21%, Dimensions: 1650x992x35mm"),
    ("INV-1002", "Inverter 3kW", "Inverters", 45000, 38000, 12,
     "Pure Sine Wave, 3kW, 48V, MPPT, Efficiency: 97%, LCD Display"),
    ("INV-1003", "Battery 12V 200Ah", "Batteries", 32000, 26000, 18,
     "Lithium Iron Phosphate, 12V, 200Ah, 2400Wh, Cycle Life: 4000 cycles"),
    ("INV-1004", "Mounting Bracket", "Mounting Systems", 4500, 3200, 40,
     "Aluminum, Adjustable Tilt: 10-60°, Wind Resistance: 60m/s"),
    ("INV-1005", "Solar Cable 10m", "Cables & Wiring", 2500, 1800, 60,
     "6mm², Double Insulated, UV Resistant, Temperature Range: -40°C to +90°C"),
    ("INV-1006", "MC4 Connector Pair", "Connectors", 800, 500, 100,
     "IP67 Waterproof, 30A, 1000V DC, TÜV Certified"),
    ("INV-1007", "Charge Controller 30A", "Controllers", 12000, 9500, 15,
     "MPPT, 30A, 12/24V Auto, LCD Display, Max PV Input: 150V"),
    ("INV-1008", "Junction Box", "Accessories", 3500, 2500, 30,
     "IP65 Waterproof, 4-Way, UV Resistant, Pre-wired"),
    ("INV-1009", "Fuse 15A", "Accessories", 500, 300, 50,
     "15A, 1000V DC, gPV Type, 10x38mm"),
    ("INV-1010", "Grounding Kit", "Installation", 6000, 4500, 20,
     "Copper Wire 6mm², Ground Rod 1.2m, Clamps and Connectors Included"),
    ("INV-1011", "Rectifier 48V 50A", "Power Systems", 35000, 28000, 8,
     "Input: 180-264VAC, Output: 48VDC, 50A, Efficiency: 96%, Hot-swappable"),
    ("INV-1012", "Battery Monitor", "Monitoring", 8500, 6800, 15,
     "Bluetooth, App Control, SOC Display, Voltage Range: 8-70V"),
]


async def seed_defaults(session: AsyncSession) -> None:
    """Seed the admin account and the parts catalog when missing"""
    result = await session.execute(select(User).where(User.email == settings.ADMIN_EMAIL))
    if not result.scalar_one_or_none():
        session.add(User(
            id="USER-ADMIN",
            name=settings.ADMIN_NAME,
            email=settings.ADMIN_EMAIL,
            role=UserRole.MANAGEMENT.value,
            status=UserStatus.ACTIVE.value,
            hashed_password=get_password_hash(settings.ADMIN_PASSWORD),
            is_admin=True,
        ))
        logger.info("Created default admin user")

    result = await session.execute(select(InventoryItem))
    if not result.scalars().first():
        for item_id, name, category, selling, buying, stock, specs in DEFAULT_INVENTORY:
            session.add(InventoryItem(
                id=item_id,
                name=name,
                category=category,
                unit_cost=selling,
                buying_price=buying,
                quantity=stock,
                specifications=specs,
            ))
        logger.info(f"Seeded {len(DEFAULT_INVENTORY)} inventory items")

    await session.commit()


@asynccontextmanager
async def lifespan(app: FastAPI):
    await create_tables()
    logger.info("Database tables created")

    async with AsyncSessionLocal() as session:
        await seed_defaults(session)

    yield


app = FastAPI(
    title=settings.APP_NAME,
    version=settings.APP_VERSION,
    debug=settings.DEBUG,
    lifespan=lifespan,
)

# CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(DomainError)
async def domain_error_handler(request: Request, exc: DomainError):
    logger.info(f"{request.method} {request.url.path} rejected: {exc.message}")
    return JSONResponse(
        status_code=exc.status_code,
        content={"detail": exc.message, "field": exc.field},
    )


# Include routers
app.include_router(auth.router, prefix="/api/auth", tags=["Authentication"])
app.include_router(sites.router, prefix="/api/locations", tags=["Locations"])
app.include_router(projects.router, prefix="/api/projects", tags=["Projects"])
app.include_router(users.router, prefix="/api/users", tags=["Users"])
app.include_router(inventory.router, prefix="/api/inventory", tags=["Inventory"])
app.include_router(service_orders.router, prefix="/api/service-orders", tags=["Service Orders"])


@app.get("/")
async def root():
    return {
        "app": settings.APP_NAME,
        "version": settings.APP_VERSION,
        "status": "running"
    }


@app.get("/health")
async def health_check():
    return {"status": "healthy"}


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(
        "solar_backend.main:app",
        host="0.0.0.0",
        port=8000,
        reload=settings.DEBUG
    )
