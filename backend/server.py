"""
Purchase Request Workflow - Backend Service
Two-step approval chain with notifications and audit history
"""

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from dotenv import load_dotenv
from pathlib import Path
import os
import logging

# Load environment variables
ROOT_DIR = Path(__file__).parent
load_dotenv(ROOT_DIR / '.env')

from database import settings
from routes.dependencies import memory_store, new_id, utcnow

# Create the main app
app = FastAPI(
    title="Purchase Request Workflow",
    description="Purchase requests with a Supervisor / C Level approval chain",
    version="1.0.0"
)

# Health check endpoint at root level (for Kubernetes)
@app.get("/health")
async def root_health_check():
    """Health check endpoint for Kubernetes liveness/readiness probes"""
    return {"status": "healthy", "storage": settings.storage_backend}

# ==================== Routes ====================
from routes.auth_routes import auth_router
from routes.users_routes import users_router
from routes.purchase_requests_routes import purchase_requests_router
from routes.notifications_routes import notifications_router

app.include_router(auth_router)
app.include_router(users_router)
app.include_router(purchase_requests_router)
app.include_router(notifications_router)

# ==================== CORS Configuration ====================
app.add_middleware(
    CORSMiddleware,
    allow_credentials=True,
    allow_origins=os.environ.get('CORS_ORIGINS', '*').split(','),
    allow_methods=["*"],
    allow_headers=["*"],
)

# ==================== Logging Configuration ====================
logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)
logger = logging.getLogger(__name__)

# ==================== Startup & Shutdown Events ====================
@app.on_event("startup")
async def startup_storage():
    """Prepare storage and seed demo data on startup"""
    logger.info("Starting Purchase Request Workflow (%s storage)...", settings.storage_backend)

    from database.seed import seed_demo_data

    if settings.uses_database:
        from database import init_postgres_db, get_session_maker
        from app.purchase_requests.infrastructure.sqlalchemy_repository import (
            SqlAlchemyPurchaseRequestRepository,
        )
        from app.users.infrastructure.sqlalchemy_repository import SqlAlchemyUserRepository

        await init_postgres_db()
        logger.info("PostgreSQL database initialized successfully")

        if settings.seed_demo_data:
            async with get_session_maker()() as session:
                await seed_demo_data(
                    SqlAlchemyUserRepository(session),
                    SqlAlchemyPurchaseRequestRepository(session),
                    id_generator=new_id,
                    clock=utcnow,
                )
    elif settings.seed_demo_data:
        from app.purchase_requests.infrastructure.memory_repository import (
            InMemoryPurchaseRequestRepository,
        )
        from app.users.infrastructure.memory_repository import InMemoryUserRepository

        await seed_demo_data(
            InMemoryUserRepository(memory_store),
            InMemoryPurchaseRequestRepository(memory_store),
            id_generator=new_id,
            clock=utcnow,
        )

@app.on_event("shutdown")
async def shutdown_storage():
    """Close database connections on shutdown"""
    logger.info("Shutting down...")

    if settings.uses_database:
        from database import close_postgres_db
        await close_postgres_db()
        logger.info("Database connections closed")
