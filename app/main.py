"""Main FastAPI application entry point."""
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from app.database import engine, Base
from app.api.routes import router
from app.log import get_logger, setup_logging
# Import models to register them with SQLAlchemy Base
from app.models.domain import Campaign, Event, ImpactUpdate
from app.models.audit import AuditEvent

setup_logging()
logger = get_logger("main")

# Create database tables
Base.metadata.create_all(bind=engine)

# Create FastAPI app
app = FastAPI(
    title="Impact Reporting Service",
    description="Evidence-backed impact updates for fundraising events and campaigns, with reputation scoring and a trust gate.",
    version="0.1.0"
)

# Enable CORS for local development
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],  # For MVP - restrict in production
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Include API routes
app.include_router(router, prefix="/api", tags=["Impact"])
logger.info("app_started", service="impact-reporting")


# Health check
@app.get("/health")
def health_check():
    return {"status": "healthy", "service": "Impact Reporting"}


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=8000)
