import logging

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from app.api.v1.api import api_router
from app.core.config import settings
from app.core import scheduler

logging.basicConfig(
    level=settings.LOG_LEVEL.upper(),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)

app = FastAPI(title="Maintenance Indent Tracker")

# Set up CORS

app.add_middleware(
        CORSMiddleware,
        allow_origins=[str(origin) for origin in settings.BACKEND_CORS_ORIGINS],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

# Include API router
app.include_router(api_router, prefix=settings.API_V1_STR)

@app.on_event("startup")
async def startup_event():
    """Create the mutation ledger table and start the dashboard refresh job"""
    try:
        from app.db.database import init_db
        init_db()
    except Exception as e:
        logger.error(f"Could not initialize the mutation ledger: {e}")
        logger.error("Please run 'python init_db.py' manually to create the database tables.")

    scheduler.start()

@app.on_event("shutdown")
async def shutdown_event():
    scheduler.shutdown()

@app.get("/")
async def root():
    return {"message": "Maintenance Indent Tracker API"}

@app.get("/favicon.ico")
async def favicon():
    """Handle favicon requests to avoid 404 errors"""
    from fastapi.responses import Response
    return Response(status_code=204)
