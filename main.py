"""
Corporate Calendar Service
FastAPI app exposing meeting scheduling, conflict detection and free-slot search.
"""
import logging
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from app.config import get_settings
from app.routers import all_routers
from database.connection import create_tables

# Configure logging
logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)

settings = get_settings()

app = FastAPI(
    title="Corporate Calendar Service",
    description="Meeting scheduling with conflict detection and available-slot search",
    version="1.0.0"
)

for router in all_routers:
    app.include_router(router)


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    """Malformed request bodies are caller errors: 400 with the offending fields."""
    details = [
        {"field": ".".join(str(p) for p in err.get("loc", ())[1:]), "message": err.get("msg")}
        for err in exc.errors()
    ]
    return JSONResponse(status_code=400, content={"error": "Invalid request", "details": details})


@app.on_event("startup")
async def startup_event():
    """Initialize database"""
    create_tables()
    logger.info(f"🚀 Calendar service started ({settings.environment})")


if __name__ == "__main__":
    import uvicorn
    uvicorn.run("main:app", host="0.0.0.0", port=settings.port, reload=settings.environment == "development")
