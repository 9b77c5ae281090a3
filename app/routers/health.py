"""Service info, liveness and readiness endpoints."""
from fastapi import APIRouter, Depends
from datetime import datetime, timezone
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session
from database.connection import get_db

router = APIRouter()

@router.get("/")
async def root():
    return {"message": "Corporate Calendar Service", "status": "running", "version": "1.0.0"}

@router.get("/health")
async def health():
    """Simple liveness probe - always returns ok if service is running."""
    return {"status": "healthy", "ts": datetime.now(timezone.utc).isoformat()}

@router.get("/readiness")
async def readiness(db: Session = Depends(get_db)):
    """Readiness probe - checks database connectivity."""
    try:
        db.execute(text("SELECT 1"))
        return {"ready": True, "ts": datetime.now(timezone.utc).isoformat(), "database": "connected"}
    except SQLAlchemyError as e:
        return {"ready": False, "ts": datetime.now(timezone.utc).isoformat(), "database": f"error: {str(e)}"}
