"""
Health API Routes
"""
from fastapi import APIRouter, Request, status
from fastapi.responses import JSONResponse

from swapstation.database import check_database_connection, database_health

router = APIRouter()


@router.get("/health")
async def health_check(request: Request) -> JSONResponse:
    """Application and database health"""
    db = database_health()
    ok = bool(db.get("ok")) and check_database_connection()
    sweeper = getattr(request.app.state, "sweeper", None)
    reservations = getattr(request.app.state, "reservations", None)
    return JSONResponse(
        status_code=status.HTTP_200_OK if ok else status.HTTP_503_SERVICE_UNAVAILABLE,
        content={
            "status": "healthy" if ok else "degraded",
            "database": db,
            "sweeper_running": bool(sweeper and sweeper.running),
            "live_reservations": len(reservations) if reservations is not None else 0,
        },
    )
