from fastapi import APIRouter, Request
from fastapi.responses import JSONResponse

from api.dependencies.rate_limits import get_limiter
from infrastructure.services import DatabaseDep, SettingsDep

router = APIRouter(tags=["System"])
limiter = get_limiter()


# Load balancers poll these endpoints frequently; the limit only guards against abuse
@router.get("/version")
@limiter.limit("50/minute")
def get_version(request: Request, settings: SettingsDep):  # pylint: disable=unused-argument
    """Get the version of the application."""
    return {"version": settings.GIT_SHA}


@router.get("/health")
@limiter.limit("50/minute")
def get_health(request: Request, database: DatabaseDep):  # pylint: disable=unused-argument
    """Healthcheck endpoint. Answers 503 when the database is unreachable."""
    result = database.health_check()
    if not result.is_success:
        return JSONResponse(
            status_code=503,
            content={"status": "unavailable", "database": result.message},
        )
    return {"status": "ok", "database": "ok"}
