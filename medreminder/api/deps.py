from typing import Optional

from fastapi import Header, HTTPException, status

from medreminder.core.config import settings
from medreminder.db.session import get_db  # noqa: F401
from medreminder.reminders.jobs import CeleryJobScheduler, JobScheduler


def get_job_scheduler() -> JobScheduler:
    return CeleryJobScheduler()


def verify_api_key_dependency(
    x_api_key: Optional[str] = Header(None),
    authorization: Optional[str] = Header(None),
) -> bool:
    """Check X-API-Key (or a Bearer token) when API keys are configured."""
    if not settings.VALID_API_KEYS:
        return True

    api_key = None
    if x_api_key:
        api_key = x_api_key
    elif authorization and authorization.startswith("Bearer "):
        api_key = authorization.split(" ")[1]

    if not api_key or api_key not in settings.VALID_API_KEYS:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid or missing API key",
        )
    return True
