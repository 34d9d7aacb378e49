from fastapi import APIRouter

from fcm_relay.api.deps import ServiceAccountDep
from fcm_relay.core.config import settings

router = APIRouter()


@router.get("/health")
def get_health(credential: ServiceAccountDep) -> dict[str, object]:
    """Readiness probe.

    Answers 503 until the service account has been loaded at startup.
    """
    return {
        "status": "ok",
        "project_id": credential.project_id,
        "token_cache_enabled": settings.FCM_TOKEN_CACHE_ENABLED,
    }
