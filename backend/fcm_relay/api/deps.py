from collections.abc import AsyncGenerator
from typing import Annotated

import httpx
from fastapi import Depends, HTTPException, Request, status

from fcm_relay.core.config import settings
from fcm_relay.core.service_account import ServiceAccountCredential


def get_service_account(request: Request) -> ServiceAccountCredential:
    credential = getattr(request.app.state, "service_account", None)
    if credential is None:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Service account not loaded",
        )
    return credential


async def get_http_client() -> AsyncGenerator[httpx.AsyncClient, None]:
    async with httpx.AsyncClient(timeout=settings.FCM_REQUEST_TIMEOUT_SECONDS) as client:
        yield client


ServiceAccountDep = Annotated[ServiceAccountCredential, Depends(get_service_account)]
HttpClientDep = Annotated[httpx.AsyncClient, Depends(get_http_client)]
