from fastapi import APIRouter, Request, status
from fastapi.responses import JSONResponse, PlainTextResponse

from fcm_relay.api.deps import HttpClientDep, ServiceAccountDep
from fcm_relay.schemas.push import BatchResult, PipelineFailure
from fcm_relay.services import relay as relay_service

router = APIRouter()


@router.options("/", include_in_schema=False)
async def preflight() -> PlainTextResponse:
    """Answer CORS pre-flight requests unconditionally."""
    return PlainTextResponse("ok", status_code=status.HTTP_200_OK)


@router.post(
    "/",
    response_model=BatchResult,
    responses={
        status.HTTP_400_BAD_REQUEST: {"description": "Invalid JSON or missing fields"},
        status.HTTP_500_INTERNAL_SERVER_ERROR: {"model": PipelineFailure},
    },
)
async def relay_push_notification(
    request: Request,
    credential: ServiceAccountDep,
    client: HttpClientDep,
):
    """Send one notification to every token in the batch.

    The body is parsed by hand so that malformed JSON and missing fields are
    answered with 400 rather than FastAPI's 422.
    """
    try:
        notification = relay_service.parse_notification_request(await request.body())
    except relay_service.NotificationValidationError as exc:
        return PlainTextResponse(str(exc), status_code=status.HTTP_400_BAD_REQUEST)

    result = await relay_service.relay_notification(
        notification,
        credential=credential,
        client=client,
    )
    return JSONResponse(
        content=result.model_dump(by_alias=True),
        status_code=result.fcm_status,
    )
