from fastapi import FastAPI, Request, Response

from fcm_relay.api.v1.api import api_router
from fcm_relay.core.config import settings
from fcm_relay.core.service_account import load_service_account

CORS_ALLOW_METHODS = "POST, OPTIONS"

app = FastAPI(
    title=settings.PROJECT_NAME,
    redoc_url=None,
)

app.include_router(api_router)


def with_cors_headers(response: Response) -> Response:
    response.headers["Access-Control-Allow-Origin"] = settings.CORS_ALLOW_ORIGIN
    response.headers["Access-Control-Allow-Methods"] = CORS_ALLOW_METHODS
    response.headers["Access-Control-Allow-Headers"] = ", ".join(settings.CORS_ALLOW_HEADERS)
    return response


# Every response, including 400/405/500, carries the full header set.
@app.middleware("http")
async def add_cors_headers(request: Request, call_next) -> Response:
    response = await call_next(request)
    return with_cors_headers(response)


@app.on_event("startup")
async def on_startup() -> None:
    # ConfigurationError propagates and aborts startup
    app.state.service_account = load_service_account(settings)
