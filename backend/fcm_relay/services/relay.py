"""Batch relay pipeline: sign, exchange, dispatch, aggregate.

Failures before dispatch completes abort the batch and produce a
PipelineFailure. Failures of individual sends stay inside the BatchResult.
"""

from __future__ import annotations

import json
import logging
import traceback
from typing import Sequence, Union

import httpx
from pydantic import ValidationError

from fcm_relay.core.config import settings
from fcm_relay.core.service_account import ServiceAccountCredential
from fcm_relay.schemas.push import (
    BatchResult,
    DispatchOutcomeResponse,
    NotificationRequest,
    PipelineFailure,
)
from fcm_relay.services import access_tokens
from fcm_relay.services import push_notifications
from fcm_relay.services.push_notifications import DispatchOutcome

logger = logging.getLogger(__name__)

RelayResult = Union[BatchResult, PipelineFailure]


class NotificationValidationError(ValueError):
    pass


def parse_notification_request(raw: bytes) -> NotificationRequest:
    try:
        data = json.loads(raw)
    except (json.JSONDecodeError, UnicodeDecodeError) as exc:
        logger.warning("Rejected request with invalid JSON: %s", exc)
        raise NotificationValidationError("Invalid JSON") from exc

    try:
        return NotificationRequest.model_validate(data)
    except ValidationError as exc:
        fields = sorted({str(error["loc"][0]) for error in exc.errors() if error["loc"]})
        logger.warning("Rejected request with missing or invalid fields: %s", fields)
        raise NotificationValidationError("Missing or invalid fields") from exc


def aggregate(outcomes: Sequence[DispatchOutcome]) -> BatchResult:
    return BatchResult(
        fcm_responses=[
            DispatchOutcomeResponse(status=outcome.status, body=outcome.body)
            for outcome in outcomes
        ]
    )


def aggregate_failure(exc: BaseException) -> PipelineFailure:
    stack = "".join(traceback.format_exception(type(exc), exc, exc.__traceback__))
    return PipelineFailure(fcm_response=str(exc) or exc.__class__.__name__, stack=stack)


async def relay_notification(
    request: NotificationRequest,
    *,
    credential: ServiceAccountCredential,
    client: httpx.AsyncClient,
) -> RelayResult:
    try:
        access_token = await access_tokens.get_access_token(client, credential)
        outcomes = await push_notifications.dispatch_batch(
            client,
            access_token,
            credential.project_id,
            request.tokens,
            request.title,
            request.body,
            max_concurrency=settings.FCM_MAX_CONCURRENCY,
        )
    except Exception as exc:
        logger.exception("FCM relay pipeline failed")
        return aggregate_failure(exc)

    return aggregate(outcomes)
