import asyncio
import logging
from dataclasses import dataclass
from typing import Any, Dict, Optional, Sequence

import httpx

from fcm_relay.core.config import settings
from fcm_relay.services.access_tokens import AccessToken

logger = logging.getLogger(__name__)

# Status recorded for a recipient whose send never produced an HTTP response
NO_RESPONSE_STATUS = 0


@dataclass(frozen=True)
class DispatchOutcome:
    status: int
    body: str

    @property
    def ok(self) -> bool:
        return 200 <= self.status < 300


class DispatchError(Exception):
    """A single recipient's send could not complete.

    Never propagated past the dispatcher: it is converted into that
    recipient's DispatchOutcome.
    """

    def __init__(self, message: str, status: int = NO_RESPONSE_STATUS) -> None:
        super().__init__(message)
        self.status = status

    def to_outcome(self) -> DispatchOutcome:
        return DispatchOutcome(status=self.status, body=str(self))


def _token_preview(token: str) -> str:
    return f"{token[:20]}..."


def build_message(token: str, title: str, body: str) -> Dict[str, Any]:
    return {
        "message": {
            "token": token,
            "notification": {
                "title": title,
                "body": body,
            },
        }
    }


def build_send_url(project_id: str) -> str:
    return settings.FCM_SEND_URL.format(project_id=project_id)


async def _post_message(
    client: httpx.AsyncClient,
    url: str,
    access_token: AccessToken,
    message: Dict[str, Any],
) -> httpx.Response:
    headers = {
        "Authorization": f"Bearer {access_token.value}",
        "Content-Type": "application/json",
    }
    try:
        return await client.post(url, json=message, headers=headers)
    except httpx.TimeoutException as exc:
        detail = str(exc) or "request timed out"
        raise DispatchError(f"Timeout: {detail}") from exc
    except httpx.HTTPError as exc:
        raise DispatchError(f"{exc.__class__.__name__}: {exc}") from exc


async def send_to_token(
    client: httpx.AsyncClient,
    url: str,
    access_token: AccessToken,
    token: str,
    title: str,
    body: str,
) -> DispatchOutcome:
    """Send one notification and report what happened.

    Provider statuses are passed through untouched; transport failures become
    an outcome with status 0 and an error description. Never raises.
    """
    message = build_message(token, title, body)
    try:
        response = await _post_message(client, url, access_token, message)
        outcome = DispatchOutcome(status=response.status_code, body=response.text)
    except DispatchError as exc:
        logger.warning(f"FCM send failed for token {_token_preview(token)}: {exc}")
        return exc.to_outcome()
    except Exception as exc:
        logger.error(
            f"Unexpected error sending FCM notification to {_token_preview(token)}: {exc}",
            exc_info=True,
        )
        return DispatchError(f"{exc.__class__.__name__}: {exc}").to_outcome()

    if outcome.ok:
        logger.info(f"Push notification sent successfully to token: {_token_preview(token)}")
    else:
        logger.warning(
            f"FCM request failed (status {outcome.status}) for token: {_token_preview(token)}"
        )
    return outcome


async def dispatch_batch(
    client: httpx.AsyncClient,
    access_token: AccessToken,
    project_id: str,
    tokens: Sequence[str],
    title: str,
    body: str,
    max_concurrency: Optional[int] = None,
) -> list[DispatchOutcome]:
    """Fan one notification out to every token.

    Sends run concurrently, at most ``max_concurrency`` at a time. The result
    list lines up with ``tokens`` position by position, and is only returned
    once every send has settled.
    """
    limit = max_concurrency or settings.FCM_MAX_CONCURRENCY
    semaphore = asyncio.Semaphore(max(1, limit))
    url = build_send_url(project_id)

    async def _bounded_send(token: str) -> DispatchOutcome:
        async with semaphore:
            return await send_to_token(client, url, access_token, token, title, body)

    outcomes = await asyncio.gather(*(_bounded_send(token) for token in tokens))

    delivered = sum(1 for outcome in outcomes if outcome.ok)
    logger.info(f"Sent push notification to {delivered}/{len(tokens)} devices")
    return list(outcomes)
