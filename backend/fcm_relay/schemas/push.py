from typing import List, Literal

from pydantic import BaseModel, ConfigDict, Field


class NotificationRequest(BaseModel):
    """Request body for relaying one notification to a batch of devices."""

    tokens: List[str] = Field(min_length=1)
    title: str = Field(min_length=1)
    body: str = Field(min_length=1)


class DispatchOutcomeResponse(BaseModel):
    """Provider status and raw response body for a single device token."""

    status: int
    body: str


class BatchResult(BaseModel):
    """Pipeline completed; per-token results are in input order.

    ``fcmStatus`` is 200 even when every individual send failed.
    """
    model_config = ConfigDict(populate_by_name=True)

    fcm_status: Literal[200] = Field(default=200, alias="fcmStatus")
    fcm_responses: List[DispatchOutcomeResponse] = Field(alias="fcmResponses")


class PipelineFailure(BaseModel):
    """Nothing was sent: signing or token exchange failed."""
    model_config = ConfigDict(populate_by_name=True)

    fcm_status: Literal[500] = Field(default=500, alias="fcmStatus")
    fcm_response: str = Field(alias="fcmResponse")
    stack: str
