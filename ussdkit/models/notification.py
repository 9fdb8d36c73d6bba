"""End-of-session notification posted by the gateway.

The gateway calls the notification URL once a session has finished,
whatever the outcome.  It is fire-and-forget: only an HTTP 200 is
expected back, and no flow state depends on it.
"""

from __future__ import annotations

from collections.abc import Mapping
from datetime import UTC, datetime
from typing import Any, Final

from pydantic import BaseModel, ConfigDict, Field

from ussdkit.models.enums import SessionStatus

_GATEWAY_DATE_FORMAT: Final[str] = "%Y-%m-%d %H:%M:%S"


class SessionNotification(BaseModel):
    model_config = ConfigDict(frozen=True, populate_by_name=True)

    date: str
    session_id: str = Field(..., alias="sessionId")
    service_code: str = Field(default="", alias="serviceCode")
    network_code: str = Field(default="", alias="networkCode")
    phone_number: str = Field(..., alias="phoneNumber")
    status: SessionStatus
    cost: str = ""
    duration_in_millis: int = Field(default=0, ge=0, alias="durationInMillis")
    hops_count: int = Field(default=0, ge=0, alias="hopsCount")
    input: str = ""
    last_app_response: str = Field(default="", alias="lastAppResponse")
    error_message: str | None = Field(default=None, alias="errorMessage")

    @classmethod
    def from_payload(cls, payload: Mapping[str, Any]) -> SessionNotification:
        return cls.model_validate(dict(payload))

    @property
    def sent_at(self) -> datetime | None:
        """The ``date`` field parsed as UTC, or ``None`` if it is not in gateway format."""
        try:
            return datetime.strptime(self.date, _GATEWAY_DATE_FORMAT).replace(tzinfo=UTC)
        except ValueError:
            return None
