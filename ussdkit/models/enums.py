from __future__ import annotations

from enum import StrEnum


class SessionStatus(StrEnum):
    """Final status the gateway reports for a finished USSD session."""

    __slots__ = ()

    SUCCESS = "Success"
    INCOMPLETE = "Incomplete"
    FAILED = "Failed"


class FlowPhaseName(StrEnum):
    """Discriminator values of the session flow phases."""

    __slots__ = ()

    INITIAL = "initial"
    COLLECTING = "collecting"
    CONFIRMING = "confirming"
    COMPLETE = "complete"
