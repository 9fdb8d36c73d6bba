"""Per-session flow state for multi-step data collection.

A session is always in exactly one phase, and each phase carries only
the data meaningful to it:

* ``InitialPhase``    -- nothing collected yet.
* ``CollectingPhase`` -- waiting for the answer to ``field_name``; holds
  the values accepted so far.
* ``ConfirmingPhase`` -- every field collected; waiting for confirm/cancel.
* ``CompletePhase``   -- terminal.  Never persisted by the flow controller
  (completion is recorded by deleting the session) but representable so
  a finished session can be answered without resuming.

The union is discriminated on ``phase`` so stored JSON round-trips to
the right class.
"""

from __future__ import annotations

from typing import Annotated, Literal

import orjson
from pydantic import BaseModel, ConfigDict, Field, TypeAdapter

from ussdkit.models.enums import FlowPhaseName


class InitialPhase(BaseModel):
    model_config = ConfigDict(frozen=True)

    phase: Literal["initial"] = "initial"


class CollectingPhase(BaseModel):
    model_config = ConfigDict(frozen=True)

    phase: Literal["collecting"] = "collecting"
    field_name: str = Field(..., min_length=1)
    values: dict[str, str] = Field(default_factory=dict)


class ConfirmingPhase(BaseModel):
    model_config = ConfigDict(frozen=True)

    phase: Literal["confirming"] = "confirming"
    values: dict[str, str]


class CompletePhase(BaseModel):
    model_config = ConfigDict(frozen=True)

    phase: Literal["complete"] = "complete"
    reference: str | None = None


SessionFlowState = Annotated[
    InitialPhase | CollectingPhase | ConfirmingPhase | CompletePhase,
    Field(discriminator="phase"),
]

_STATE_ADAPTER: TypeAdapter[SessionFlowState] = TypeAdapter(SessionFlowState)


def phase_name(state: SessionFlowState) -> FlowPhaseName:
    return FlowPhaseName(state.phase)


def encode_state(state: SessionFlowState) -> bytes:
    """Serialise *state* to compact JSON bytes for a key-value store."""
    return orjson.dumps(_STATE_ADAPTER.dump_python(state, mode="json"))


def decode_state(raw: bytes | str) -> SessionFlowState:
    """Inverse of :func:`encode_state`.

    Raises ``orjson.JSONDecodeError`` or ``pydantic.ValidationError`` on
    unreadable payloads; stores translate those into their own error.
    """
    return _STATE_ADAPTER.validate_python(orjson.loads(raw))
