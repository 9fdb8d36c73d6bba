"""Session flow controller: a per-session state machine for USSD data collection.

The accumulated-input convention is fine for static menus, but forms
that collect free text ("enter recipient's name", "enter amount") need
real per-session state.  :class:`SessionFlowController` keeps that state
in an injected :class:`~ussdkit.services.session_store.SessionStore`
and advances it exactly once per hop::

    Initial -> Collecting(field 1) -> ... -> Collecting(field n) -> Confirming -> (deleted)

Rules enforced here:

* A rejected answer re-prompts with ``Continue`` and leaves the stored
  state untouched, however many times it happens.
* Each hop performs at most one store mutation (``put`` or ``delete``).
* Confirm, cancel and any other answer at the confirmation step all
  delete the session; only confirm runs the side-effecting action.
* Completion is recorded by deletion.  A hop that finds no stored state
  but carries input belongs to a session that has already ended and is
  answered with the "already completed" message, never restarted.
  Empty input is the one exception: with nothing stored it cannot be
  told apart from the first hop of a new session, so it starts the flow
  again.  Gateways only send empty input on a session's first hop.
* A store failure ends only the current session, with a generic message.

The gateway never sends two hops of the same session concurrently, so
no per-session lock is taken.
"""

from __future__ import annotations

from collections.abc import Awaitable, Callable, Mapping
from dataclasses import dataclass, field
from types import MappingProxyType
from uuid import uuid4

import structlog

from config.networks import NetworkInfo
from ussdkit.models.request import NavigationRequest
from ussdkit.models.response import Continue, MenuDefinition, ResponseDirective, Terminate
from ussdkit.models.session import (
    CollectingPhase,
    CompletePhase,
    ConfirmingPhase,
    InitialPhase,
    SessionFlowState,
    phase_name,
)
from ussdkit.services.session_store import SessionStore, SessionStoreError
from ussdkit.services.validators import FieldValidator

logger = structlog.get_logger(__name__)


def new_reference(prefix: str = "TXN") -> str:
    """Fresh transaction reference, e.g. ``TXN3F9A0C21B7D4``."""
    return f"{prefix}{uuid4().hex[:12].upper()}"


# ---------------------------------------------------------------------------
# Flow definition
# ---------------------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class FieldSpec:
    """One field to collect: its key in the value map, prompt and validator."""

    name: str
    prompt: str
    validator: FieldValidator


@dataclass(frozen=True, slots=True)
class FlowMessages:
    """Terminal messages shared by every flow."""

    cancelled: str = "Transaction cancelled."
    invalid_option: str = "Invalid option. Transaction cancelled."
    invalid_input: str = "Invalid input. Please try again."
    already_completed: str = "Session already completed."
    unavailable: str = "Service temporarily unavailable. Please try again later."
    failed: str = "Transaction failed. Please try again later."


@dataclass(frozen=True, slots=True)
class FlowCompletion:
    """Everything the confirm action needs, handed over once per session."""

    session_id: str
    phone_number: str
    network: NetworkInfo
    values: Mapping[str, str]
    reference: str


ConfirmAction = Callable[[FlowCompletion], Awaitable[str]]
ConfirmationBuilder = Callable[[Mapping[str, str]], MenuDefinition]


@dataclass(frozen=True, slots=True)
class FlowDefinition:
    """Static description of a multi-field collection flow.

    Parameters
    ----------
    name:
        Used in logs only.
    fields:
        Fields in collection order.  Names must be unique.
    confirmation:
        Builds the confirmation menu from the collected values.
    on_confirm:
        Side-effecting action run when the user confirms.  Returns the
        success text; it should include ``completion.reference``, which
        is appended if missing.
    welcome:
        Optional text shown above the first prompt.
    """

    name: str
    fields: tuple[FieldSpec, ...]
    confirmation: ConfirmationBuilder
    on_confirm: ConfirmAction
    welcome: str = ""
    confirm_key: str = "1"
    cancel_key: str = "2"
    messages: FlowMessages = field(default_factory=FlowMessages)

    def __post_init__(self) -> None:
        if not self.fields:
            raise ValueError(f"flow {self.name!r} needs at least one field")
        names = [spec.name for spec in self.fields]
        if len(set(names)) != len(names):
            raise ValueError(f"flow {self.name!r} has duplicate field names: {names}")
        if self.confirm_key == self.cancel_key:
            raise ValueError("confirm and cancel keys must differ")

    @property
    def field_names(self) -> tuple[str, ...]:
        return tuple(spec.name for spec in self.fields)

    def get_field(self, name: str) -> FieldSpec | None:
        for spec in self.fields:
            if spec.name == name:
                return spec
        return None

    def next_field(self, name: str) -> FieldSpec | None:
        """The field collected after *name*, or ``None`` if *name* is the last."""
        names = self.field_names
        index = names.index(name)
        if index + 1 < len(names):
            return self.fields[index + 1]
        return None

    def is_complete(self, values: Mapping[str, str]) -> bool:
        return all(name in values for name in self.field_names)

    def first_prompt(self) -> str:
        prompt = self.fields[0].prompt
        if self.welcome:
            return f"{self.welcome}\n\n{prompt}"
        return prompt


# ---------------------------------------------------------------------------
# Controller
# ---------------------------------------------------------------------------


class SessionFlowController:
    """Runs one :class:`FlowDefinition` against a session store.

    Stateless apart from its collaborators; one instance serves every
    session concurrently.
    """

    __slots__ = ("_definition", "_reference_factory", "_store")

    def __init__(
        self,
        definition: FlowDefinition,
        store: SessionStore,
        *,
        reference_factory: Callable[[], str] = new_reference,
    ) -> None:
        self._definition = definition
        self._store = store
        self._reference_factory = reference_factory

    @property
    def definition(self) -> FlowDefinition:
        return self._definition

    @property
    def store(self) -> SessionStore:
        return self._store

    async def handle(self, request: NavigationRequest) -> ResponseDirective:
        """Advance the session of *request* by one hop and return the directive."""
        messages = self._definition.messages
        try:
            stored = await self._store.get(request.session_id)
        except SessionStoreError:
            logger.warning(
                "flow.store_unavailable",
                flow=self._definition.name,
                session_id=request.session_id,
                op="get",
            )
            return Terminate(messages.unavailable)

        state = self._resolve(request, stored)
        try:
            return await self._dispatch(request, state)
        except SessionStoreError:
            logger.warning(
                "flow.store_unavailable",
                flow=self._definition.name,
                session_id=request.session_id,
                phase=phase_name(state),
                op="write",
            )
            return Terminate(messages.unavailable)

    # -- Internal helpers ------------------------------------------------------

    def _resolve(self, request: NavigationRequest, stored: SessionFlowState | None) -> SessionFlowState:
        if stored is not None:
            return stored
        if request.is_initial():
            return InitialPhase()
        # No state but input already typed: the session ended earlier.
        logger.info(
            "flow.stale_session",
            flow=self._definition.name,
            session_id=request.session_id,
            depth=request.depth(),
        )
        return CompletePhase()

    async def _dispatch(self, request: NavigationRequest, state: SessionFlowState) -> ResponseDirective:
        if isinstance(state, InitialPhase):
            return await self._start(request)
        if isinstance(state, CollectingPhase):
            return await self._collect(request, state)
        if isinstance(state, ConfirmingPhase):
            return await self._confirm(request, state)
        return Terminate(self._definition.messages.already_completed)

    async def _start(self, request: NavigationRequest) -> ResponseDirective:
        first = self._definition.fields[0]
        await self._store.put(request.session_id, CollectingPhase(field_name=first.name))
        logger.info(
            "flow.session_started",
            flow=self._definition.name,
            session_id=request.session_id,
            phone=request.masked_phone,
            network=request.network.name,
        )
        return Continue(self._definition.first_prompt())

    async def _abort(self, request: NavigationRequest, message: str, event: str) -> ResponseDirective:
        await self._store.delete(request.session_id)
        logger.info(event, flow=self._definition.name, session_id=request.session_id)
        return Terminate(message)

    async def _collect(self, request: NavigationRequest, state: CollectingPhase) -> ResponseDirective:
        definition = self._definition
        spec = definition.get_field(state.field_name)
        if spec is None:
            return await self._abort(request, definition.messages.invalid_input, "flow.unroutable_input")
        answer = request.current_input()
        if answer is None:
            # Replayed first hop; re-prompt without touching the store.
            logger.info("flow.initial_hop_replayed", flow=definition.name, session_id=request.session_id)
            if spec is definition.fields[0]:
                return Continue(definition.first_prompt())
            return Continue(spec.prompt)

        check = spec.validator(answer)
        if not check.accepted:
            logger.info(
                "flow.validation_rejected",
                flow=definition.name,
                session_id=request.session_id,
                field=spec.name,
            )
            return Continue(f"{check.error}\n{spec.prompt}")

        values = {**state.values, spec.name: check.value or ""}
        following = definition.next_field(spec.name)
        if following is not None:
            await self._store.put(
                request.session_id,
                CollectingPhase(field_name=following.name, values=values),
            )
            logger.info(
                "flow.field_accepted",
                flow=definition.name,
                session_id=request.session_id,
                field=spec.name,
                next_field=following.name,
            )
            return Continue(following.prompt)

        await self._store.put(request.session_id, ConfirmingPhase(values=values))
        logger.info(
            "flow.awaiting_confirmation",
            flow=definition.name,
            session_id=request.session_id,
            field=spec.name,
        )
        return definition.confirmation(MappingProxyType(values)).build_continue()

    async def _confirm(self, request: NavigationRequest, state: ConfirmingPhase) -> ResponseDirective:
        definition = self._definition
        messages = definition.messages
        if not definition.is_complete(state.values):
            logger.error(
                "flow.incomplete_confirmation",
                flow=definition.name,
                session_id=request.session_id,
                present=sorted(state.values),
            )
            return await self._abort(request, messages.invalid_input, "flow.aborted")

        choice = request.current_input()
        if choice == definition.cancel_key:
            return await self._abort(request, messages.cancelled, "flow.cancelled")
        if choice != definition.confirm_key:
            return await self._abort(request, messages.invalid_option, "flow.invalid_option")

        completion = FlowCompletion(
            session_id=request.session_id,
            phone_number=request.phone_number,
            network=request.network,
            values=MappingProxyType(dict(state.values)),
            reference=self._reference_factory(),
        )
        try:
            message = await definition.on_confirm(completion)
        except Exception:
            logger.error(
                "flow.action_failed",
                flow=definition.name,
                session_id=request.session_id,
                reference=completion.reference,
                exc_info=True,
            )
            return await self._abort(request, messages.failed, "flow.aborted")

        try:
            await self._store.delete(request.session_id)
        except SessionStoreError:
            # The action already ran; the entry expires with its TTL.
            logger.error(
                "flow.cleanup_failed",
                flow=definition.name,
                session_id=request.session_id,
                reference=completion.reference,
            )

        if completion.reference not in message:
            message = f"{message}\nRef: {completion.reference}"
        logger.info(
            "flow.completed",
            flow=definition.name,
            session_id=request.session_id,
            reference=completion.reference,
        )
        return Terminate(message)
