"""ussdkit service layer -- session store, flow controller, menus and telemetry."""

from __future__ import annotations

from ussdkit.services.account_menu import (
    AccountDirectory,
    AccountRecord,
    InMemoryAccountDirectory,
    build_account_router,
)
from ussdkit.services.flow import (
    FieldSpec,
    FlowCompletion,
    FlowDefinition,
    FlowMessages,
    SessionFlowController,
    new_reference,
)
from ussdkit.services.menu_router import ROUTING_MISS_MESSAGE, MenuRouter
from ussdkit.services.session_store import (
    InMemorySessionStore,
    RedisSessionStore,
    SessionStore,
    SessionStoreError,
    build_session_store,
)
from ussdkit.services.telemetry import SessionTelemetry
from ussdkit.services.transfer import (
    LoggingTransferGateway,
    TransferGateway,
    TransferOrder,
    build_transfer_flow,
)
from ussdkit.services.validators import FieldCheck, bounded_amount, one_of, require_text

__all__ = [
    "ROUTING_MISS_MESSAGE",
    "AccountDirectory",
    "AccountRecord",
    "FieldCheck",
    "FieldSpec",
    "FlowCompletion",
    "FlowDefinition",
    "FlowMessages",
    "InMemoryAccountDirectory",
    "InMemorySessionStore",
    "LoggingTransferGateway",
    "MenuRouter",
    "RedisSessionStore",
    "SessionFlowController",
    "SessionStore",
    "SessionStoreError",
    "SessionTelemetry",
    "TransferGateway",
    "TransferOrder",
    "bounded_amount",
    "build_account_router",
    "build_session_store",
    "build_transfer_flow",
    "new_reference",
    "one_of",
    "require_text",
]
