from ussdkit.models.enums import FlowPhaseName, SessionStatus
from ussdkit.models.notification import SessionNotification
from ussdkit.models.request import (
    INPUT_DELIMITER,
    NavigationRequest,
    NavigationState,
    parse_navigation,
)
from ussdkit.models.response import (
    USSD_PAGE_LIMIT,
    Continue,
    MenuDefinition,
    ResponseDirective,
    Terminate,
)
from ussdkit.models.session import (
    CollectingPhase,
    CompletePhase,
    ConfirmingPhase,
    InitialPhase,
    SessionFlowState,
    decode_state,
    encode_state,
)

__all__ = [
    "INPUT_DELIMITER",
    "USSD_PAGE_LIMIT",
    "CollectingPhase",
    "CompletePhase",
    "ConfirmingPhase",
    "Continue",
    "FlowPhaseName",
    "InitialPhase",
    "MenuDefinition",
    "NavigationRequest",
    "NavigationState",
    "ResponseDirective",
    "SessionNotification",
    "SessionFlowState",
    "SessionStatus",
    "Terminate",
    "decode_state",
    "encode_state",
    "parse_navigation",
]
