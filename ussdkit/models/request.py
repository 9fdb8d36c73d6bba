"""Inbound USSD request and the navigation state derived from it.

The gateway is stateless towards the application: on every hop it POSTs
the *accumulated input* of the session, i.e. every answer the user typed
so far joined with ``*`` (``"" -> "1" -> "1*2" -> "1*2*500"``).  All
navigation facts are derived from that one string; nothing here needs
persistence.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any, Final

from pydantic import BaseModel, ConfigDict, Field

from config.networks import NetworkInfo, lookup_network

INPUT_DELIMITER: Final[str] = "*"


@dataclass(frozen=True, slots=True)
class NavigationState:
    """Navigation facts derived from an accumulated-input string."""

    accumulated_input: str
    depth: int
    current_input: str | None
    path_segments: tuple[str, ...]

    @property
    def is_initial(self) -> bool:
        return self.current_input is None


def parse_navigation(accumulated_input: str, delimiter: str = INPUT_DELIMITER) -> NavigationState:
    """Split *accumulated_input* into depth, current input and path.

    Empty segments are preserved, so ``"1*"`` has depth 2 and a current
    input of ``""`` (the user submitted nothing), which is distinct from
    the ``None`` of the initial request.
    """
    if not accumulated_input:
        return NavigationState(
            accumulated_input="",
            depth=0,
            current_input=None,
            path_segments=(),
        )
    segments = tuple(accumulated_input.split(delimiter))
    return NavigationState(
        accumulated_input=accumulated_input,
        depth=len(segments),
        current_input=segments[-1],
        path_segments=segments,
    )


class NavigationRequest(BaseModel):
    """One USSD hop as delivered by the gateway.

    Field names follow Python conventions; the camelCase wire names
    (``sessionId``, ``serviceCode``, ``phoneNumber``, ``text``,
    ``networkCode``) are accepted as aliases for both form-encoded and
    JSON payloads.
    """

    model_config = ConfigDict(frozen=True, populate_by_name=True, str_strip_whitespace=False)

    session_id: str = Field(..., min_length=1, alias="sessionId")
    service_code: str = Field(default="", alias="serviceCode")
    phone_number: str = Field(..., alias="phoneNumber")
    accumulated_input: str = Field(default="", alias="text")
    network_code: str = Field(default="", alias="networkCode")

    @classmethod
    def from_payload(cls, payload: Mapping[str, Any]) -> NavigationRequest:
        """Build a request from a decoded form or JSON body."""
        return cls.model_validate(dict(payload))

    # -- Derived navigation ----------------------------------------------------

    @property
    def navigation(self) -> NavigationState:
        return parse_navigation(self.accumulated_input)

    def is_initial(self) -> bool:
        """True for the first hop of a session (nothing typed yet)."""
        return self.accumulated_input == ""

    def depth(self) -> int:
        """Number of answers the user has given in this session."""
        if not self.accumulated_input:
            return 0
        return self.accumulated_input.count(INPUT_DELIMITER) + 1

    def current_input(self) -> str | None:
        """The latest answer, ``""`` for an empty answer, ``None`` on the first hop."""
        if not self.accumulated_input:
            return None
        return self.accumulated_input.rsplit(INPUT_DELIMITER, 1)[-1]

    def path_segments(self) -> list[str]:
        return list(self.navigation.path_segments)

    def matches_path(self, path: str) -> bool:
        return self.accumulated_input == path

    def starts_with_path(self, prefix: str) -> bool:
        """Raw prefix test used for whole-subtree dispatch.

        ``"1*2".starts_with_path("1")`` is true; note that so is
        ``"10".starts_with_path("1")``, callers wanting segment-aligned
        matching should pass ``"1*"``.
        """
        return self.accumulated_input.startswith(prefix)

    # -- Carrier ---------------------------------------------------------------

    @property
    def network(self) -> NetworkInfo:
        return lookup_network(self.network_code)

    @property
    def masked_phone(self) -> str:
        """Phone number with all but the last four digits hidden, for logs."""
        if len(self.phone_number) <= 4:
            return "****"
        return f"{'*' * (len(self.phone_number) - 4)}{self.phone_number[-4:]}"
