"""Tests for accumulated-input parsing and the NavigationRequest model."""

from __future__ import annotations

import pytest
from pydantic import ValidationError

from ussdkit.models.request import NavigationRequest, parse_navigation


def _req(text: str, network_code: str = "63902", phone: str = "+254712345678") -> NavigationRequest:
    return NavigationRequest(
        session_id="ATUid_1",
        service_code="*384*123#",
        phone_number=phone,
        accumulated_input=text,
        network_code=network_code,
    )


# -----------------------------------------------------------------------
# parse_navigation
# -----------------------------------------------------------------------


class TestParseNavigation:
    """Depth, current input and path segments derived from one string."""

    def test_empty_input_is_initial(self) -> None:
        state = parse_navigation("")
        assert state.is_initial is True, "empty input should be the initial hop"
        assert state.depth == 0, "initial hop has depth 0"
        assert state.current_input is None, "initial hop has no current input"
        assert state.path_segments == (), "initial hop has no segments"

    def test_single_segment(self) -> None:
        state = parse_navigation("1")
        assert state.depth == 1
        assert state.current_input == "1"
        assert state.path_segments == ("1",)
        assert state.is_initial is False

    def test_nested_segments(self) -> None:
        state = parse_navigation("1*2*500")
        assert state.depth == 3, "three answers give depth 3"
        assert state.current_input == "500", "current input is the last segment"
        assert state.path_segments == ("1", "2", "500")

    def test_trailing_delimiter_gives_empty_current_input(self) -> None:
        state = parse_navigation("1*")
        assert state.depth == 2, "empty segments are preserved"
        assert state.current_input == "", "an empty answer is distinct from None"
        assert state.is_initial is False

    def test_custom_delimiter(self) -> None:
        state = parse_navigation("1#2", delimiter="#")
        assert state.path_segments == ("1", "2")


# -----------------------------------------------------------------------
# NavigationRequest
# -----------------------------------------------------------------------


class TestNavigationRequest:
    """Wire aliases, derived navigation and carrier lookup."""

    def test_from_payload_accepts_wire_names(self) -> None:
        request = NavigationRequest.from_payload(
            {
                "sessionId": "ATUid_abc",
                "serviceCode": "*384*123#",
                "phoneNumber": "+254712345678",
                "text": "1*2",
                "networkCode": "63902",
            }
        )
        assert request.session_id == "ATUid_abc"
        assert request.service_code == "*384*123#"
        assert request.phone_number == "+254712345678"
        assert request.accumulated_input == "1*2"
        assert request.network_code == "63902"

    def test_missing_text_defaults_to_initial(self) -> None:
        request = NavigationRequest.from_payload({"sessionId": "s1", "phoneNumber": "+254700000000"})
        assert request.is_initial() is True, "missing text should be treated as the first hop"
        assert request.current_input() is None

    def test_missing_session_id_is_rejected(self) -> None:
        with pytest.raises(ValidationError):
            NavigationRequest.from_payload({"phoneNumber": "+254700000000", "text": ""})

    def test_empty_session_id_is_rejected(self) -> None:
        with pytest.raises(ValidationError):
            NavigationRequest.from_payload({"sessionId": "", "phoneNumber": "+254700000000"})

    def test_missing_phone_number_is_rejected(self) -> None:
        with pytest.raises(ValidationError):
            NavigationRequest.from_payload({"sessionId": "s1"})

    def test_request_is_immutable(self) -> None:
        request = _req("1")
        with pytest.raises(ValidationError):
            request.accumulated_input = "2"  # type: ignore[misc]

    def test_navigation_queries(self) -> None:
        request = _req("1*2*500")
        assert request.is_initial() is False
        assert request.depth() == 3
        assert request.current_input() == "500"
        assert request.path_segments() == ["1", "2", "500"]

    def test_depth_and_current_input_for_trailing_delimiter(self) -> None:
        request = _req("Alice*")
        assert request.depth() == 2
        assert request.current_input() == ""

    def test_navigation_property_matches_methods(self) -> None:
        request = _req("3*1")
        state = request.navigation
        assert state.depth == request.depth()
        assert state.current_input == request.current_input()

    def test_matches_path_is_exact(self) -> None:
        request = _req("1*2")
        assert request.matches_path("1*2") is True
        assert request.matches_path("1") is False, "a prefix is not an exact match"

    def test_starts_with_path_is_raw_prefix(self) -> None:
        assert _req("1*2").starts_with_path("1") is True
        assert _req("10").starts_with_path("1") is True, "prefix test is textual, not segment aligned"
        assert _req("10").starts_with_path("1*") is False
        assert _req("2*1").starts_with_path("1") is False

    def test_known_network(self) -> None:
        network = _req("", network_code="63902").network
        assert network.is_known is True
        assert network.name == "Safaricom Kenya"
        assert network.country == "Kenya"

    def test_unknown_network_keeps_raw_code(self) -> None:
        network = _req("", network_code="00000").network
        assert network.is_known is False, "unlisted code should resolve to the unknown variant"
        assert network.code == "00000", "raw code should be kept for diagnostics"
        assert network.name == "Unknown Network"

    def test_masked_phone_hides_all_but_last_four(self) -> None:
        assert _req("", phone="+254712345678").masked_phone == "*********5678"
        assert _req("", phone="123").masked_phone == "****"
