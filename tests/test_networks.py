"""Tests for the carrier code registry."""

from __future__ import annotations

import pytest

from config.networks import (
    NETWORKS,
    NetworkOperator,
    UnknownNetwork,
    get_networks,
    get_networks_by_country,
    lookup_network,
)


class TestLookupNetwork:
    """Resolving MCC+MNC codes."""

    @pytest.mark.parametrize(
        ("code", "name", "country"),
        [
            ("63902", "Safaricom Kenya", "Kenya"),
            ("62130", "MTN Nigeria", "Nigeria"),
            ("64101", "Airtel Uganda", "Uganda"),
            ("65507", "CellC South Africa", "South Africa"),
            ("99999", "Athena (Sandbox)", "Sandbox"),
        ],
    )
    def test_known_codes(self, code: str, name: str, country: str) -> None:
        network = lookup_network(code)
        assert isinstance(network, NetworkOperator)
        assert network.name == name
        assert network.country == country
        assert network.is_known is True

    def test_unknown_code_preserved(self) -> None:
        network = lookup_network("12345")
        assert isinstance(network, UnknownNetwork)
        assert network.code == "12345", "unknown variant should carry the raw code"
        assert network.is_known is False
        assert network.name == "Unknown Network"
        assert network.country == "Unknown"

    def test_empty_code_is_unknown(self) -> None:
        network = lookup_network("")
        assert network.is_known is False
        assert network.code == ""

    def test_whitespace_ignored_for_lookup(self) -> None:
        assert lookup_network(" 63902 ").name == "Safaricom Kenya"

    def test_str_is_display_name(self) -> None:
        assert str(lookup_network("63903")) == "Airtel Kenya"
        assert str(lookup_network("nope")) == "Unknown Network"


class TestNetworkRegistry:
    """Registry listing helpers."""

    def test_registry_has_all_operators(self) -> None:
        assert len(NETWORKS) == 30, "registry should list every supported carrier"

    def test_codes_match_keys(self) -> None:
        for code, operator in NETWORKS.items():
            assert operator.code == code, f"operator {operator.name} is registered under the wrong code"

    def test_get_networks_sorted_by_country_then_name(self) -> None:
        operators = get_networks()
        keys = [(op.country, op.name) for op in operators]
        assert keys == sorted(keys)

    def test_group_by_country(self) -> None:
        grouped = get_networks_by_country()
        assert [op.name for op in grouped["Kenya"]] == [
            "Airtel Kenya",
            "Equitel Kenya",
            "Orange Kenya",
            "Safaricom Kenya",
        ]
        assert sum(len(ops) for ops in grouped.values()) == len(NETWORKS)
