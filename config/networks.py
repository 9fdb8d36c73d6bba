"""Mobile network operators that deliver USSD traffic through the gateway.

Each ``NetworkOperator`` maps the MCC+MNC carrier code sent in the
``networkCode`` field to a display name and country.  Codes missing from
the registry resolve to :class:`UnknownNetwork`, which keeps the raw code
for diagnostics instead of guessing a carrier.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Final

__all__ = [
    "NetworkOperator",
    "UnknownNetwork",
    "NetworkInfo",
    "NETWORKS",
    "UNKNOWN_NETWORK_NAME",
    "UNKNOWN_NETWORK_COUNTRY",
    "lookup_network",
    "get_networks",
    "get_networks_by_country",
]

UNKNOWN_NETWORK_NAME: Final[str] = "Unknown Network"
UNKNOWN_NETWORK_COUNTRY: Final[str] = "Unknown"


@dataclass(frozen=True, slots=True)
class NetworkOperator:
    """Immutable descriptor for a single known carrier."""

    code: str
    """Carrier code as delivered by the gateway (MCC followed by MNC)."""

    name: str
    """Human-readable operator name."""

    country: str
    """Country the operator serves, or ``"Sandbox"`` for the test network."""

    @property
    def is_known(self) -> bool:
        return True

    def __str__(self) -> str:
        return self.name


@dataclass(frozen=True, slots=True)
class UnknownNetwork:
    """A carrier code with no registry entry."""

    code: str

    @property
    def name(self) -> str:
        return UNKNOWN_NETWORK_NAME

    @property
    def country(self) -> str:
        return UNKNOWN_NETWORK_COUNTRY

    @property
    def is_known(self) -> bool:
        return False

    def __str__(self) -> str:
        return UNKNOWN_NETWORK_NAME


NetworkInfo = NetworkOperator | UnknownNetwork


def _op(code: str, name: str, country: str) -> tuple[str, NetworkOperator]:
    return code, NetworkOperator(code=code, name=name, country=country)


# ---------------------------------------------------------------------------
# Operator registry
# ---------------------------------------------------------------------------

NETWORKS: Final[dict[str, NetworkOperator]] = dict([
    # ── Ghana ──────────────────────────────────────────────────────────
    _op("62006", "AirtelTigo Ghana", "Ghana"),
    _op("62002", "Vodafone Ghana", "Ghana"),
    _op("62001", "MTN Ghana", "Ghana"),
    # ── Nigeria ────────────────────────────────────────────────────────
    _op("62120", "Airtel Nigeria", "Nigeria"),
    _op("62130", "MTN Nigeria", "Nigeria"),
    _op("62150", "Glo Nigeria", "Nigeria"),
    _op("62160", "Etisalat Nigeria", "Nigeria"),
    # ── Rwanda ─────────────────────────────────────────────────────────
    _op("63510", "MTN Rwanda", "Rwanda"),
    _op("63513", "Tigo Rwanda", "Rwanda"),
    _op("63514", "Airtel Rwanda", "Rwanda"),
    # ── Ethiopia ───────────────────────────────────────────────────────
    _op("63601", "EthioTelecom Ethiopia", "Ethiopia"),
    # ── Kenya ──────────────────────────────────────────────────────────
    _op("63902", "Safaricom Kenya", "Kenya"),
    _op("63903", "Airtel Kenya", "Kenya"),
    _op("63907", "Orange Kenya", "Kenya"),
    _op("63999", "Equitel Kenya", "Kenya"),
    # ── Tanzania ───────────────────────────────────────────────────────
    _op("64002", "Tigo Tanzania", "Tanzania"),
    _op("64004", "Vodacom Tanzania", "Tanzania"),
    _op("64005", "Airtel Tanzania", "Tanzania"),
    # ── Uganda ─────────────────────────────────────────────────────────
    _op("64101", "Airtel Uganda", "Uganda"),
    _op("64110", "MTN Uganda", "Uganda"),
    _op("64114", "Africell Uganda", "Uganda"),
    # ── Zambia ─────────────────────────────────────────────────────────
    _op("64501", "Airtel Zambia", "Zambia"),
    _op("64502", "MTN Zambia", "Zambia"),
    # ── Malawi ─────────────────────────────────────────────────────────
    _op("65001", "TNM Malawi", "Malawi"),
    _op("65010", "Airtel Malawi", "Malawi"),
    # ── South Africa ───────────────────────────────────────────────────
    _op("65501", "Vodacom South Africa", "South Africa"),
    _op("65502", "Telkom South Africa", "South Africa"),
    _op("65507", "CellC South Africa", "South Africa"),
    _op("65510", "MTN South Africa", "South Africa"),
    # ── Sandbox ────────────────────────────────────────────────────────
    _op("99999", "Athena (Sandbox)", "Sandbox"),
])


def lookup_network(code: str) -> NetworkInfo:
    """Return the operator for *code*, or an :class:`UnknownNetwork` carrying it.

    Surrounding whitespace is ignored for the lookup only; the unknown
    variant always preserves the code exactly as received.
    """
    operator = NETWORKS.get(code.strip())
    if operator is None:
        return UnknownNetwork(code=code)
    return operator


def get_networks() -> list[NetworkOperator]:
    """Return all known operators sorted by country, then name."""
    return sorted(NETWORKS.values(), key=lambda op: (op.country, op.name))


def get_networks_by_country() -> dict[str, list[NetworkOperator]]:
    """Group known operators by country, preserving the sort of :func:`get_networks`."""
    grouped: dict[str, list[NetworkOperator]] = {}
    for op in get_networks():
        grouped.setdefault(op.country, []).append(op)
    return grouped
