"""Money-transfer USSD flow: recipient name -> amount -> confirm.

The flow itself is a :class:`~ussdkit.services.flow.FlowDefinition`;
this module supplies the fields, the confirmation menu and the confirm
action.  Moving money is delegated to a :class:`TransferGateway`, so a
real payments integration can be dropped in without touching the state
machine.
"""

from __future__ import annotations

from collections.abc import Mapping
from datetime import UTC, datetime
from decimal import Decimal
from typing import Protocol, runtime_checkable

import structlog
from pydantic import BaseModel, Field

from ussdkit.models.response import MenuDefinition
from ussdkit.services.flow import FieldSpec, FlowCompletion, FlowDefinition
from ussdkit.services.validators import bounded_amount, require_text

logger = structlog.get_logger(__name__)

RECIPIENT_FIELD = "recipient_name"
AMOUNT_FIELD = "amount"


class TransferOrder(BaseModel):
    """A confirmed transfer handed to the gateway."""

    reference: str
    session_id: str
    sender_phone: str
    network: str
    recipient_name: str
    amount: Decimal = Field(..., gt=0)
    currency: str
    created_at: datetime = Field(default_factory=lambda: datetime.now(UTC))


@runtime_checkable
class TransferGateway(Protocol):
    """Executes confirmed transfers.  Raising aborts the session."""

    async def submit(self, order: TransferOrder) -> None: ...


class LoggingTransferGateway:
    """Gateway that records orders in memory and logs them.

    Stands in for a payments API in development and tests.
    """

    __slots__ = ("_orders",)

    def __init__(self) -> None:
        self._orders: list[TransferOrder] = []

    async def submit(self, order: TransferOrder) -> None:
        self._orders.append(order)
        logger.info(
            "transfer.submitted",
            reference=order.reference,
            amount=str(order.amount),
            currency=order.currency,
            network=order.network,
        )

    @property
    def orders(self) -> list[TransferOrder]:
        return list(self._orders)


def _format_amount(value: Decimal, currency: str) -> str:
    return f"{currency} {value:.2f}"


def build_transfer_flow(
    gateway: TransferGateway,
    *,
    currency: str = "KES",
    max_amount: Decimal = Decimal("100000"),
    service_name: str = "Money Transfer",
) -> FlowDefinition:
    """Create the transfer :class:`FlowDefinition` bound to *gateway*."""

    def confirmation(values: Mapping[str, str]) -> MenuDefinition:
        amount = Decimal(values[AMOUNT_FIELD])
        title = (
            "Confirm transfer:\n\n"
            f"Recipient: {values[RECIPIENT_FIELD]}\n"
            f"Amount: {_format_amount(amount, currency)}\n\n"
            "Confirm?"
        )
        return MenuDefinition(title).add_option("1", "Yes, send money").add_option("2", "Cancel")

    async def on_confirm(completion: FlowCompletion) -> str:
        amount = Decimal(completion.values[AMOUNT_FIELD])
        recipient = completion.values[RECIPIENT_FIELD]
        await gateway.submit(
            TransferOrder(
                reference=completion.reference,
                session_id=completion.session_id,
                sender_phone=completion.phone_number,
                network=completion.network.name,
                recipient_name=recipient,
                amount=amount,
                currency=currency,
            )
        )
        return (
            "Success!\n\n"
            f"Sent {_format_amount(amount, currency)} to {recipient}\n\n"
            f"Transaction ID: {completion.reference}"
        )

    return FlowDefinition(
        name="money_transfer",
        welcome=f"Welcome to {service_name}",
        fields=(
            FieldSpec(
                name=RECIPIENT_FIELD,
                prompt="Please enter recipient's name:",
                validator=require_text("Name cannot be empty.", max_length=60),
            ),
            FieldSpec(
                name=AMOUNT_FIELD,
                prompt=f"Enter amount to send ({currency}):",
                validator=bounded_amount(
                    max_amount,
                    invalid_message="Invalid amount.",
                    range_message=f"Amount must be greater than 0 and at most {max_amount:,}.",
                ),
            ),
        ),
        confirmation=confirmation,
        on_confirm=on_confirm,
    )
