"""Stateless account self-service menu.

Menu tree (position is taken from the accumulated input alone)::

    ""    What would you like to check?
    "1"     Choose account information
    "1*1"     -> account number
    "1*2"     -> account balance
    "2"     -> caller's phone number
    "3"     -> help line
"""

from __future__ import annotations

from decimal import Decimal
from typing import Protocol, runtime_checkable

import structlog
from pydantic import BaseModel

from ussdkit.models.request import NavigationRequest
from ussdkit.models.response import MenuDefinition, ResponseDirective, Terminate
from ussdkit.services.menu_router import MenuRouter

logger = structlog.get_logger(__name__)

NO_ACCOUNT_MESSAGE = "No account is registered for this number."


class AccountRecord(BaseModel):
    phone_number: str
    account_number: str
    balance: Decimal = Decimal("0")
    currency: str = "KES"


@runtime_checkable
class AccountDirectory(Protocol):
    async def find(self, phone_number: str) -> AccountRecord | None: ...


class InMemoryAccountDirectory:
    """Phone-number keyed directory held in a dict."""

    __slots__ = ("_records",)

    def __init__(self, records: list[AccountRecord] | None = None) -> None:
        self._records: dict[str, AccountRecord] = {r.phone_number: r for r in records or []}

    async def find(self, phone_number: str) -> AccountRecord | None:
        return self._records.get(phone_number)

    def add(self, record: AccountRecord) -> None:
        self._records[record.phone_number] = record


def build_account_router(
    directory: AccountDirectory,
    *,
    support_line: str = "0800-123-456",
) -> MenuRouter:
    router = MenuRouter()

    @router.route("")
    def main_menu(request: NavigationRequest) -> ResponseDirective:
        return (
            MenuDefinition("What would you like to check?")
            .add_option("1", "My account")
            .add_option("2", "My phone number")
            .add_option("3", "Help")
            .build_continue()
        )

    @router.route("1")
    def account_menu(request: NavigationRequest) -> ResponseDirective:
        return (
            MenuDefinition("Choose account information")
            .add_option("1", "Account number")
            .add_option("2", "Account balance")
            .build_continue()
        )

    @router.route("1*1")
    async def account_number(request: NavigationRequest) -> ResponseDirective:
        record = await directory.find(request.phone_number)
        if record is None:
            logger.info("account_menu.unknown_caller", phone=request.masked_phone)
            return Terminate(NO_ACCOUNT_MESSAGE)
        return Terminate(f"Your account number is {record.account_number}")

    @router.route("1*2")
    async def account_balance(request: NavigationRequest) -> ResponseDirective:
        record = await directory.find(request.phone_number)
        if record is None:
            logger.info("account_menu.unknown_caller", phone=request.masked_phone)
            return Terminate(NO_ACCOUNT_MESSAGE)
        return Terminate(f"Your account balance is {record.currency} {record.balance:.2f}")

    @router.route("2")
    def phone_number(request: NavigationRequest) -> ResponseDirective:
        return Terminate(f"Your phone number is {request.phone_number}")

    @router.route("3")
    def help_line(request: NavigationRequest) -> ResponseDirective:
        return Terminate(f"For support, call {support_line}.")

    return router
