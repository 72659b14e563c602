"""Registry of the portfolio holding kinds exposed by the API."""

from __future__ import annotations

from dataclasses import dataclass

from pydantic import BaseModel

from portfolio_api.schemas.portfolio import (
    AccountCreate,
    BondCreate,
    CashDepositCreate,
    LiabilityCreate,
    LiquidFundCreate,
    PeDealCreate,
    PeFundCreate,
    StockCreate,
    partial_model,
    response_model,
)


@dataclass(frozen=True, slots=True)
class HoldingKind:
    key: str
    path: str
    label: str
    create_model: type[BaseModel]
    update_model: type[BaseModel]
    response_model: type[BaseModel]


def _kind(key: str, path: str, label: str, create: type[BaseModel]) -> HoldingKind:
    return HoldingKind(
        key=key,
        path=path,
        label=label,
        create_model=create,
        update_model=partial_model(create),
        response_model=response_model(create),
    )


STOCKS = _kind("stocks", "/stocks", "Stock", StockCreate)
BONDS = _kind("bonds", "/bonds", "Bond", BondCreate)
ACCOUNTS = _kind("accounts", "/accounts", "Account", AccountCreate)
PE_FUNDS = _kind("pe_funds", "/pe-funds", "PE fund", PeFundCreate)
PE_DEALS = _kind("pe_deals", "/pe-deals", "PE deal", PeDealCreate)
LIQUID_FUNDS = _kind("liquid_funds", "/liquid-funds", "Liquid fund", LiquidFundCreate)
CASH_DEPOSITS = _kind("cash_deposits", "/cash-deposits", "Cash deposit", CashDepositCreate)
LIABILITIES = _kind("liabilities", "/liabilities", "Liability", LiabilityCreate)

HOLDING_KINDS: tuple[HoldingKind, ...] = (
    STOCKS,
    BONDS,
    ACCOUNTS,
    PE_FUNDS,
    PE_DEALS,
    LIQUID_FUNDS,
    CASH_DEPOSITS,
    LIABILITIES,
)

# The dashboard lists positions only; accounts are excluded.
DASHBOARD_KINDS: tuple[HoldingKind, ...] = tuple(kind for kind in HOLDING_KINDS if kind is not ACCOUNTS)
