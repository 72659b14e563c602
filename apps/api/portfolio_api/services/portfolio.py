"""Portfolio holding service layer."""

from __future__ import annotations

import logging
from collections.abc import Callable
from typing import Any

from fastapi.encoders import jsonable_encoder
from pydantic import BaseModel, ValidationError

from portfolio_api.core.logging_safety import safe_log_identifier
from portfolio_api.domain.holdings import (
    BONDS,
    CASH_DEPOSITS,
    DASHBOARD_KINDS,
    LIABILITIES,
    LIQUID_FUNDS,
    PE_DEALS,
    PE_FUNDS,
    STOCKS,
    HoldingKind,
)
from portfolio_api.domain.pagination import PageWindow
from portfolio_api.errors import ApiError
from portfolio_api.repositories.memory import HoldingRecord, InMemoryStore
from portfolio_api.schemas.portfolio import (
    IlliquidShare,
    InsightTotals,
    NamedValue,
    PortfolioInsights,
    RiskFlag,
)

logger = logging.getLogger(__name__)


def _validation_error(exc: ValidationError) -> ApiError:
    details = jsonable_encoder(exc.errors(include_url=False, include_context=False))
    return ApiError(status_code=400, message="Validation failed", details=details)


class PortfolioService:
    """Owner-scoped CRUD over one holding kind."""

    def __init__(self, store: InMemoryStore, kind: HoldingKind) -> None:
        self._store = store
        self._kind = kind

    def list_holdings(self, *, owner_id: int, window: PageWindow | None = None) -> tuple[list[BaseModel], int | None]:
        """Return holdings newest first, plus the unpaged total when a window was applied."""
        if window is None:
            records = self._store.list_holdings(self._kind.key, owner_id)
            return [self._to_response(record) for record in records], None

        records = self._store.list_holdings(
            self._kind.key,
            owner_id,
            offset=window.offset,
            limit=window.limit,
        )
        total = self._store.count_holdings(self._kind.key, owner_id)
        return [self._to_response(record) for record in records], total

    def create_holding(self, *, owner_id: int, payload: BaseModel) -> BaseModel:
        data = payload.model_dump(mode="python")
        record = self._store.create_holding(self._kind.key, owner_id, data)
        logger.info(
            "portfolio.created kind=%s holding_id=%s principal_id=%s",
            self._kind.key,
            record.id,
            safe_log_identifier(owner_id, prefix="pid"),
        )
        return self._to_response(record)

    def update_holding(self, *, owner_id: int, holding_id: int, payload: BaseModel) -> BaseModel:
        record = self._store.get_holding_for_owner(self._kind.key, owner_id, holding_id)
        if record is None:
            raise ApiError(status_code=404, message=f"{self._kind.label} not found")

        changes = payload.model_dump(mode="python", exclude_unset=True)
        try:
            merged = self._kind.create_model.model_validate({**record.data, **changes})
        except ValidationError as exc:
            raise _validation_error(exc) from exc

        validated_changes = {name: getattr(merged, name) for name in changes}
        record = self._store.update_holding(record, validated_changes)
        logger.info(
            "portfolio.updated kind=%s holding_id=%s fields=%s",
            self._kind.key,
            record.id,
            ",".join(sorted(validated_changes)) or "-",
        )
        return self._to_response(record)

    def delete_holding(self, *, owner_id: int, holding_id: int) -> str:
        if not self._store.delete_holding_for_owner(self._kind.key, owner_id, holding_id):
            raise ApiError(status_code=404, message=f"{self._kind.label} not found")

        logger.info("portfolio.deleted kind=%s holding_id=%s", self._kind.key, holding_id)
        return f"{self._kind.label} deleted successfully"

    def _to_response(self, record: HoldingRecord) -> BaseModel:
        return to_response(self._kind, record)


def to_response(kind: HoldingKind, record: HoldingRecord) -> BaseModel:
    values: dict[str, Any] = {
        **record.data,
        "id": record.id,
        "user_id": record.owner_id,
        "created_at": record.created_at,
        "updated_at": record.updated_at,
    }
    return kind.response_model.model_validate(values)


class DashboardService:
    def __init__(self, store: InMemoryStore) -> None:
        self._store = store

    def get_dashboard(self, *, owner_id: int) -> dict[str, list[BaseModel]]:
        return {
            kind.key: [to_response(kind, record) for record in self._store.list_holdings(kind.key, owner_id)]
            for kind in DASHBOARD_KINDS
        }


CONCENTRATION_THRESHOLD = 0.2
CONCENTRATION_HIGH_THRESHOLD = 0.4
ILLIQUID_THRESHOLD = 0.3
ILLIQUID_HIGH_THRESHOLD = 0.5
CASH_COVERAGE_THRESHOLD = 0.25


def _amount(value: Any) -> float:
    return float(value or 0)


def stock_value(data: dict[str, Any]) -> float:
    price = data.get("current_price") or data.get("average_cost")
    return _amount(data.get("shares")) * _amount(price)


def bond_value(data: dict[str, Any]) -> float:
    return _amount(data.get("current_value") or data.get("purchase_price"))


def pe_fund_value(data: dict[str, Any]) -> float:
    return _amount(data.get("nav")) + _amount(data.get("distributions"))


def pe_deal_value(data: dict[str, Any]) -> float:
    return _amount(data.get("current_value") or data.get("investment_amount"))


def liquid_fund_value(data: dict[str, Any]) -> float:
    return _amount(data.get("current_value") or data.get("investment_amount"))


def liability_value(data: dict[str, Any]) -> float:
    return _amount(data.get("outstanding_balance"))


# (kind, allocation name, valuation, label fields, fallback label)
_POSITION_SOURCES: tuple[tuple[HoldingKind, str, Callable[[dict[str, Any]], float], tuple[str, ...], str], ...] = (
    (STOCKS, "Stocks", stock_value, ("ticker", "company_name"), "Stock"),
    (BONDS, "Bonds", bond_value, ("name",), "Bond"),
    (PE_FUNDS, "PE Funds", pe_fund_value, ("fund_name",), "PE Fund"),
    (PE_DEALS, "PE Deals", pe_deal_value, ("company_name",), "PE Deal"),
    (LIQUID_FUNDS, "Liquid Funds", liquid_fund_value, ("fund_name",), "Liquid Fund"),
)
_ALLOCATION_ORDER = ("Stocks", "Bonds", "Cash & Deposits", "Liquid Funds", "PE Funds", "PE Deals")
_ILLIQUID_NAMES = ("PE Funds", "PE Deals", "Liquid Funds")


class InsightsService:
    """Aggregate metrics and risk flags over every position the owner holds."""

    def __init__(self, store: InMemoryStore) -> None:
        self._store = store

    def get_insights(self, *, owner_id: int) -> PortfolioInsights:
        values_by_name: dict[str, float] = {}
        positions: list[NamedValue] = []
        for kind, name, value_of, label_fields, fallback in _POSITION_SOURCES:
            subtotal = 0.0
            for record in self._store.list_holdings(kind.key, owner_id):
                value = value_of(record.data)
                subtotal += value
                if value > 0:
                    label = next((record.data[field] for field in label_fields if record.data.get(field)), fallback)
                    positions.append(NamedValue(name=label, value=value))
            values_by_name[name] = subtotal

        cash = sum(
            _amount(record.data.get("amount")) for record in self._store.list_holdings(CASH_DEPOSITS.key, owner_id)
        )
        values_by_name["Cash & Deposits"] = cash
        liabilities = sum(
            liability_value(record.data) for record in self._store.list_holdings(LIABILITIES.key, owner_id)
        )
        assets = sum(values_by_name.values())

        # max() keeps the first of equal values, in position-kind order.
        top_position = max(positions, key=lambda position: position.value, default=None)
        concentration = top_position.value / assets if assets > 0 and top_position else 0.0
        illiquid_value = sum(values_by_name[name] for name in _ILLIQUID_NAMES)
        illiquid_ratio = illiquid_value / assets if assets > 0 else 0.0

        risk_flags: list[RiskFlag] = []
        if top_position is not None and concentration >= CONCENTRATION_THRESHOLD:
            risk_flags.append(
                RiskFlag(
                    id="concentration",
                    label="Concentration",
                    severity="high" if concentration >= CONCENTRATION_HIGH_THRESHOLD else "medium",
                    message=f"{top_position.name} is {concentration * 100:.1f}% of assets",
                )
            )
        if illiquid_ratio >= ILLIQUID_THRESHOLD:
            risk_flags.append(
                RiskFlag(
                    id="illiquidity",
                    label="Illiquid allocation",
                    severity="high" if illiquid_ratio >= ILLIQUID_HIGH_THRESHOLD else "medium",
                    message=f"Illiquid assets are {illiquid_ratio * 100:.1f}% of assets",
                )
            )
        if liabilities > 0 and cash / liabilities < CASH_COVERAGE_THRESHOLD:
            risk_flags.append(
                RiskFlag(
                    id="liquidity",
                    label="Low cash coverage",
                    severity="high",
                    message=f"Cash covers {cash / liabilities * 100:.1f}% of liabilities",
                )
            )

        logger.info(
            "portfolio.insights principal_id=%s positions=%s flags=%s",
            safe_log_identifier(owner_id, prefix="pid"),
            len(positions),
            ",".join(flag.id for flag in risk_flags) or "-",
        )
        return PortfolioInsights(
            totals=InsightTotals(assets=assets, liabilities=liabilities, net_worth=assets - liabilities, cash=cash),
            allocation=[
                NamedValue(name=name, value=values_by_name[name])
                for name in _ALLOCATION_ORDER
                if values_by_name[name] > 0
            ],
            top_position=top_position,
            illiquid=IlliquidShare(value=illiquid_value, ratio=illiquid_ratio),
            risk_flags=risk_flags,
        )
