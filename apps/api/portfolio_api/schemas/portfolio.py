"""Portfolio holding schemas."""

from datetime import date, datetime
from typing import Annotated, Any, Literal

from pydantic import BaseModel, ConfigDict, Field, create_model

Name = Annotated[str, Field(min_length=1, max_length=255)]
ShortLabel = Annotated[str, Field(max_length=100)]
Status = Annotated[str, Field(max_length=50)]
Currency = Annotated[str, Field(max_length=10)]
Notes = Annotated[str, Field(max_length=1000)]
PositiveAmount = Annotated[float, Field(gt=0)]
NonNegativeAmount = Annotated[float, Field(ge=0)]


class HoldingFields(BaseModel):
    model_config = ConfigDict(extra="ignore", str_strip_whitespace=True)


class StockCreate(HoldingFields):
    ticker: Annotated[str, Field(min_length=1, max_length=20)]
    company_name: Name | None = None
    sector: ShortLabel | None = None
    shares: PositiveAmount
    average_cost: PositiveAmount
    current_price: NonNegativeAmount | None = None
    currency: Currency = "USD"
    account: Name | None = None
    purchase_date: date | None = None
    notes: Notes | None = None


class BondCreate(HoldingFields):
    name: Name
    isin: Annotated[str, Field(max_length=12)] | None = None
    bond_type: ShortLabel | None = None
    face_value: PositiveAmount | None = None
    coupon_rate: NonNegativeAmount | None = None
    maturity_date: date | None = None
    rating: Annotated[str, Field(max_length=10)] | None = None
    purchase_price: PositiveAmount | None = None
    current_value: PositiveAmount | None = None
    currency: Currency = "USD"
    account: Name | None = None
    purchase_date: date | None = None
    notes: Notes | None = None


class AccountCreate(HoldingFields):
    name: Name
    institution: Name | None = None
    account_type: ShortLabel | None = None
    account_number: Annotated[str, Field(max_length=20)] | None = None


class PeFundCreate(HoldingFields):
    fund_name: Name
    manager: Name | None = None
    fund_type: ShortLabel | None = None
    vintage_year: Annotated[int, Field(ge=1900, le=2100)] | None = None
    commitment: PositiveAmount | None = None
    called_capital: NonNegativeAmount | None = None
    nav: NonNegativeAmount | None = None
    distributions: NonNegativeAmount | None = None
    commitment_date: date | None = None
    status: Status | None = None
    notes: Notes | None = None


class PeDealCreate(HoldingFields):
    company_name: Name
    sector: ShortLabel | None = None
    deal_type: ShortLabel | None = None
    investment_amount: PositiveAmount | None = None
    current_value: NonNegativeAmount | None = None
    ownership_percentage: NonNegativeAmount | None = None
    sponsor: Name | None = None
    status: Status | None = None
    investment_date: date | None = None
    notes: Notes | None = None


class LiquidFundCreate(HoldingFields):
    fund_name: Name
    manager: Name | None = None
    fund_type: ShortLabel | None = None
    strategy: ShortLabel | None = None
    investment_amount: PositiveAmount
    current_value: NonNegativeAmount | None = None
    ytd_return: float | None = None
    management_fee: NonNegativeAmount | None = None
    performance_fee: NonNegativeAmount | None = None
    currency: Currency = "USD"
    redemption_frequency: Status | None = None
    lockup_end_date: date | None = None
    investment_date: date | None = None
    status: Status | None = None
    notes: Notes | None = None


class CashDepositCreate(HoldingFields):
    name: Name
    deposit_type: ShortLabel | None = None
    amount: NonNegativeAmount | None = None
    currency: Currency = "USD"
    interest_rate: NonNegativeAmount | None = None
    maturity_date: date | None = None
    account: Name | None = None
    notes: Notes | None = None


class LiabilityCreate(HoldingFields):
    name: Name
    liability_type: ShortLabel | None = None
    account: Name | None = None
    principal: NonNegativeAmount | None = None
    outstanding_balance: NonNegativeAmount | None = None
    interest_rate: NonNegativeAmount | None = None
    rate_type: Status | None = None
    collateral: Name | None = None
    start_date: date | None = None
    maturity_date: date | None = None
    currency: Currency = "USD"
    status: Status = "Active"
    notes: Notes | None = None


class HoldingMeta(BaseModel):
    id: int
    user_id: int
    created_at: datetime
    updated_at: datetime


def partial_model(model: type[BaseModel]) -> type[BaseModel]:
    """Derive an update payload model where every field is optional.

    Constraints are enforced when the merged record is re-validated against
    ``model``, so the derived fields only need to accept the raw types.
    """
    fields: dict[str, Any] = {
        name: (info.annotation | None, None)
        for name, info in model.model_fields.items()
    }
    return create_model(
        model.__name__.replace("Create", "Update"),
        __base__=HoldingFields,
        **fields,
    )


def response_model(model: type[BaseModel]) -> type[BaseModel]:
    return create_model(
        model.__name__.replace("Create", ""),
        __base__=(model, HoldingMeta),
    )


class NamedValue(BaseModel):
    name: str
    value: float


class InsightTotals(BaseModel):
    assets: float
    liabilities: float
    net_worth: float
    cash: float


class IlliquidShare(BaseModel):
    value: float
    ratio: float


class RiskFlag(BaseModel):
    id: str
    label: str
    severity: Literal["low", "medium", "high"]
    message: str


class PortfolioInsights(BaseModel):
    totals: InsightTotals
    allocation: list[NamedValue]
    top_position: NamedValue | None = None
    illiquid: IlliquidShare
    risk_flags: list[RiskFlag]
