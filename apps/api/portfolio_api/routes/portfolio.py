"""Portfolio holding routes."""

from typing import Annotated

from fastapi import APIRouter, Depends, Path, Query, Response, status
from pydantic import BaseModel, create_model

from portfolio_api.domain.holdings import DASHBOARD_KINDS, HOLDING_KINDS, HoldingKind
from portfolio_api.domain.pagination import pagination_headers, parse_page_window
from portfolio_api.repositories.memory import InMemoryStore
from portfolio_api.routes.dependencies import (
    get_authenticated_principal,
    get_store,
    portfolio_service_dependency,
)
from portfolio_api.schemas.auth import AuthPrincipal
from portfolio_api.schemas.error import ErrorResponse, MessageResponse
from portfolio_api.schemas.portfolio import PortfolioInsights
from portfolio_api.services.portfolio import DashboardService, InsightsService, PortfolioService

_AUTH_RESPONSES: dict[int | str, dict] = {
    401: {"model": ErrorResponse},
    403: {"model": ErrorResponse},
    500: {"model": ErrorResponse},
}
_ITEM_RESPONSES: dict[int | str, dict] = {
    **_AUTH_RESPONSES,
    400: {"model": ErrorResponse},
    404: {"model": ErrorResponse},
}

PortfolioDashboard = create_model(
    "PortfolioDashboard",
    **{kind.key: (list[kind.response_model], ...) for kind in DASHBOARD_KINDS},
)


def build_holding_router(kind: HoldingKind) -> APIRouter:
    """Build list/create/update/delete routes for one holding kind."""
    router = APIRouter(prefix=kind.path, tags=[kind.label])
    get_service = portfolio_service_dependency(kind)
    CreateModel = kind.create_model
    UpdateModel = kind.update_model
    ResponseModel = kind.response_model

    @router.get("", response_model=list[ResponseModel], responses=_AUTH_RESPONSES, name=f"list_{kind.key}")
    @router.get("/", response_model=list[ResponseModel], include_in_schema=False)
    async def list_holdings(
        response: Response,
        principal: Annotated[AuthPrincipal, Depends(get_authenticated_principal)],
        service: Annotated[PortfolioService, Depends(get_service)],
        page: Annotated[str | None, Query()] = None,
        limit: Annotated[str | None, Query()] = None,
    ) -> list[BaseModel]:
        window = parse_page_window(page, limit)
        items, total = service.list_holdings(owner_id=principal.user_id, window=window)
        if window is not None and total is not None:
            response.headers.update(pagination_headers(total, window))
        return items

    @router.post(
        "",
        response_model=ResponseModel,
        status_code=status.HTTP_201_CREATED,
        name=f"create_{kind.key}",
        responses={**_AUTH_RESPONSES, 400: {"model": ErrorResponse}},
    )
    @router.post("/", response_model=ResponseModel, status_code=status.HTTP_201_CREATED, include_in_schema=False)
    async def create_holding(
        payload: CreateModel,
        principal: Annotated[AuthPrincipal, Depends(get_authenticated_principal)],
        service: Annotated[PortfolioService, Depends(get_service)],
    ) -> BaseModel:
        return service.create_holding(owner_id=principal.user_id, payload=payload)

    @router.put(
        "/{holding_id}",
        response_model=ResponseModel,
        responses=_ITEM_RESPONSES,
        name=f"update_{kind.key}",
    )
    async def update_holding(
        holding_id: Annotated[int, Path(gt=0)],
        payload: UpdateModel,
        principal: Annotated[AuthPrincipal, Depends(get_authenticated_principal)],
        service: Annotated[PortfolioService, Depends(get_service)],
    ) -> BaseModel:
        return service.update_holding(owner_id=principal.user_id, holding_id=holding_id, payload=payload)

    @router.delete(
        "/{holding_id}",
        response_model=MessageResponse,
        responses=_ITEM_RESPONSES,
        name=f"delete_{kind.key}",
    )
    async def delete_holding(
        holding_id: Annotated[int, Path(gt=0)],
        principal: Annotated[AuthPrincipal, Depends(get_authenticated_principal)],
        service: Annotated[PortfolioService, Depends(get_service)],
    ) -> MessageResponse:
        message = service.delete_holding(owner_id=principal.user_id, holding_id=holding_id)
        return MessageResponse(message=message)

    return router


router = APIRouter(prefix="/portfolio")


@router.get("/insights", response_model=PortfolioInsights, tags=["Insights"], responses=_AUTH_RESPONSES)
async def get_insights(
    principal: Annotated[AuthPrincipal, Depends(get_authenticated_principal)],
    store: Annotated[InMemoryStore, Depends(get_store)],
) -> PortfolioInsights:
    return InsightsService(store).get_insights(owner_id=principal.user_id)


for _kind in HOLDING_KINDS:
    router.include_router(build_holding_router(_kind))


@router.get("/dashboard", response_model=PortfolioDashboard, tags=["Dashboard"], responses=_AUTH_RESPONSES)
async def get_dashboard(
    principal: Annotated[AuthPrincipal, Depends(get_authenticated_principal)],
    store: Annotated[InMemoryStore, Depends(get_store)],
) -> dict[str, list[BaseModel]]:
    return DashboardService(store).get_dashboard(owner_id=principal.user_id)
