# src/pm_admin/api/router.py
"""Admin REST API: market creation, resolution, cancellation, gold top-ups.

Every route requires the X-Admin-Key header.
"""

from typing import Annotated

from fastapi import APIRouter, Depends, Request

from src.pm_common.response import ApiResponse, success_response
from src.pm_gateway.auth.dependencies import get_service, require_admin
from src.pm_market.application.schemas import CreateMarketRequest, CreditRequest, ResolveRequest
from src.pm_market.application.service import PredictionApplicationService

router = APIRouter(prefix="/admin", tags=["admin"], dependencies=[Depends(require_admin)])

Service = Annotated[PredictionApplicationService, Depends(get_service)]


def _ok(request: Request, data: object) -> ApiResponse:
    resp = success_response(data)
    resp.request_id = getattr(request.state, "request_id", resp.request_id)
    return resp


@router.post("/markets")
async def create_market(body: CreateMarketRequest, request: Request, service: Service) -> ApiResponse:
    result = await service.create_market(body)
    return _ok(request, result.model_dump(mode="json"))


@router.post("/markets/{market_id}/resolve")
async def resolve_market(
    market_id: int, body: ResolveRequest, request: Request, service: Service
) -> ApiResponse:
    result = await service.resolve(market_id, body.winning_outcome)
    return _ok(request, result.model_dump(mode="json"))


@router.post("/markets/{market_id}/cancel")
async def cancel_market(market_id: int, request: Request, service: Service) -> ApiResponse:
    result = await service.cancel(market_id)
    return _ok(request, result.model_dump(mode="json"))


@router.post("/balances/{bettor_id}/credit")
async def credit_gold(
    bettor_id: str, body: CreditRequest, request: Request, service: Service
) -> ApiResponse:
    return _ok(request, await service.credit_gold(bettor_id, body.amount))
