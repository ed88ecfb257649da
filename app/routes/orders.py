"""Order endpoint — validation and encoding live in OrderService."""

from fastapi import APIRouter, Depends

from app.dependencies import get_order_service
from app.schemas.orders import OrderRequest, OrderResponse
from yieldbridge.services._types import OrderResponseDict
from yieldbridge.services.order_service import OrderService

router: APIRouter = APIRouter(tags=["orders"])


@router.post("/order", response_model=OrderResponse)
def create_order(
    body: OrderRequest | None = None,
    svc: OrderService = Depends(get_order_service),
) -> OrderResponseDict:
    request: OrderRequest = body or OrderRequest()
    return svc.build_order(request.model_dump(by_alias=True))
