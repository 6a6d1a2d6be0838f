"""Order endpoints.

POST  /v1/orders                    - Buyer places an order (starts payment)
PATCH /v1/orders/{order_id}/status  - Role-gated fulfillment transition
"""

from fastapi import APIRouter, Depends

from umoja.auth import get_caller, require_role
from umoja.models.enums import Role
from umoja.schemas import CreateOrderRequest, OrderResponse, StatusUpdateRequest, StatusUpdateResponse
from umoja.services.caller import CallerContext
from umoja.services.order_state import OrderStateMachine, parse_target
from umoja.services.orders import create_order

router = APIRouter()


@router.post("", response_model=OrderResponse, status_code=201)
async def place_order(
    request: CreateOrderRequest,
    caller: CallerContext = Depends(require_role(Role.BUYER)),
) -> OrderResponse:
    order = await create_order(
        caller,
        listing_id=request.listing_id,
        quantity=request.quantity,
        fulfillment_type=request.fulfillment_type,
        buyer_phone=request.buyer_phone,
    )
    return OrderResponse.model_validate(order)


@router.patch("/{order_id}/status", response_model=StatusUpdateResponse)
async def update_order_status(
    order_id: int,
    request: StatusUpdateRequest,
    caller: CallerContext = Depends(get_caller),
) -> StatusUpdateResponse:
    """Apply a fulfillment transition.

    Returns once the new status is durable; completion side effects run in
    the background and never affect this response.
    """
    result = await OrderStateMachine().transition(order_id, caller, parse_target(request.status))
    return StatusUpdateResponse(
        order_id=result.order_id,
        reference_id=result.reference_id,
        fulfillment_status=result.fulfillment_status,
        updated_at=result.changed_at,
    )
