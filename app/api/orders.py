# app/api/orders.py - оформление заказа посетителем
from fastapi import APIRouter, Depends, HTTPException
from app.api.deps import get_cars_context
from app.schemas.order import OrderCreate, SubmitResult
from app.services.cars_context import CarsContext
import logging

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/orders", tags=["orders"])


@router.post("/", response_model=SubmitResult)
async def submit_order(request: OrderCreate, context: CarsContext = Depends(get_cars_context)):
    result = await context.submit_order(request)
    if not result.success:
        logger.warning(f"⚠️ Order submission failed for car {request.car_id}: {result.message}")
        raise HTTPException(502, result.message)
    return result
