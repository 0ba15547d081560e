import math
from datetime import datetime
from typing import Optional

from fastapi import APIRouter, Depends, Query, Request
from fastapi.responses import JSONResponse
from sqlalchemy.orm import Session

from storefront.auth import verify_token
from storefront.checkout import create_payment_intent, verify_and_create_order
from storefront.ledger import OrderLedger
from storefront.lifecycle import OrderLifecycle
from storefront.schemas import (
    CreateIntentRequest,
    OrderStatusValue,
    StatusUpdateRequest,
    VerifyPaymentRequest,
    envelope,
    serialize_order,
    serialize_tracking,
)

router = APIRouter(prefix="/api/orders", tags=["orders"])


def get_context(request: Request):
    return request.app.state.context


def get_db(context=Depends(get_context)):
    db = context.session_factory()
    try:
        yield db
    finally:
        db.close()


# ---------- public ----------

@router.post("/create-intent")
def create_intent(
    body: CreateIntentRequest,
    context=Depends(get_context),
    db: Session = Depends(get_db),
):
    data = create_payment_intent(context, db, body.product_id, body.quantity, body.shipping_charge)
    return envelope(data)


@router.post("/verify-and-create-order")
def verify_payment(
    body: VerifyPaymentRequest,
    context=Depends(get_context),
    db: Session = Depends(get_db),
):
    order, created = verify_and_create_order(context, db, body)
    if created:
        return JSONResponse(
            status_code=201,
            content=envelope(serialize_order(order), "Order placed successfully"),
        )
    return envelope(serialize_order(order), "Order already exists")


@router.get("/track/{order_code}")
def track_order(order_code: str, db: Session = Depends(get_db)):
    order = OrderLedger(db).track(order_code)
    return envelope(serialize_tracking(order))


# ---------- admin ----------

@router.get("")
def list_orders(
    status: Optional[OrderStatusValue] = None,
    payment_status: Optional[str] = Query(None, alias="paymentStatus"),
    search: Optional[str] = None,
    start_date: Optional[datetime] = Query(None, alias="startDate"),
    end_date: Optional[datetime] = Query(None, alias="endDate"),
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    db: Session = Depends(get_db),
    auth=Depends(verify_token),
):
    orders, total = OrderLedger(db).list_orders(
        status=status,
        payment_status=payment_status,
        search=search,
        start_date=start_date,
        end_date=end_date,
        page=page,
        limit=limit,
    )
    return envelope(
        [serialize_order(o) for o in orders],
        pagination={
            "page": page,
            "limit": limit,
            "total": total,
            "pages": math.ceil(total / limit),
        },
    )


@router.get("/{order_id}")
def get_order(order_id: int, db: Session = Depends(get_db), auth=Depends(verify_token)):
    return envelope(serialize_order(OrderLedger(db).get(order_id)))


@router.put("/{order_id}/status")
def update_order_status(
    order_id: int,
    body: StatusUpdateRequest,
    db: Session = Depends(get_db),
    auth=Depends(verify_token),
):
    order = OrderLifecycle(db).update_status(order_id, body.order_status, body.tracking_number)
    return envelope(serialize_order(order), "Order status updated successfully")


@router.put("/{order_id}/cancel")
def cancel_order(order_id: int, db: Session = Depends(get_db), auth=Depends(verify_token)):
    order = OrderLifecycle(db).cancel(order_id)
    return envelope(serialize_order(order), "Order cancelled successfully")


@router.delete("/{order_id}")
def delete_order(order_id: int, db: Session = Depends(get_db), auth=Depends(verify_token)):
    OrderLedger(db).delete(order_id)
    return envelope(message="Order deleted successfully")
