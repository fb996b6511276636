# storefront/api/routes/payment.py
import json
import logging
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status

from storefront.api.deps import get_db, get_gateway
from storefront.api.schemas.payment import PixRequest, PreferenceRequest
from storefront.core.state_machine import InvalidTransition
from storefront.database import FileBackedDB
from storefront.models.order import Order
from storefront.services.checkout import default_back_urls
from storefront.services.payment import PaymentError

router = APIRouter(prefix="/api/payment", tags=["payment"])
logger = logging.getLogger(__name__)


@router.post("/preference")
def create_preference(payload: PreferenceRequest, db: FileBackedDB = Depends(get_db), gateway=Depends(get_gateway)):
    """
    Create a Checkout Pro preference for an existing order.
    Returns the gateway body ({id, init_point, sandbox_init_point}).
    """
    items = [{"id": it.id, "name": it.name, "price": str(it.price), "quantity": it.quantity} for it in payload.items]
    back_urls = payload.back_urls.model_dump() if payload.back_urls else default_back_urls()
    try:
        preference = gateway.create_preference(items, payload.buyer.model_dump(), back_urls, payload.order_id)
    except PaymentError as e:
        raise HTTPException(status_code=status.HTTP_502_BAD_GATEWAY, detail=f"Failed to create payment preference: {e}")
    if db.get_record("orders", "id", payload.order_id):
        db.update_record("orders", "id", payload.order_id, {"preference_id": str(preference.get("id") or "")})
    return preference


@router.post("/pix")
def create_pix(payload: PixRequest, db: FileBackedDB = Depends(get_db), gateway=Depends(get_gateway)):
    """
    Generate a PIX charge (QR code + copy-paste code) and attach the payment id to the order.
    """
    try:
        payment = gateway.create_pix_payment(payload.amount, payload.buyer.model_dump(), payload.description,
                                             payload.order_id)
    except PaymentError as e:
        raise HTTPException(status_code=status.HTTP_502_BAD_GATEWAY, detail=f"Failed to generate PIX payment: {e}")
    if db.get_record("orders", "id", payload.order_id):
        db.update_record("orders", "id", payload.order_id, {
            "payment_id": str(payment.get("id") or ""),
            "payment_status": payment.get("status") or "pending",
        })
    return payment


@router.post("/webhook")
def payment_webhook(
    type: Optional[str] = Query(None),
    data: Optional[str] = Query(None),
    data_id: Optional[str] = Query(None, alias="data.id"),
    db: FileBackedDB = Depends(get_db),
    gateway=Depends(get_gateway),
):
    """
    Mercado Pago notification. Only 'payment' notifications are handled: the payment
    is fetched, its status copied onto the order referenced by external_reference,
    and an approved payment moves the order to 'paid'.
    """
    if type != "payment":
        return {"ok": True, "handled": False}
    if gateway.mock_mode:
        logger.warning("Mercado Pago access token not set, skipping webhook handling")
        return {"ok": True, "handled": False}

    payment_id = data_id or data
    if not payment_id:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="payment id required")

    try:
        payment = gateway.get_payment(payment_id)
    except PaymentError as e:
        raise HTTPException(status_code=status.HTTP_502_BAD_GATEWAY, detail=f"Failed to fetch payment: {e}")

    try:
        order_id = int(str(payment.get("external_reference") or ""))
    except ValueError:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Payment has no order reference")

    row = db.get_record("orders", "id", order_id)
    if not row:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Order not found")

    payment_status = payment.get("status") or ""
    updates = {"payment_id": str(payment_id), "payment_status": payment_status}
    if payment_status == "approved":
        order = Order.from_dict(row)
        try:
            order.transition_to("paid", actor="mercadopago", meta={"payment_id": str(payment_id)})
        except InvalidTransition as e:
            logger.warning("Approved payment %s for order %s not applied: %s", payment_id, order_id, e)
        else:
            updates.update({
                "status": order.status,
                "status_history": json.dumps(order.status_history, ensure_ascii=False),
                "version": order.version,
            })
    db.update_record("orders", "id", order_id, updates)
    logger.info("Webhook: order %s payment %s is %s", order_id, payment_id, payment_status)
    return {"ok": True, "handled": True, "order_id": order_id, "payment_status": payment_status}
