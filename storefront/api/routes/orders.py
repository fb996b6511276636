# storefront/api/routes/orders.py
from typing import Any, Dict, List
from fastapi import APIRouter, Depends, HTTPException, status, Body
from datetime import datetime
import json
import logging

from storefront.api.deps import get_db, get_gateway, get_current_active_user, require_admin
from storefront.api.routes.cart import save_cart
from storefront.api.routes.checkout import resolve_cart
from storefront.api.schemas.order import CheckoutRequest, OrderResponse, StatusUpdate, TransitionRequest
from storefront.database import FileBackedDB
from storefront.models.order import Order
from storefront.core.state_machine import InvalidTransition, OptimisticLockError
from storefront.services.checkout import CheckoutError, CheckoutOrderDraft, submit_checkout
from storefront.services.payment import PaymentError

router = APIRouter(prefix="/api/orders", tags=["orders"])
logger = logging.getLogger(__name__)


def _release_stock(db: FileBackedDB, reserved: List[Dict[str, Any]]) -> None:
    for r in reserved:
        db.update_record("products", "id", r["id"], {"stock": r["prev_stock"]})


def _decrement_stock(db: FileBackedDB, draft: CheckoutOrderDraft) -> List[Dict[str, Any]]:
    """
    Decrease catalog stock for each line of the draft. A product that vanished from the
    catalog (404) or ran short (400) undoes every earlier decrement.
    """
    reserved = []
    for it in draft.items:
        prod = db.get_record("products", "id", it.product_id)
        if not prod:
            _release_stock(db, reserved)
            raise HTTPException(status_code=404, detail=f"Product {it.product_id} not found")
        try:
            stock = int(float(prod.get("stock") or 0))
        except ValueError:
            stock = 0
        if stock < it.quantity:
            _release_stock(db, reserved)
            raise HTTPException(status_code=400, detail=f"Insufficient stock for product {it.product_id}")
        db.update_record("products", "id", it.product_id, {"stock": stock - it.quantity})
        reserved.append({"id": it.product_id, "prev_stock": stock})
    return reserved


def _can_access(current_user: Dict[str, Any], row: Dict[str, Any]) -> bool:
    return bool(current_user.get("is_admin")) or str(row.get("user_id") or "") == str(current_user.get("id"))


def _persist_transition(db: FileBackedDB, order_id: int, order: Order) -> Dict[str, Any]:
    updates = {
        "status": order.status,
        "status_history": json.dumps(order.status_history or [], ensure_ascii=False),
        "version": int(order.version),
    }
    updated = db.update_record("orders", "id", order_id, updates)
    if not updated:
        raise HTTPException(status_code=500, detail="Failed to persist order update")
    return updated


@router.post("", status_code=201, response_model=OrderResponse)
def create_order(
    payload: CheckoutRequest = Body(...),
    current_user: Dict[str, Any] = Depends(get_current_active_user),
    db: FileBackedDB = Depends(get_db),
    gateway=Depends(get_gateway),
):
    """
    Submit a checkout.

    Payload: { "cart_id": "<id>" } or { "items": [...] }, plus shipping_method,
    payment_method and buyer. The order is created as 'pending', stock is decremented,
    and a PIX charge (pix) or a Mercado Pago preference (credit_card / boleto) is
    requested. The session cart is emptied only when both steps succeed.
    """
    cart = resolve_cart(db, payload)
    if cart.user_id and str(cart.user_id) != str(current_user.get("id")):
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Cart belongs to another user")
    created: Dict[str, Any] = {}

    def create_order_record(draft: CheckoutOrderDraft) -> Dict[str, Any]:
        reserved = _decrement_stock(db, draft)
        order = Order.from_dict(dict(draft.to_order_payload(), user_id=str(current_user.get("id"))))
        order.created_at = datetime.utcnow()
        try:
            created.update(db.create_record("orders", order.to_dict(), id_field="id"))
        except OSError:
            _release_stock(db, reserved)
            raise
        return created

    try:
        result = submit_checkout(
            cart,
            payload.shipping_method,
            payload.payment_method,
            payload.buyer.to_buyer(),
            create_order=create_order_record,
            gateway=gateway,
        )
    except CheckoutError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))
    except PaymentError as e:
        logger.error("Payment gateway failed during checkout of order %s: %s", created.get("id"), e)
        if created.get("id") is not None:
            db.update_record("orders", "id", created["id"], {"payment_status": "failed"})
        raise HTTPException(status_code=status.HTTP_502_BAD_GATEWAY, detail=f"Payment gateway error: {e}")

    order_row = result["order"]
    payment = result["payment"] or {}
    if result["draft"].payment_method == "pix":
        updates = {"payment_id": str(payment.get("id") or ""), "payment_status": payment.get("status") or "pending"}
    else:
        updates = {"preference_id": str(payment.get("id") or "")}
    order_row = db.update_record("orders", "id", order_row["id"], updates) or order_row

    if payload.cart_id:
        save_cart(db, cart)

    return {"ok": True, "order": order_row, "payment": payment, "checkout": result["draft"].to_dict()}


@router.get("", response_model=List[Dict[str, Any]])
def list_orders(current_user: Dict[str, Any] = Depends(get_current_active_user), db: FileBackedDB = Depends(get_db)):
    """
    List orders for the current user. Admins see all orders.
    """
    all_orders = db.list_records("orders")
    if current_user.get("is_admin"):
        return all_orders
    return [o for o in all_orders if str(o.get("user_id") or "") == str(current_user.get("id"))]


@router.get("/{order_id}")
def get_order(order_id: int, current_user: Dict[str, Any] = Depends(get_current_active_user), db: FileBackedDB = Depends(get_db)):
    row = db.get_record("orders", "id", order_id)
    if not row:
        raise HTTPException(status_code=404, detail="Order not found")
    if not _can_access(current_user, row):
        raise HTTPException(status_code=403, detail="Not authorized to view this order")
    order = Order.from_dict(row)
    out = dict(row)
    out["items"] = [it.to_dict() for it in order.items]
    out["status_history"] = order.status_history
    out["allowed_transitions"] = Order.ALLOWED_TRANSITIONS.get(order.status, [])
    return out


@router.post("/{order_id}/transition")
def transition_order_status(
    order_id: int,
    payload: TransitionRequest,
    current_user: Dict[str, Any] = Depends(get_current_active_user),
    db: FileBackedDB = Depends(get_db),
):
    """
    Move an order to another status through the order state machine.
    Body: { "status": "<target>", "expected_version": <int, optional> }
    Customers may only cancel their own orders; every other move needs an admin.
    Returns the updated order record.
    """
    new_status = payload.status.strip()
    if not new_status:
        raise HTTPException(status_code=400, detail="status required")

    row = db.get_record("orders", "id", order_id)
    if not row:
        raise HTTPException(status_code=404, detail="Order not found")
    if not _can_access(current_user, row):
        raise HTTPException(status_code=403, detail="Not allowed to transition this order")
    if not current_user.get("is_admin") and new_status != "cancelled":
        raise HTTPException(status_code=403, detail="Only admins can move orders to this status")

    order = Order.from_dict(row)
    try:
        order.transition_to(
            new_status,
            actor=str(current_user.get("username") or current_user.get("id") or ""),
            meta=payload.meta,
            expected_version=payload.expected_version,
        )
    except InvalidTransition as it:
        raise HTTPException(status_code=400, detail=str(it))
    except OptimisticLockError as ol:
        raise HTTPException(status_code=409, detail=str(ol))

    return {"ok": True, "order": _persist_transition(db, order_id, order)}


@router.put("/{order_id}/status")
def set_order_status(order_id: int, payload: StatusUpdate, current_user: Dict[str, Any] = Depends(require_admin),
                     db: FileBackedDB = Depends(get_db)):
    """
    Admin-only: change order.status. Payload: { "status": "shipped" }.
    Goes through the state machine, so only allowed moves are accepted.
    """
    row = db.get_record("orders", "id", order_id)
    if not row:
        raise HTTPException(status_code=404, detail="Order not found")
    order = Order.from_dict(row)
    try:
        order.transition_to(payload.status.strip(), actor=str(current_user.get("username") or ""))
    except InvalidTransition as it:
        raise HTTPException(status_code=400, detail=str(it))
    return {"ok": True, "order": _persist_transition(db, order_id, order)}
