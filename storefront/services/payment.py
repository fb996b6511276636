# storefront/services/payment.py
"""
Mercado Pago client.

Talks to the REST API with httpx. When no access token is configured the
gateway runs in mock mode and returns fixed preference / PIX payloads so the
storefront can be exercised end to end without credentials.
"""
import logging
import uuid
from decimal import Decimal
from typing import Any, Dict, List, Optional

import httpx

from storefront.config import settings
from storefront.core.pricing import CURRENCY_CODE, round_money

logger = logging.getLogger(__name__)

MOCK_PIX_QR_CODE = (
    "00020126580014BR.GOV.BCB.PIX0136a629532e-7693-4846-b506-9698b936916952040000"
    "530398654041.005802BR5925MERCADOPAGO PAGAMENTO 6008SAOPAULO62070503***63041CC2"
)


class PaymentError(Exception):
    pass


def _split_name(full_name: str):
    parts = (full_name or "").split()
    if not parts:
        return "", ""
    return parts[0], " ".join(parts[1:])


def build_preference_payload(items: List[Dict[str, Any]], buyer: Dict[str, Any], back_urls: Dict[str, str],
                             order_id: Any, notification_url: str, installments: int = 10) -> Dict[str, Any]:
    """
    Checkout Pro preference body. `items` carry {id|product_id, name, price|unit_price, quantity};
    prices may be decimal strings and are sent as numbers rounded to cents.
    """
    preference_items = []
    for it in items:
        price = it.get("unit_price", it.get("price"))
        preference_items.append({
            "id": str(it.get("product_id", it.get("id"))),
            "title": it.get("name") or it.get("title") or "",
            "unit_price": float(round_money(price)),
            "quantity": int(it.get("quantity") or 1),
            "currency_id": CURRENCY_CODE,
        })
    return {
        "items": preference_items,
        "payer": {
            "name": buyer.get("name"),
            "email": buyer.get("email"),
            "identification": {"type": "CPF", "number": buyer.get("document")},
        },
        "payment_methods": {
            "excluded_payment_methods": [],
            "installments": installments,
        },
        "back_urls": {
            "success": back_urls.get("success"),
            "failure": back_urls.get("failure"),
            "pending": back_urls.get("pending"),
        },
        "auto_return": "approved",
        "external_reference": str(order_id),
        "notification_url": notification_url,
    }


def build_pix_payload(amount: Any, buyer: Dict[str, Any], description: str, order_id: Any,
                      notification_url: str) -> Dict[str, Any]:
    first_name, last_name = _split_name(buyer.get("name") or "")
    return {
        "transaction_amount": float(round_money(amount)),
        "description": description,
        "payment_method_id": "pix",
        "payer": {
            "email": buyer.get("email"),
            "first_name": first_name,
            "last_name": last_name,
            "identification": {"type": "CPF", "number": buyer.get("document")},
        },
        "notification_url": notification_url,
        "external_reference": str(order_id),
    }


class MercadoPagoGateway:
    """
    Payment gateway collaborator. Methods return the gateway's JSON body and
    raise PaymentError on transport or HTTP failures. Nothing is retried.
    """

    def __init__(self, access_token: Optional[str] = None, api_url: Optional[str] = None,
                 base_url: Optional[str] = None, client: Optional[httpx.Client] = None,
                 timeout: Optional[float] = None):
        self.access_token = settings.MERCADOPAGO_ACCESS_TOKEN if access_token is None else access_token
        self.api_url = (api_url or settings.MERCADOPAGO_API_URL).rstrip("/")
        self.base_url = (base_url or settings.BASE_URL).rstrip("/")
        self.timeout = timeout or settings.MERCADOPAGO_TIMEOUT
        self._client = client

    @property
    def mock_mode(self) -> bool:
        return not self.access_token

    @property
    def notification_url(self) -> str:
        return f"{self.base_url}/api/payment/webhook"

    def _request(self, method: str, path: str, json: Optional[Dict[str, Any]] = None,
                 idempotency_key: Optional[str] = None) -> Dict[str, Any]:
        headers = {"Authorization": f"Bearer {self.access_token}"}
        if idempotency_key:
            headers["X-Idempotency-Key"] = idempotency_key
        url = f"{self.api_url}{path}"
        try:
            if self._client is not None:
                resp = self._client.request(method, url, json=json, headers=headers, timeout=self.timeout)
            else:
                with httpx.Client(timeout=self.timeout) as client:
                    resp = client.request(method, url, json=json, headers=headers)
            resp.raise_for_status()
        except httpx.HTTPStatusError as e:
            logger.error("Mercado Pago %s %s failed with %s: %s", method, path, e.response.status_code, e.response.text)
            raise PaymentError(f"Mercado Pago returned {e.response.status_code}") from e
        except httpx.HTTPError as e:
            logger.error("Mercado Pago %s %s failed: %s", method, path, e)
            raise PaymentError(f"Mercado Pago unreachable: {e}") from e
        return resp.json()

    def create_preference(self, items: List[Dict[str, Any]], buyer: Dict[str, Any], back_urls: Dict[str, str],
                          order_id: Any) -> Dict[str, Any]:
        if not items:
            raise PaymentError("Preference requires at least one item")
        payload = build_preference_payload(items, buyer, back_urls, order_id, self.notification_url,
                                           installments=settings.MAX_INSTALLMENTS)
        if self.mock_mode:
            logger.warning("Mercado Pago access token not set, returning mock preference")
            return {"id": "mock-preference-id", "init_point": "#", "sandbox_init_point": "#"}
        return self._request("POST", "/checkout/preferences", json=payload)

    def create_pix_payment(self, amount: Any, buyer: Dict[str, Any], description: str,
                           order_id: Any) -> Dict[str, Any]:
        if round_money(amount) <= Decimal("0"):
            raise PaymentError("PIX amount must be positive")
        payload = build_pix_payload(amount, buyer, description, order_id, self.notification_url)
        if self.mock_mode:
            logger.warning("Mercado Pago access token not set, returning mock PIX data")
            return {
                "id": "mock-payment-id",
                "status": "pending",
                "transaction_amount": payload["transaction_amount"],
                "external_reference": payload["external_reference"],
                "point_of_interaction": {
                    "transaction_data": {
                        "qr_code": MOCK_PIX_QR_CODE,
                        "qr_code_base64": "",
                        "ticket_url": "#",
                    }
                },
            }
        return self._request("POST", "/v1/payments", json=payload, idempotency_key=uuid.uuid4().hex)

    def get_payment(self, payment_id: str) -> Dict[str, Any]:
        if self.mock_mode:
            logger.warning("Mercado Pago access token not set, cannot look up payment %s", payment_id)
            raise PaymentError("Mercado Pago access token not configured")
        return self._request("GET", f"/v1/payments/{payment_id}")
