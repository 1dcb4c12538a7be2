"""PayMongo payment gateway adapter.

Talks to the PayMongo REST API over httpx with HTTP basic auth (the secret
key as username, empty password). Payloads use PayMongo's JSON:API envelope
``{"data": {"attributes": {...}}}`` and amounts in centavos.

Transport failures and non-2xx responses are raised as UpstreamFailureError
carrying the upstream error body.
"""

import httpx
import structlog

from ordering.exceptions import UpstreamFailureError
from ordering.payments.port import PaymentGateway, PaymentResult, PaymentSource

logger = structlog.get_logger(__name__)

DEFAULT_API_URL = "https://api.paymongo.com/v1"


class PayMongoGateway(PaymentGateway):
    """Production PayMongo gateway adapter."""

    def __init__(
        self,
        secret_key: str,
        api_url: str = DEFAULT_API_URL,
        timeout: float = 30.0,
        transport: httpx.BaseTransport | None = None,
    ) -> None:
        self._client = httpx.Client(
            base_url=api_url,
            auth=(secret_key, ""),
            headers={"Content-Type": "application/json", "Accept": "application/json"},
            timeout=httpx.Timeout(timeout),
            transport=transport,
        )

    def close(self) -> None:
        self._client.close()

    def _request(self, method: str, path: str, attributes: dict | None = None) -> dict:
        payload = {"data": {"attributes": attributes}} if attributes is not None else None
        try:
            response = self._client.request(method, path, json=payload)
            response.raise_for_status()
        except httpx.HTTPStatusError as exc:
            try:
                details = exc.response.json()
            except ValueError:
                details = exc.response.text
            logger.warning(
                "PayMongo request rejected",
                path=path,
                status_code=exc.response.status_code,
            )
            raise UpstreamFailureError(
                {"payment": [f"Payment gateway rejected the request ({exc.response.status_code})"]},
                details=details,
            ) from exc
        except httpx.RequestError as exc:
            logger.warning("PayMongo unreachable", path=path, error=str(exc))
            raise UpstreamFailureError({"payment": ["Payment gateway unreachable"]}, details=str(exc)) from exc
        return response.json()["data"]

    @staticmethod
    def _source(data: dict) -> PaymentSource:
        attributes = data.get("attributes", {})
        redirect = attributes.get("redirect") or {}
        return PaymentSource(
            source_id=data["id"],
            status=attributes.get("status", "pending"),
            amount=int(attributes.get("amount", 0)),
            currency=attributes.get("currency", "PHP"),
            source_type=attributes.get("type"),
            checkout_url=redirect.get("checkout_url"),
        )

    @staticmethod
    def _payment(data: dict) -> PaymentResult:
        attributes = data.get("attributes", {})
        return PaymentResult(
            payment_id=data.get("id"),
            status=attributes.get("status", "failed"),
            amount=attributes.get("amount"),
            failure_reason=attributes.get("failed_message"),
        )

    def create_source(
        self,
        amount: int,
        currency: str,
        source_type: str,
        redirect_url: str,
    ) -> PaymentSource:
        data = self._request(
            "POST",
            "/sources",
            {
                "amount": amount,
                "currency": currency,
                "type": source_type,
                "redirect": {"success": redirect_url, "failed": redirect_url},
            },
        )
        return self._source(data)

    def get_source(self, source_id: str) -> PaymentSource:
        return self._source(self._request("GET", f"/sources/{source_id}"))

    def create_payment(
        self,
        source_id: str,
        amount: int,
        currency: str,
        description: str,
    ) -> PaymentResult:
        data = self._request(
            "POST",
            "/payments",
            {
                "amount": amount,
                "currency": currency,
                "description": description,
                "source": {"id": source_id, "type": "source"},
            },
        )
        return self._payment(data)

    def get_payment(self, payment_id: str) -> PaymentResult:
        return self._payment(self._request("GET", f"/payments/{payment_id}"))
