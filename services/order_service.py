"""
Order finalization adapter.

Submits a paid (or free) order to the order-recording service and returns
the order id it assigns.

A failure here is never retried automatically: by the time this runs the
customer may already have been charged, so the pipeline reports it as a
partial failure for manual follow-up.

Wire contract:
    POST {ORDER_SERVICE_URL}/create-final-order
        json: {"shippingDetails": {...}, "printJobDescriptor": "...", ...}
    200 -> {"success": true, "orderId": "INK-..."}
"""

from __future__ import annotations

from typing import Any, Dict, Optional

import requests

from core.exceptions import CollaboratorError, OrderRecordingError
from core.http_client import CollaboratorClient
from models.order import ShippingDetails
from logging_config import get_logger


# Module logger
logger = get_logger(__name__)


class OrderService:
    """Client for the order-recording collaborator."""

    def __init__(
        self,
        base_url: str,
        timeout_seconds: float = 30.0,
        http: Optional[requests.Session] = None
    ):
        self._client = CollaboratorClient(
            base_url, "orders", timeout_seconds=timeout_seconds, http=http, logger=logger
        )

    @classmethod
    def from_config(cls, config: Dict[str, Any]) -> "OrderService":
        """Build from a Flask app.config mapping."""
        return cls(
            base_url=config["ORDER_SERVICE_URL"],
            timeout_seconds=float(config.get("COLLABORATOR_TIMEOUT_SECONDS", 30.0)),
        )

    def record(
        self,
        shipping: ShippingDetails,
        print_job_descriptor: str,
        extra: Optional[Dict[str, Any]] = None
    ) -> str:
        """
        Record the order.

        Args:
            shipping: Recipient contact and address
            print_job_descriptor: Product code from modules.print_job
            extra: Additional order fields (title, story text, totals...)

        Returns:
            Order id assigned by the service

        Raises:
            OrderRecordingError: On any collaborator failure
        """
        payload = dict(extra or {})
        payload["shippingDetails"] = shipping.to_dict()
        payload["printJobDescriptor"] = print_job_descriptor

        logger.info(f"Recording order {print_job_descriptor} for {shipping.email or shipping.name}")

        try:
            body = self._client.post("create-final-order", json=payload)
        except CollaboratorError as e:
            raise OrderRecordingError(status_code=e.status_code, details={"cause": e.message}) from e

        order_id = body.get("orderId")
        if not order_id:
            logger.warning("Order service response had no orderId")
            raise OrderRecordingError(details={"cause": "response has no orderId"})

        logger.info(f"Order recorded: {order_id}")
        return str(order_id)
