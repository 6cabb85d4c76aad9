# fibersync/services/xendit_client.py
"""HTTP client for the Xendit invoice API."""
import logging
from contextlib import nullcontext
from typing import Any, Dict, Optional

import httpx

from ..core.config import Settings, get_settings

logger = logging.getLogger(__name__)


class PaymentGatewayError(Exception):
    """Xendit could not be reached or answered with something unusable."""


class XenditClient:
    def __init__(self, settings: Optional[Settings] = None, http_client: Optional[httpx.Client] = None):
        self.settings = settings or get_settings()
        self.http_client = http_client

    def _open(self):
        # An injected client belongs to the caller and stays open
        if self.http_client is not None:
            return nullcontext(self.http_client)
        return httpx.Client(timeout=self.settings.xendit_timeout)

    def create_invoice(self, payload: Dict[str, Any]) -> Dict[str, Any]:
        """
        Creates a hosted invoice. Returns Xendit's JSON; `id` and
        `invoice_url` are guaranteed present.

        Raises:
            PaymentGatewayError: transport failure, non-2xx answer or an
            answer without id/invoice_url.
        """
        if not self.settings.xendit_api_key:
            raise PaymentGatewayError("Payment gateway is not configured")

        url = f"{self.settings.xendit_api_url.rstrip('/')}/v2/invoices"
        try:
            with self._open() as client:
                response = client.post(url, json=payload, auth=(self.settings.xendit_api_key, ""))
            response.raise_for_status()
            data = response.json()
        except httpx.HTTPStatusError as e:
            logger.error(f"Xendit invoice failed for {payload.get('external_id')}: "
                         f"{e.response.status_code} {e.response.text}")
            raise PaymentGatewayError("Payment gateway unavailable. Please try again later.")
        except (httpx.RequestError, ValueError) as e:
            logger.error(f"Xendit unreachable for {payload.get('external_id')}: {e}")
            raise PaymentGatewayError("Payment gateway unavailable. Please try again later.")

        if not isinstance(data, dict) or not data.get("id") or not data.get("invoice_url"):
            logger.error(f"Unexpected Xendit response for {payload.get('external_id')}: {data}")
            raise PaymentGatewayError("Invalid response from payment gateway")
        return data
