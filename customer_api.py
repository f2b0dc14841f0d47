"""
Shopify Admin API client for customer records.

Only the two calls the preferences page needs: fetch a customer and
update a customer. Failures are converted to CustomerApiError subclasses
here so callers never see requests exceptions or raw responses.
"""

import logging
from urllib.parse import quote

import requests

from config import Settings

logger = logging.getLogger(__name__)


class CustomerApiError(RuntimeError):
    """Base class for failures talking to the customer API."""


class UpstreamUnavailable(CustomerApiError):
    """Transport failure, unreadable response, or missing configuration."""


class UpstreamRejected(CustomerApiError):
    """The customer API answered with a non-success status."""

    def __init__(self, status_code: int, body: str):
        super().__init__(f"Customer API returned HTTP {status_code}")
        self.status_code = status_code
        self.body = body


class CustomerClient:
    """Talks to /customers/{id}.json on the configured shop."""

    def __init__(self, settings: Settings):
        self.settings = settings

    def customer_url(self, customer_id) -> str:
        return f"{self.settings.base_url}/customers/{quote(str(customer_id), safe='')}.json"

    def _headers(self) -> dict[str, str]:
        return {
            "X-Shopify-Access-Token": self.settings.access_token,
            "Content-Type": "application/json",
        }

    def _check_configured(self) -> None:
        missing = self.settings.missing()
        if missing:
            raise UpstreamUnavailable(f"Missing configuration: {', '.join(missing)}")

    def _send(self, method: str, customer_id, payload: dict | None = None) -> requests.Response:
        self._check_configured()
        url = self.customer_url(customer_id)
        logger.debug("%s %s", method, url)

        try:
            response = requests.request(
                method,
                url,
                headers=self._headers(),
                json=payload,
                timeout=self.settings.timeout,
            )
        except requests.RequestException as exc:
            raise UpstreamUnavailable(f"{method} {url} failed: {exc}") from exc

        if not response.ok:
            raise UpstreamRejected(response.status_code, response.text)
        return response

    def fetch_customer(self, customer_id) -> dict:
        """Return the `customer` object for customer_id."""
        response = self._send("GET", customer_id)

        try:
            data = response.json()
        except ValueError as exc:
            raise UpstreamUnavailable("Customer API returned invalid JSON") from exc

        customer = data.get("customer") if isinstance(data, dict) else None
        if not isinstance(customer, dict):
            raise UpstreamUnavailable("Customer API response has no customer object")
        return customer

    def update_customer(self, customer_id, payload: dict) -> None:
        """PUT payload to customer_id. The response body is not inspected."""
        self._send("PUT", customer_id, payload)
