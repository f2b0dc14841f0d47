"""
Marketing preference logic - read and write a customer's email subscription.

Shopify keeps two representations of marketing consent: the deprecated
`accepts_marketing` boolean and the structured `email_marketing_consent`
object. Reads treat the customer as subscribed if either says so; writes
always set both.
"""

import logging
from datetime import datetime, timezone

from customer_api import CustomerApiError, UpstreamRejected

logger = logging.getLogger(__name__)

SUBSCRIBED = "subscribed"
UNSUBSCRIBED = "unsubscribed"
OPT_IN_LEVEL = "single_opt_in"

LOADING_MESSAGE = "Loading..."
STATUS_SUBSCRIBED = "You are currently subscribed to marketing emails."
STATUS_UNSUBSCRIBED = "You are currently not subscribed to marketing emails."
STATUS_UNAVAILABLE = "⚠️ Unable to load current status."
STATUS_FETCH_ERROR = "⚠️ Error fetching customer data."

UPDATED_SUBSCRIBED = "✅ You are now subscribed to marketing emails."
UPDATED_UNSUBSCRIBED = "❌ You have unsubscribed from marketing emails."


def is_subscribed(customer: dict) -> bool:
    """
    Effective subscription state of a customer record.

    True when the legacy flag is set or the consent state is "subscribed".
    pending, invalid and missing values all count as not subscribed.
    """
    if customer.get("accepts_marketing"):
        return True
    consent = customer.get("email_marketing_consent")
    if not isinstance(consent, dict):
        return False
    return consent.get("state") == SUBSCRIBED


def has_consent_shape(customer: dict) -> bool:
    """email_marketing_consent is either absent or an object."""
    consent = customer.get("email_marketing_consent")
    return consent is None or isinstance(consent, dict)


def status_message(subscribed: bool) -> str:
    return STATUS_SUBSCRIBED if subscribed else STATUS_UNSUBSCRIBED


def _missing_id(customer_id) -> bool:
    return customer_id is None or str(customer_id).strip() == ""


def read_status(client, customer_id) -> tuple[bool, str]:
    """
    Look up the current subscription state for the preferences page.

    Returns (subscribed, message). Upstream failures degrade to
    (False, <warning message>) instead of raising.
    """
    if _missing_id(customer_id):
        return False, LOADING_MESSAGE

    try:
        customer = client.fetch_customer(customer_id)
    except UpstreamRejected as e:
        logger.warning(
            "Customer %s lookup rejected (HTTP %s): %s", customer_id, e.status_code, e.body
        )
        return False, STATUS_UNAVAILABLE
    except CustomerApiError:
        logger.exception("Error fetching customer %s", customer_id)
        return False, STATUS_FETCH_ERROR

    # accepts_marketing alone decides a subscribed customer
    if not customer.get("accepts_marketing") and not has_consent_shape(customer):
        logger.error(
            "Customer %s has malformed email_marketing_consent: %r",
            customer_id, customer.get("email_marketing_consent"),
        )
        return False, STATUS_FETCH_ERROR

    subscribed = is_subscribed(customer)
    return subscribed, status_message(subscribed)


def consent_timestamp(now: datetime | None = None) -> str:
    """UTC ISO-8601 timestamp with millisecond precision and a Z suffix."""
    now = now or datetime.now(timezone.utc)
    stamp = now.astimezone(timezone.utc).isoformat(timespec="milliseconds")
    return stamp.replace("+00:00", "Z")


def build_update_payload(customer_id, desired: bool, now: datetime | None = None) -> dict:
    """Update body that sets the legacy flag and the consent object together."""
    return {
        "customer": {
            "id": customer_id,
            "accepts_marketing": desired,
            "email_marketing_consent": {
                "state": SUBSCRIBED if desired else UNSUBSCRIBED,
                "opt_in_level": OPT_IN_LEVEL,
                "consent_updated_at": consent_timestamp(now),
            },
        }
    }


def write_status(client, customer_id, desired: bool) -> str:
    """
    Save the customer's choice upstream and return the confirmation message.

    Raises ValueError without calling Shopify when customer_id is empty,
    UpstreamRejected when Shopify refuses the update and
    UpstreamUnavailable when it cannot be reached.
    """
    if _missing_id(customer_id):
        raise ValueError("customer id is required")

    payload = build_update_payload(customer_id, desired)

    try:
        client.update_customer(customer_id, payload)
    except UpstreamRejected as e:
        logger.error(
            "Customer %s update rejected (HTTP %s): %s", customer_id, e.status_code, e.body
        )
        raise
    except CustomerApiError:
        logger.exception("Error updating customer %s", customer_id)
        raise

    state = payload["customer"]["email_marketing_consent"]["state"]
    logger.info("Customer %s marketing consent set to %s", customer_id, state)
    return UPDATED_SUBSCRIBED if desired else UPDATED_UNSUBSCRIBED
