#!/usr/bin/env python3
"""Test subscription derivation and the read/write flow against a fake Shopify"""

from datetime import datetime, timezone

import pytest

from customer_api import UpstreamRejected, UpstreamUnavailable
from preferences import (
    LOADING_MESSAGE,
    STATUS_FETCH_ERROR,
    STATUS_SUBSCRIBED,
    STATUS_UNAVAILABLE,
    STATUS_UNSUBSCRIBED,
    UPDATED_SUBSCRIBED,
    UPDATED_UNSUBSCRIBED,
    build_update_payload,
    consent_timestamp,
    is_subscribed,
    read_status,
    write_status,
)

CONSENT_STATES = ["subscribed", "unsubscribed", "pending", "invalid", "not_subscribed", None]


class FakeShopify:
    """In-memory stand-in for CustomerClient."""

    def __init__(self, customers=None, error=None):
        self.customers = customers or {}
        self.error = error
        self.fetches = []
        self.updates = []

    def fetch_customer(self, customer_id):
        self.fetches.append(customer_id)
        if self.error:
            raise self.error
        return self.customers[customer_id]

    def update_customer(self, customer_id, payload):
        self.updates.append((customer_id, payload))
        if self.error:
            raise self.error
        customer = payload["customer"]
        self.customers[customer_id] = {
            "id": customer["id"],
            "accepts_marketing": customer["accepts_marketing"],
            "email_marketing_consent": {
                "state": customer["email_marketing_consent"]["state"],
                "opt_in_level": customer["email_marketing_consent"]["opt_in_level"],
            },
        }


@pytest.mark.parametrize("state", CONSENT_STATES)
def test_legacy_flag_wins_regardless_of_consent(state):
    customer = {"accepts_marketing": True, "email_marketing_consent": {"state": state}}
    assert is_subscribed(customer) is True


def test_consent_state_subscribed_counts_without_legacy_flag():
    customer = {"accepts_marketing": False, "email_marketing_consent": {"state": "subscribed"}}
    assert is_subscribed(customer) is True


@pytest.mark.parametrize("state", [s for s in CONSENT_STATES if s != "subscribed"])
def test_other_consent_states_are_not_subscribed(state):
    customer = {"accepts_marketing": False, "email_marketing_consent": {"state": state}}
    assert is_subscribed(customer) is False


def test_missing_fields_are_not_subscribed():
    assert is_subscribed({}) is False
    assert is_subscribed({"accepts_marketing": None, "email_marketing_consent": None}) is False


@pytest.mark.parametrize("customer_id", [None, "", "   "])
def test_read_without_customer_id_skips_upstream(customer_id):
    shopify = FakeShopify()

    assert read_status(shopify, customer_id) == (False, LOADING_MESSAGE)
    assert shopify.fetches == []


def test_read_subscribed_through_consent_state():
    shopify = FakeShopify({
        "123": {"accepts_marketing": False, "email_marketing_consent": {"state": "subscribed"}},
    })

    assert read_status(shopify, "123") == (True, STATUS_SUBSCRIBED)
    assert shopify.fetches == ["123"]


def test_read_pending_is_not_subscribed():
    shopify = FakeShopify({
        "123": {"accepts_marketing": False, "email_marketing_consent": {"state": "pending"}},
    })

    assert read_status(shopify, "123") == (False, STATUS_UNSUBSCRIBED)


def test_read_rejected_degrades_to_unavailable(caplog):
    shopify = FakeShopify(error=UpstreamRejected(404, '{"errors":"Not Found"}'))

    assert read_status(shopify, "999") == (False, STATUS_UNAVAILABLE)
    assert "Not Found" in caplog.text


def test_read_transport_failure_degrades_to_fetch_error(caplog):
    shopify = FakeShopify(error=UpstreamUnavailable("timed out"))

    assert read_status(shopify, "999") == (False, STATUS_FETCH_ERROR)
    assert "Error fetching customer 999" in caplog.text


def test_consent_timestamp_is_utc_iso8601():
    now = datetime(2024, 10, 1, 12, 30, 45, 123456, tzinfo=timezone.utc)
    assert consent_timestamp(now) == "2024-10-01T12:30:45.123Z"


def test_consent_timestamp_defaults_to_now():
    stamp = consent_timestamp()
    assert stamp.endswith("Z")
    parsed = datetime.fromisoformat(stamp.replace("Z", "+00:00"))
    assert abs((datetime.now(timezone.utc) - parsed).total_seconds()) < 60


@pytest.mark.parametrize("desired,state", [(True, "subscribed"), (False, "unsubscribed")])
def test_update_payload_sets_both_representations(desired, state):
    now = datetime(2024, 10, 1, tzinfo=timezone.utc)
    payload = build_update_payload(123, desired, now)

    assert payload == {
        "customer": {
            "id": 123,
            "accepts_marketing": desired,
            "email_marketing_consent": {
                "state": state,
                "opt_in_level": "single_opt_in",
                "consent_updated_at": "2024-10-01T00:00:00.000Z",
            },
        }
    }


def test_write_sends_one_update_and_confirms():
    shopify = FakeShopify()

    assert write_status(shopify, 123, False) == UPDATED_UNSUBSCRIBED
    assert len(shopify.updates) == 1
    customer_id, payload = shopify.updates[0]
    assert customer_id == 123
    assert payload["customer"]["id"] == 123


def test_write_is_idempotent():
    shopify = FakeShopify()

    first = write_status(shopify, "123", True)
    state_after_first = dict(shopify.customers["123"])
    second = write_status(shopify, "123", True)

    assert first == second == UPDATED_SUBSCRIBED
    assert shopify.customers["123"] == state_after_first


def test_write_then_read_round_trip():
    shopify = FakeShopify({
        "123": {"accepts_marketing": False, "email_marketing_consent": {"state": "unsubscribed"}},
    })

    write_status(shopify, "123", True)
    assert read_status(shopify, "123") == (True, STATUS_SUBSCRIBED)

    write_status(shopify, "123", False)
    assert read_status(shopify, "123") == (False, STATUS_UNSUBSCRIBED)


def test_write_propagates_rejection(caplog):
    shopify = FakeShopify(error=UpstreamRejected(422, '{"errors":{"email":["is invalid"]}}'))

    with pytest.raises(UpstreamRejected):
        write_status(shopify, 123, True)
    assert "is invalid" in caplog.text


def test_write_propagates_transport_failure():
    shopify = FakeShopify(error=UpstreamUnavailable("connection refused"))

    with pytest.raises(UpstreamUnavailable):
        write_status(shopify, 123, True)


@pytest.mark.parametrize("consent", ["subscribed", ["subscribed"], 1])
def test_non_object_consent_is_not_subscribed(consent):
    assert is_subscribed({"accepts_marketing": False, "email_marketing_consent": consent}) is False


def test_read_malformed_consent_degrades_to_fetch_error(caplog):
    shopify = FakeShopify({
        "123": {"accepts_marketing": False, "email_marketing_consent": "subscribed"},
    })

    assert read_status(shopify, "123") == (False, STATUS_FETCH_ERROR)
    assert "malformed email_marketing_consent" in caplog.text


def test_read_legacy_flag_ignores_malformed_consent():
    shopify = FakeShopify({
        "123": {"accepts_marketing": True, "email_marketing_consent": "garbage"},
    })

    assert read_status(shopify, "123") == (True, STATUS_SUBSCRIBED)


@pytest.mark.parametrize("customer_id", [None, "", "  "])
def test_write_without_customer_id_skips_upstream(customer_id):
    shopify = FakeShopify()

    with pytest.raises(ValueError):
        write_status(shopify, customer_id, True)
    assert shopify.updates == []
