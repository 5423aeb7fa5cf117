"""
Tests for the checkout analytics proxy
"""
from datetime import datetime, timezone

import pytest

from api.analytics import parse_iso_datetime
from checkout.models import CheckoutAnalytics
from core.exceptions import CoreAPIError

ANALYTICS_URL = "/api/analytics/checkout"


class TestParseIsoDatetime:
    @pytest.mark.parametrize(
        "value, expected",
        [
            ("2024-01-01T00:00:00Z", datetime(2024, 1, 1, tzinfo=timezone.utc)),
            ("2024-01-01T00:00:00.000Z", datetime(2024, 1, 1, tzinfo=timezone.utc)),
            ("2024-01-01", datetime(2024, 1, 1, tzinfo=timezone.utc)),
            ("2024-01-01T02:00:00+02:00", datetime(2024, 1, 1, tzinfo=timezone.utc)),
        ],
    )
    def test_valid_values(self, value, expected):
        assert parse_iso_datetime(value) == expected

    @pytest.mark.parametrize("value", ["yesterday", "2024-13-01", ""])
    def test_invalid_values(self, value):
        assert parse_iso_datetime(value) is None


class TestAnalyticsRoute:
    def test_returns_core_analytics(self, client, core_api, tenant_headers, tenant_id):
        core_api.get_checkout_analytics.return_value = CheckoutAnalytics(
            total_sessions=40,
            completed_checkouts=10,
            conversion_rate=0.25,
            revenue_by_payment_method={"stripe": 420.5},
        )

        response = client.get(
            ANALYTICS_URL,
            params={"startDate": "2024-01-01T00:00:00Z", "endDate": "2024-01-31T00:00:00Z"},
            headers=tenant_headers,
        )

        assert response.status_code == 200
        data = response.json()["data"]
        assert data["totalSessions"] == 40
        assert data["conversionRate"] == 0.25
        assert data["revenueByPaymentMethod"] == {"stripe": 420.5}
        called_tenant, start, end = core_api.get_checkout_analytics.await_args.args
        assert called_tenant == tenant_id
        assert start == datetime(2024, 1, 1, tzinfo=timezone.utc)
        assert end == datetime(2024, 1, 31, tzinfo=timezone.utc)

    @pytest.mark.parametrize(
        "params",
        [{}, {"startDate": "2024-01-01"}, {"endDate": "2024-01-31"}],
    )
    def test_missing_parameters(self, client, tenant_headers, params):
        response = client.get(ANALYTICS_URL, params=params, headers=tenant_headers)

        assert response.status_code == 400
        assert response.json()["error"] == {
            "code": "MISSING_PARAMETERS",
            "message": "startDate and endDate query parameters are required",
        }

    def test_invalid_date(self, client, tenant_headers, core_api):
        response = client.get(
            ANALYTICS_URL,
            params={"startDate": "last week", "endDate": "2024-01-31"},
            headers=tenant_headers,
        )

        assert response.status_code == 400
        assert response.json()["error"]["code"] == "INVALID_DATE_FORMAT"
        core_api.get_checkout_analytics.assert_not_awaited()

    def test_core_api_failure(self, client, tenant_headers, core_api):
        core_api.get_checkout_analytics.side_effect = CoreAPIError("500 - boom", status_code=500)

        response = client.get(
            ANALYTICS_URL,
            params={"startDate": "2024-01-01", "endDate": "2024-01-31"},
            headers=tenant_headers,
        )

        assert response.status_code == 500
        assert response.json()["error"] == {
            "code": "ANALYTICS_ERROR",
            "message": "LinkBay API Error: 500 - boom",
        }

    def test_requires_tenant(self, client):
        response = client.get(ANALYTICS_URL, params={"startDate": "2024-01-01", "endDate": "2024-01-31"})

        assert response.status_code == 400
        assert response.json()["error"]["code"] == "MISSING_TENANT_ID"
