"""
Unit tests for caller construction from platform roles.
"""

import pytest

from freight_ai.tools.roles import (
    AccountingCaller,
    AdminCaller,
    BrokerCaller,
    CarrierCaller,
    OperationsCaller,
    PublicCaller,
    caller_from_role,
    sees_all_rows,
)


class TestCallerFromRole:
    """Role strings map onto caller variants."""

    @pytest.mark.parametrize("role,expected", [
        ("CARRIER", CarrierCaller),
        ("BROKER", BrokerCaller),
        ("AE", BrokerCaller),
        ("DISPATCH", OperationsCaller),
        ("OPERATIONS", OperationsCaller),
        ("ACCOUNTING", AccountingCaller),
        ("ADMIN", AdminCaller),
        ("CEO", AdminCaller),
        ("SHIPPER", PublicCaller),
        ("", PublicCaller),
    ])
    def test_role_mapping(self, role, expected):
        assert isinstance(caller_from_role("u-1", role), expected)

    def test_role_is_case_insensitive(self):
        assert isinstance(caller_from_role("u-1", " broker "), BrokerCaller)

    def test_role_string_kept(self):
        assert caller_from_role("u-1", "AE").role == "AE"
        assert caller_from_role("u-1", "dispatch").role == "DISPATCH"

    def test_carrier_id_only_on_carriers(self):
        carrier = caller_from_role("u-1", "CARRIER", carrier_id="cp-1")
        broker = caller_from_role("u-1", "BROKER", carrier_id="cp-1")

        assert carrier.carrier_id == "cp-1"
        assert not hasattr(broker, "carrier_id")

    def test_row_visibility(self):
        assert sees_all_rows(OperationsCaller("u"))
        assert sees_all_rows(AccountingCaller("u"))
        assert sees_all_rows(AdminCaller("u"))
        assert not sees_all_rows(BrokerCaller("u"))
        assert not sees_all_rows(CarrierCaller("u"))
        assert not sees_all_rows(PublicCaller("u"))
