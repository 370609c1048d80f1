"""
Tests for the CSV exports.
"""

import io
from decimal import Decimal

import pandas as pd
import pytest

from reseller_portal.models import CommissionStatus
from reseller_portal.services.commission_service import CommissionService
from reseller_portal.services.commission_state import Actor
from reseller_portal.services.deal_service import DealService
from reseller_portal.services.report_service import COMMISSION_COLUMNS, ReportService

from tests.conftest import FailingCollaborator


def read_csv(content):
    return pd.read_csv(io.StringIO(content), dtype=str, keep_default_na=False)


@pytest.fixture
def closed_deals(db, admin, make_customer, reseller, other_reseller):
    deals = DealService(db, auditor=FailingCollaborator(), notifier=FailingCollaborator())
    first = deals.close_deal(make_customer(reseller, "Acme Corp").id, Decimal("12000"), 2, closed_by_admin_id=admin.id)
    deals.close_deal(make_customer(other_reseller, "Globex").id, Decimal("5000"), 1, closed_by_admin_id=admin.id)
    CommissionService(db, auditor=FailingCollaborator(), notifier=FailingCollaborator()).transition_commission(
        first.commissions[0].id, CommissionStatus.APPROVED, Actor.ADMIN, actor_id=admin.id
    )
    return first


class TestCommissionExport:

    def test_admin_sees_all_rows(self, db, admin, closed_deals):
        filename, content = ReportService.export_commissions(db, admin)
        frame = read_csv(content)

        assert filename.startswith("commission-statement-") and filename.endswith(".csv")
        assert list(frame.columns) == COMMISSION_COLUMNS
        assert len(frame) == 3
        assert set(frame["Customer"]) == {"Acme Corp", "Globex"}

    def test_reseller_sees_only_own_rows(self, db, reseller, other_reseller, closed_deals):
        _, content = ReportService.export_commissions(db, reseller, reseller_id=other_reseller.id)
        frame = read_csv(content)

        assert set(frame["Reseller"]) == {"Reseller"}
        assert sorted(frame["Amount"]) == ["2400.00", "2400.00"]

    def test_filters(self, db, admin, closed_deals):
        _, content = ReportService.export_commissions(db, admin, status=CommissionStatus.APPROVED)
        frame = read_csv(content)

        assert len(frame) == 1
        assert frame.loc[0, "Approved By"] == "Admin"
        assert frame.loc[0, "Period"] == "Year 1"

    def test_empty_export_keeps_header(self, db, admin):
        _, content = ReportService.export_commissions(db, admin)

        assert content.splitlines() == [",".join(COMMISSION_COLUMNS)]


class TestAdminExports:

    def test_customers(self, db, closed_deals):
        _, content = ReportService.export_customers(db)
        frame = read_csv(content)

        acme = frame[frame["Company Name"] == "Acme Corp"].iloc[0]
        assert acme["Status"] == "ACTIVE"
        assert acme["Contract Value"] == "12000.00"
        assert acme["Reseller"] == "Reseller"

    def test_resellers_with_totals(self, db, closed_deals):
        _, content = ReportService.export_resellers(db)
        frame = read_csv(content).set_index("Reseller Name")

        assert frame.loc["Reseller", "Customers"] == "1"
        assert frame.loc["Reseller", "Approved"] == "2400.00"
        assert frame.loc["Reseller", "Pending"] == "2400.00"
        assert frame.loc["Other Reseller", "Pending"] == "500.00"
        assert frame.loc["Other Reseller", "Paid"] == "0.00"

    def test_resellers_without_commissions(self, db, reseller):
        _, content = ReportService.export_resellers(db)
        frame = read_csv(content)

        assert frame.loc[0, "Pending"] == "0.00"
        assert frame.loc[0, "Customers"] == "0"

    def test_audit_logs(self, db, admin, customer):
        DealService(db).close_deal(customer.id, Decimal("1000"), 1, closed_by_admin_id=admin.id)

        _, content = ReportService.export_audit_logs(db)
        frame = read_csv(content)

        assert list(frame["Action"]) == ["DEAL_CLOSED"]
        assert frame.loc[0, "Performed By"] == "Admin"
        assert '"commissions_created": 1' in frame.loc[0, "Changes"]
