import pytest

from splitsmart.services.activity_service import (
    get_activity, get_dashboard, get_monthly_summary, simplify_user_debts
)
from splitsmart.services.group_service import add_member_to_group, create_group
from splitsmart.services.ledger_service import append_expense, append_settlement, read_all
from splitsmart.tests.conftest import ALICE, BOB, CAROL, DAVE


@pytest.fixture
def two_groups(db_session, group):
    """The trip group plus a flat shared by Bob and Dave."""
    flat = create_group(db_session, "Flat", BOB).id
    add_member_to_group(db_session, flat, DAVE)

    append_expense(db_session, group, ALICE, 900, "Dinner", [ALICE, BOB, CAROL])
    append_expense(db_session, flat, DAVE, 200, "Groceries", [BOB, DAVE])
    append_settlement(db_session, flat, BOB, DAVE, 40)
    return group, flat


@pytest.mark.integration
class TestDashboard:

    def test_totals_across_groups(self, db_session, two_groups):
        # Bob: -300 in the trip, -60 in the flat
        dashboard = get_dashboard(db_session, BOB)
        assert dashboard.groups == 2
        assert dashboard.you_owe == 360
        assert dashboard.you_get == 0

    def test_creditor(self, db_session, two_groups):
        dashboard = get_dashboard(db_session, ALICE)
        assert dashboard.groups == 1
        assert dashboard.you_owe == 0
        assert dashboard.you_get == 600

    def test_no_groups(self, db_session, users):
        dashboard = get_dashboard(db_session, DAVE)
        assert (dashboard.groups, dashboard.you_owe, dashboard.you_get) == (0, 0, 0)


@pytest.mark.integration
class TestActivity:

    def test_only_groups_of_user(self, db_session, two_groups):
        activity = get_activity(db_session, CAROL)
        assert [item.description for item in activity] == ["Dinner"]
        assert activity[0].group == "Trip"
        assert activity[0].paid_by == "Alice"
        assert activity[0].amount == 900

    def test_settlement_description(self, db_session, two_groups):
        activity = get_activity(db_session, DAVE)
        descriptions = {item.description for item in activity}
        assert descriptions == {"Groceries", "Bob paid Dave"}

    def test_limit(self, db_session, two_groups):
        assert len(get_activity(db_session, BOB, limit=2)) == 2
        assert len(get_activity(db_session, BOB)) == 3


@pytest.mark.integration
class TestMonthlySummary:

    def test_paid_and_share(self, db_session, two_groups):
        trip, _ = two_groups
        month = next(iter(read_all(db_session, trip))).created_at.strftime("%Y-%m")

        summary = get_monthly_summary(db_session, ALICE)
        assert len(summary.months) == 1
        assert summary.months[0].month == month
        assert summary.months[0].total_paid == 900
        assert summary.months[0].total_share == 300

    def test_settlements_are_not_spending(self, db_session, two_groups):
        summary = get_monthly_summary(db_session, BOB)
        total_paid = sum(m.total_paid for m in summary.months)
        total_share = sum(m.total_share for m in summary.months)
        assert total_paid == 0
        assert total_share == 400


@pytest.mark.integration
class TestSimplifyUserDebts:

    def test_suggestions_involving_user(self, db_session, two_groups):
        trip, flat = two_groups
        suggestions = simplify_user_debts(db_session, BOB)

        assert {(s.group_id, s.from_user_id, s.to_user_id, s.amount) for s in suggestions} == {
            (trip, BOB, ALICE, 300),
            (flat, BOB, DAVE, 60),
        }

    def test_excludes_other_members(self, db_session, two_groups):
        suggestions = simplify_user_debts(db_session, CAROL)
        assert [(s.from_user_id, s.to_user_id) for s in suggestions] == [(CAROL, ALICE)]
