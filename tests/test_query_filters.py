from datetime import date

import pytest
from sqlalchemy import select

from models.database import VolunteerAssignment
from services.query_filters import ShiftScope, clamp_limit, clamp_offset, date_range, DEFAULT_LIMIT, MAX_LIMIT

from conftest import make_volunteer, make_assignment


def test_limit_and_offset_clamping():
    assert clamp_limit(None) == DEFAULT_LIMIT
    assert clamp_limit(0) == 1
    assert clamp_limit(-5) == 1
    assert clamp_limit(10_000) == MAX_LIMIT
    assert clamp_offset(-1) == 0

    scope = ShiftScope(limit=0, offset=-10, shift="   ")
    assert (scope.limit, scope.offset, scope.shift) == (1, 0, None)


def test_shift_filter_is_bound_not_inlined():
    scope = ShiftScope(event_id=1, shift="x'; DROP TABLE attendance; --")
    compiled = scope.apply(select(VolunteerAssignment.id)).compile()

    assert "DROP" not in str(compiled)
    assert any("DROP TABLE" in str(value) for value in compiled.params.values())


def test_unpaged_scope_has_no_limit():
    scope = ShiftScope(committee_id=3, limit=5)
    stmt = scope.unpaged().page(select(VolunteerAssignment.id))
    assert stmt._limit_clause is None
    assert scope.page(select(VolunteerAssignment.id))._limit_clause is not None


def test_date_range_is_inclusive_by_day():
    conditions = date_range(VolunteerAssignment.start_time, date(2024, 2, 1), date(2024, 2, 3))
    assert len(conditions) == 2
    assert date_range(VolunteerAssignment.start_time) == []


@pytest.mark.asyncio
async def test_shift_wildcards_match_literally(db_session, seed_event, seed_committee):
    literal = make_assignment(db_session, seed_event, seed_committee,
                              make_volunteer(db_session, "Asha"), shift="Slot 50%")
    make_assignment(db_session, seed_event, seed_committee, make_volunteer(db_session, "Ravi"), shift="Slot 500")

    stmt = ShiftScope(shift="50%").apply(select(VolunteerAssignment.id))
    assert db_session.execute(stmt).scalars().all() == [literal.id]
