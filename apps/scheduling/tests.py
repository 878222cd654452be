import json
import logging
import threading
from datetime import date, timedelta

import pytest
from django.db import connection
from rest_framework.throttling import UserRateThrottle

from apps.projects.models import Project
from apps.scheduling import booking, policy
from apps.scheduling.availability import Booking, resolve_availability
from apps.scheduling.booking import book_install, cancel_install, change_schedule
from apps.scheduling.days import generate_days, iter_dates, month_bounds
from apps.scheduling.errors import BookingError
from apps.scheduling.models import SlotLock
from apps.scheduling.services import admin_schedule, customer_schedule
from conftest import API_PREFIX, TODAY

AM = Project.InstallSlot.AM
PM = Project.InstallSlot.PM


@pytest.mark.parametrize(
    "offset, expected",
    [(0, False), (2, False), (3, True), (15, True), (30, True), (31, False), (-1, False)],
)
def test_booking_window_boundaries(offset, expected):
    assert policy.is_bookable_date(TODAY + timedelta(days=offset), TODAY) is expected


def test_booking_window_follows_settings(settings):
    settings.INSTALL_MIN_NOTICE_DAYS = 1
    settings.INSTALL_MAX_NOTICE_DAYS = 7
    assert policy.booking_window(TODAY) == (date(2025, 6, 11), date(2025, 6, 17))


@pytest.mark.parametrize(
    "year, expected",
    [
        (2018, date(2018, 11, 22)),  # Nov 1 is a Thursday
        (2023, date(2023, 11, 23)),
        (2024, date(2024, 11, 28)),
        (2025, date(2025, 11, 27)),
    ],
)
def test_thanksgiving_is_fourth_thursday(year, expected):
    assert policy.thanksgiving(year) == expected
    assert policy.holiday_name(expected) == "Thanksgiving"
    assert policy.is_excluded_day(expected)
    assert not policy.is_excluded_day(expected - timedelta(days=7))


def test_every_weekend_day_in_month_is_excluded():
    first, last = month_bounds(2025, 6)
    for day in iter_dates(first, last):
        if day.weekday() >= 5:
            assert policy.is_excluded_day(day), day


@pytest.mark.parametrize("year", [2024, 2025, 2026, 2027])
def test_christmas_is_excluded_whatever_the_weekday(year):
    assert policy.is_excluded_day(date(year, 12, 25))
    assert policy.holiday_name(date(year, 12, 25)) == "Christmas Day"


def test_fixed_holidays_on_weekdays():
    assert policy.holiday_name(date(2025, 1, 1)) == "New Year's Day"
    assert policy.holiday_name(date(2025, 7, 4)) == "Independence Day"
    assert policy.holiday_name(date(2025, 11, 11)) == "Veterans Day"
    assert policy.holiday_name(date(2025, 12, 24)) == "Christmas Eve"
    assert policy.holiday_name(date(2025, 12, 31)) == "New Year's Eve"
    assert policy.holiday_name(date(2025, 6, 13)) is None


def test_observed_holidays_are_configurable(settings):
    settings.INSTALL_OBSERVED_HOLIDAYS = ["christmas_day", "thanksgiving"]
    assert not policy.is_excluded_day(date(2025, 7, 4))
    assert policy.is_excluded_day(date(2025, 12, 25))


def test_check_date_reports_window_before_exclusion():
    assert policy.check_date(date(2025, 6, 12), TODAY) == BookingError.OUTSIDE_WINDOW
    # Saturday inside the window
    assert policy.check_date(date(2025, 6, 14), TODAY) == BookingError.EXCLUDED_DAY
    assert policy.check_date(date(2025, 7, 4), TODAY) == BookingError.EXCLUDED_DAY
    assert policy.check_date(date(2025, 6, 13), TODAY) is None


def test_generate_days_flags():
    days = generate_days(date(2025, 6, 11), date(2025, 6, 16), TODAY)
    assert [d.date.day for d in days] == [11, 12, 13, 14, 15, 16]
    by_day = {d.date.day: d for d in days}
    assert not by_day[12].in_window and not by_day[12].bookable
    assert by_day[13].in_window and by_day[13].bookable
    assert by_day[14].is_weekend and not by_day[14].bookable
    assert by_day[16].bookable


def test_resolver_counts_per_slot():
    day = date(2025, 6, 13)
    days = generate_days(day, date(2025, 6, 16), TODAY)
    bookings = [Booking(day, "am", 1), Booking(day, "am", 2), Booking(date(2025, 6, 16), "pm", 3)]

    result = resolve_availability(days, bookings, capacity=2)

    assert len(result) == 4
    friday = result[0]
    assert [s.key for s in friday.slots] == ["am", "pm"]
    assert friday.slot("am").scheduled_count == 2
    assert friday.slot("am").is_full
    assert not friday.slot("am").bookable
    assert friday.slot("am").project_ids == (1, 2)
    assert friday.slot("pm").scheduled_count == 0
    assert friday.slot("pm").bookable
    saturday = result[1]
    assert not saturday.slot("am").is_full
    assert not saturday.slot("am").bookable
    assert result[3].slot("pm").scheduled_count == 1
    assert not result[3].slot("pm").is_full


def test_resolver_uses_configured_capacity(settings):
    settings.INSTALL_SLOT_CAPACITY = 1
    day = date(2025, 6, 13)
    result = resolve_availability(generate_days(day, day, TODAY), [Booking(day, "pm", 9)])
    assert result[0].slot("pm").capacity == 1
    assert result[0].slot("pm").is_full


@pytest.mark.django_db
def test_booking_scenario(make_project):
    project = make_project()

    result = book_install(project, date(2025, 6, 12), AM, today=TODAY)
    assert result.error == BookingError.OUTSIDE_WINDOW

    result = book_install(project, date(2025, 6, 13), AM, today=TODAY)
    assert result.ok
    project.refresh_from_db()
    assert project.install_date == date(2025, 6, 13)
    assert project.install_slot == "am"

    result = book_install(project, date(2025, 6, 16), PM, today=TODAY)
    assert result.error == BookingError.ALREADY_BOOKED
    project.refresh_from_db()
    assert (project.install_date, project.install_slot) == (date(2025, 6, 13), "am")

    assert cancel_install(project).ok
    result = book_install(project, date(2025, 6, 16), PM, today=TODAY)
    assert result.ok
    assert (result.project.install_date, result.project.install_slot) == (date(2025, 6, 16), "pm")


@pytest.mark.django_db
def test_same_slot_rebook_reports_already_booked(make_project):
    project = make_project()
    assert book_install(project, date(2025, 6, 13), AM, today=TODAY).ok
    assert book_install(project, date(2025, 6, 13), AM, today=TODAY).error == BookingError.ALREADY_BOOKED


@pytest.mark.django_db
@pytest.mark.parametrize(
    "status",
    [
        Project.Status.DRAFT,
        Project.Status.ACQUIRING_PERMITS,
        Project.Status.PRODUCTION,
        Project.Status.COMPLETE,
        Project.Status.CANCELLED,
    ],
)
def test_only_installation_stage_may_book(make_project, status):
    project = make_project(status=status)
    # Valid date and slot; the stage alone decides.
    result = book_install(project, date(2025, 6, 13), AM, today=TODAY)
    assert result.error == BookingError.NOT_INSTALLABLE
    project.refresh_from_db()
    assert project.install_date is None and project.install_slot is None


@pytest.mark.django_db
def test_draft_project_is_not_installable_even_outside_window(make_project):
    project = make_project(status=Project.Status.DRAFT)
    result = book_install(project, date(2025, 6, 11), AM, today=TODAY)
    assert result.error == BookingError.NOT_INSTALLABLE


@pytest.mark.django_db
def test_excluded_days_are_refused(make_project):
    project = make_project()
    assert book_install(project, date(2025, 6, 14), AM, today=TODAY).error == BookingError.EXCLUDED_DAY
    assert book_install(project, date(2025, 7, 4), PM, today=TODAY).error == BookingError.EXCLUDED_DAY


@pytest.mark.django_db
def test_full_slot_is_refused_other_slot_unaffected(make_project, other_customer):
    day = date(2025, 6, 13)
    holder = make_project(user=other_customer, install_date=day, install_slot=AM)
    project = make_project()

    result = book_install(project, day, AM, today=TODAY)
    assert result.error == BookingError.SLOT_FULL
    project.refresh_from_db()
    assert not project.is_scheduled

    assert book_install(project, day, PM, today=TODAY).ok
    holder.refresh_from_db()
    assert holder.install_slot == "am"


@pytest.mark.django_db
def test_capacity_above_one_allows_second_booking(settings, make_project, other_customer):
    settings.INSTALL_SLOT_CAPACITY = 2
    day = date(2025, 6, 13)
    make_project(user=other_customer, install_date=day, install_slot=AM)
    project = make_project()
    assert book_install(project, day, AM, today=TODAY).ok
    third = make_project(name="Pylon sign")
    assert book_install(third, day, AM, today=TODAY).error == BookingError.SLOT_FULL


@pytest.mark.django_db
def test_cancelled_project_does_not_hold_its_slot(make_project, other_customer):
    day = date(2025, 6, 13)
    make_project(
        user=other_customer, status=Project.Status.CANCELLED, install_date=day, install_slot=AM
    )
    assert book_install(make_project(), day, AM, today=TODAY).ok


@pytest.mark.django_db
def test_cancel_succeeds_outside_window(make_project):
    project = make_project(install_date=date(2025, 6, 11), install_slot=PM)
    result = cancel_install(project)
    assert result.ok
    project.refresh_from_db()
    assert project.install_date is None and project.install_slot is None


@pytest.mark.django_db
def test_cancel_unscheduled_is_a_no_op(make_project):
    project = make_project()
    assert cancel_install(project).ok
    assert cancel_install(project).ok


@pytest.mark.django_db
def test_change_schedule_requires_both_fields(make_project):
    project = make_project()
    assert change_schedule(project, date(2025, 6, 13), None, today=TODAY).error == BookingError.VALIDATION
    assert change_schedule(project, None, "am", today=TODAY).error == BookingError.VALIDATION
    project.refresh_from_db()
    assert not project.is_scheduled

    assert change_schedule(project, date(2025, 6, 13), "am", today=TODAY).ok
    assert change_schedule(project, None, None, today=TODAY).ok
    project.refresh_from_db()
    assert not project.is_scheduled


@pytest.mark.django_db
def test_booking_shows_up_in_admin_schedule(make_project):
    start, end = date(2025, 6, 13), date(2025, 6, 20)
    before = admin_schedule(start, end, TODAY)

    project = make_project()
    assert book_install(project, date(2025, 6, 16), PM, today=TODAY).ok
    after = admin_schedule(start, end, TODAY)

    for old_day, new_day in zip(before, after):
        for old_slot, new_slot in zip(old_day.slots, new_day.slots):
            delta = new_slot.scheduled_count - old_slot.scheduled_count
            if (new_day.date, new_slot.key) == (date(2025, 6, 16), "pm"):
                assert delta == 1
                assert new_slot.project_ids == (project.pk,)
            else:
                assert delta == 0


def test_iter_dates_reaches_last_representable_day():
    assert list(iter_dates(date(9999, 12, 30), date.max)) == [date(9999, 12, 30), date.max]


@pytest.mark.django_db
def test_booking_takes_one_lock_row_per_slot(make_project, other_customer):
    day = date(2025, 6, 13)
    assert book_install(make_project(), day, AM, today=TODAY).ok
    assert book_install(make_project(user=other_customer), day, PM, today=TODAY).ok
    refused = book_install(make_project(name="Pylon sign"), day, AM, today=TODAY)
    assert refused.error == BookingError.SLOT_FULL

    locks = SlotLock.objects.order_by("slot").values_list("date", "slot")
    assert list(locks) == [(day, "am"), (day, "pm")]


@pytest.mark.django_db
def test_capacity_is_counted_after_the_slot_lock(monkeypatch, make_project):
    calls = []
    real_lock, real_count = booking._lock_slot, booking.count_slot

    def lock_slot(*args):
        calls.append(("lock", connection.in_atomic_block))
        return real_lock(*args)

    def count_slot(*args):
        calls.append(("count", connection.in_atomic_block))
        return real_count(*args)

    monkeypatch.setattr(booking, "_lock_slot", lock_slot)
    monkeypatch.setattr(booking, "count_slot", count_slot)

    assert book_install(make_project(), date(2025, 6, 13), AM, today=TODAY).ok
    assert calls == [("lock", True), ("count", True)]


@pytest.mark.django_db(transaction=True)
@pytest.mark.skipif(
    not connection.features.has_select_for_update,
    reason="needs a database with row locks",
)
def test_concurrent_bookings_of_one_slot(make_project, other_customer):
    projects = [make_project(), make_project(user=other_customer)]
    day = date(2025, 6, 13)
    barrier = threading.Barrier(len(projects))
    results = []

    def book(project):
        try:
            barrier.wait()
            results.append(book_install(project, day, AM, today=TODAY).error)
        finally:
            connection.close()

    threads = [threading.Thread(target=book, args=(p,)) for p in projects]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    assert sorted(results, key=lambda e: e is not None) == [None, BookingError.SLOT_FULL]
    assert Project.objects.filter(install_date=day, install_slot=AM).count() == 1


@pytest.mark.django_db
def test_booking_log_line_carries_booking_fields(make_project, caplog, json_log_formatter):
    project = make_project()
    with caplog.at_level(logging.INFO, logger="apps.scheduling.booking"):
        assert book_install(project, date(2025, 6, 13), AM, today=TODAY).ok
        book_install(project, date(2025, 6, 16), PM, today=TODAY)

    booked, rejected = (json.loads(json_log_formatter.format(r)) for r in caplog.records)
    assert booked["message"] == "Installation booked"
    assert booked["project_id"] == project.pk
    assert booked["install_date"] == "2025-06-13"
    assert booked["install_slot"] == "am"
    assert rejected["reason"] == "already_booked"
    assert rejected["level"] == "warning"


@pytest.mark.django_db
def test_customer_schedule_only_names_own_projects(make_project, other_customer, customer):
    day = date(2025, 6, 13)
    theirs = make_project(user=other_customer, install_date=day, install_slot=AM)
    mine = make_project(install_date=day, install_slot=PM)

    (admin_day,) = admin_schedule(day, day, TODAY)
    assert admin_day.slot("am").project_ids == (theirs.pk,)

    (customer_day,) = customer_schedule(day, day, customer.pk, TODAY)
    am, pm = customer_day.slot("am"), customer_day.slot("pm")
    assert (am.scheduled_count, am.is_full, am.project_ids) == (1, True, ())
    assert pm.project_ids == (mine.pk,)


# API


@pytest.mark.django_db
def test_customer_schedule_shape(frozen_today, customer_client, make_project, other_customer):
    make_project(user=other_customer, install_date=date(2025, 6, 13), install_slot=AM)
    mine = make_project(install_date=date(2025, 6, 13), install_slot=PM)

    resp = customer_client.get(f"{API_PREFIX}/schedule/?from=2025-06-10&to=2025-06-16")
    assert resp.status_code == 200
    days = resp.json()
    assert len(days) == 7
    assert {"date", "bookable", "in_window", "is_weekend", "holiday", "slots"} <= days[0].keys()

    friday = next(d for d in days if d["date"] == "2025-06-13")
    assert friday["bookable"] is True
    am, pm = friday["slots"]
    assert set(am) == {"key", "label", "scheduled_count", "capacity", "is_full", "bookable", "is_mine"}
    assert am["key"] == "am" and am["is_full"] is True and am["is_mine"] is False
    assert pm["is_full"] is True and pm["is_mine"] is True
    assert mine.is_scheduled
    assert all("projects" not in s for s in friday["slots"])

    saturday = next(d for d in days if d["date"] == "2025-06-14")
    assert saturday["is_weekend"] is True
    assert saturday["bookable"] is False
    assert all(not s["bookable"] for s in saturday["slots"])


@pytest.mark.django_db
def test_admin_schedule_shows_slot_holders(frozen_today, admin_client, make_project):
    project = make_project(install_date=date(2025, 6, 13), install_slot=AM)

    resp = admin_client.get(f"{API_PREFIX}/admin/schedule/?from=2025-06-13&to=2025-06-13")
    assert resp.status_code == 200
    (day,) = resp.json()
    am = day["slots"][0]
    assert am["scheduled_count"] == 1
    assert am["capacity"] == 1
    assert am["projects"] == [
        {"id": project.pk, "name": project.name, "status": "installation", "customer": "John Doe"}
    ]


@pytest.mark.django_db
def test_schedule_defaults_to_thirty_days(frozen_today, customer_client):
    resp = customer_client.get(f"{API_PREFIX}/schedule/")
    assert resp.status_code == 200
    days = resp.json()
    assert len(days) == 30
    assert days[0]["date"] == "2025-06-10"
    assert days[-1]["date"] == "2025-07-09"


@pytest.mark.django_db
def test_schedule_by_month(frozen_today, customer_client):
    resp = customer_client.get(f"{API_PREFIX}/schedule/?month=2025-11")
    assert resp.status_code == 200
    days = resp.json()
    assert len(days) == 30
    thanksgiving = next(d for d in days if d["date"] == "2025-11-27")
    assert thanksgiving["holiday"] == "Thanksgiving"
    assert thanksgiving["bookable"] is False


@pytest.mark.django_db
@pytest.mark.parametrize(
    "query",
    ["from=2025-99-01&to=2025-10-31", "from=2025-07-01&to=2025-06-01", "month=2025-13",
     "from=2025-01-01&to=2027-01-01", "month=2025-06&from=2025-06-01", "month=0000-01",
     "from=9999-12-20"],
)
def test_bad_schedule_range_returns_422(frozen_today, customer_client, query):
    resp = customer_client.get(f"{API_PREFIX}/schedule/?{query}")
    assert resp.status_code == 422


@pytest.mark.django_db
def test_schedule_requires_authentication(api_client):
    assert api_client.get(f"{API_PREFIX}/schedule/").status_code == 401


@pytest.mark.django_db
def test_admin_schedule_forbidden_for_customers(customer_client):
    assert customer_client.get(f"{API_PREFIX}/admin/schedule/").status_code == 403


@pytest.mark.django_db
def test_throttle_hits_429(monkeypatch, frozen_today, customer_client):
    monkeypatch.setattr(UserRateThrottle, "THROTTLE_RATES", {"user": "3/min"})
    url = f"{API_PREFIX}/schedule/?from=2025-06-10&to=2025-06-12"
    for _ in range(3):
        assert customer_client.get(url).status_code == 200
    resp = customer_client.get(url)
    assert resp.status_code == 429


@pytest.mark.django_db
def test_schedule_at_end_of_calendar(frozen_today, customer_client):
    resp = customer_client.get(f"{API_PREFIX}/schedule/?from=9999-12-31&to=9999-12-31")
    assert resp.status_code == 200
    (day,) = resp.json()
    assert day["date"] == "9999-12-31"
    assert day["bookable"] is False
