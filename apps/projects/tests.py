from datetime import date

import pytest
from django.core.exceptions import ValidationError
from django.core.files.uploadedfile import SimpleUploadedFile
from django.core.management import call_command
from django.db import IntegrityError, transaction

from apps.projects.models import Project, ProjectFile
from conftest import API_PREFIX


@pytest.mark.django_db
def test_new_project_defaults_to_draft(customer):
    project = Project.objects.create(user=customer, name="Monument sign")
    assert project.status == Project.Status.DRAFT
    assert not project.is_installable
    assert not project.is_scheduled


@pytest.mark.django_db
def test_set_schedule_rejects_half_a_booking(make_project):
    project = make_project()
    with pytest.raises(ValidationError):
        project.set_schedule(date(2025, 6, 13), None)
    with pytest.raises(ValidationError):
        project.set_schedule(None, "pm")
    project.refresh_from_db()
    assert project.install_date is None and project.install_slot is None


@pytest.mark.django_db
def test_database_rejects_date_without_slot(make_project):
    project = make_project()
    with pytest.raises(IntegrityError):
        with transaction.atomic():
            Project.objects.filter(pk=project.pk).update(install_date=date(2025, 6, 13))


@pytest.mark.django_db
def test_status_choices_enforced(make_project):
    project = make_project()
    project.status = "ready_for_install"
    with pytest.raises(ValidationError):
        project.full_clean()


@pytest.mark.django_db
def test_customer_lists_only_own_projects(customer_client, make_project, other_customer):
    mine = make_project()
    make_project(user=other_customer, name="Someone else's sign")

    resp = customer_client.get(f"{API_PREFIX}/projects/")
    assert resp.status_code == 200
    data = resp.json()
    assert [p["id"] for p in data] == [mine.pk]
    assert data[0]["can_schedule"] is True


@pytest.mark.django_db
def test_other_customers_project_is_404(customer_client, make_project, other_customer):
    theirs = make_project(user=other_customer)
    assert customer_client.get(f"{API_PREFIX}/projects/{theirs.pk}/").status_code == 404
    resp = customer_client.patch(
        f"{API_PREFIX}/projects/{theirs.pk}/",
        {"install_date": "2025-06-13", "install_slot": "am"},
        format="json",
    )
    assert resp.status_code == 404


@pytest.mark.django_db
def test_customer_books_and_cancels(frozen_today, customer_client, make_project):
    project = make_project()
    url = f"{API_PREFIX}/projects/{project.pk}/"

    resp = customer_client.patch(
        url, {"project": {"install_date": "2025-06-13", "install_slot": "am"}}, format="json"
    )
    assert resp.status_code == 200
    assert resp.json()["install_date"] == "2025-06-13"
    assert resp.json()["install_slot"] == "am"

    resp = customer_client.patch(
        url, {"install_date": "2025-06-16", "install_slot": "pm"}, format="json"
    )
    assert resp.status_code == 422
    assert resp.json()["reason"] == "already_booked"

    resp = customer_client.post(f"{API_PREFIX}/projects/{project.pk}/cancel_install/")
    assert resp.status_code == 200
    assert resp.json()["install_date"] is None

    resp = customer_client.patch(
        url, {"install_date": "2025-06-16", "install_slot": "pm"}, format="json"
    )
    assert resp.status_code == 200


@pytest.mark.django_db
def test_patch_with_nulls_cancels(frozen_today, customer_client, make_project):
    project = make_project(install_date=date(2025, 6, 13), install_slot="am")
    resp = customer_client.patch(
        f"{API_PREFIX}/projects/{project.pk}/",
        {"install_date": None, "install_slot": None},
        format="json",
    )
    assert resp.status_code == 200
    project.refresh_from_db()
    assert not project.is_scheduled


@pytest.mark.django_db
@pytest.mark.parametrize(
    "status, payload, reason",
    [
        (Project.Status.DRAFT, {"install_date": "2025-06-13", "install_slot": "am"}, "not_installable"),
        (Project.Status.INSTALLATION, {"install_date": "2025-06-12", "install_slot": "am"}, "outside_window"),
        (Project.Status.INSTALLATION, {"install_date": "2025-06-14", "install_slot": "am"}, "excluded_day"),
        (Project.Status.INSTALLATION, {"install_date": "2025-06-13"}, "validation_error"),
    ],
)
def test_refusals_are_422_with_reason(frozen_today, customer_client, make_project, status, payload, reason):
    project = make_project(status=status)
    resp = customer_client.patch(f"{API_PREFIX}/projects/{project.pk}/", payload, format="json")
    assert resp.status_code == 422
    body = resp.json()
    assert body["reason"] == reason
    assert body["error"]
    project.refresh_from_db()
    assert not project.is_scheduled


@pytest.mark.django_db
def test_full_slot_is_422(frozen_today, customer_client, make_project, other_customer):
    make_project(user=other_customer, install_date=date(2025, 6, 13), install_slot="am")
    project = make_project()
    resp = customer_client.patch(
        f"{API_PREFIX}/projects/{project.pk}/",
        {"install_date": "2025-06-13", "install_slot": "am"},
        format="json",
    )
    assert resp.status_code == 422
    assert resp.json()["reason"] == "slot_full"


@pytest.mark.django_db
@pytest.mark.parametrize(
    "payload",
    [
        {"install_date": "not-a-date", "install_slot": "am"},
        {"install_date": "2025-06-13", "install_slot": "evening"},
        {},
    ],
)
def test_malformed_schedule_payload_is_422(frozen_today, customer_client, make_project, payload):
    project = make_project()
    resp = customer_client.patch(f"{API_PREFIX}/projects/{project.pk}/", payload, format="json")
    assert resp.status_code == 422


@pytest.mark.django_db
def test_customer_cannot_change_status(frozen_today, customer_client, make_project):
    project = make_project(status=Project.Status.DRAFT)
    resp = customer_client.patch(
        f"{API_PREFIX}/projects/{project.pk}/",
        {"status": "installation", "install_date": "2025-06-13", "install_slot": "am"},
        format="json",
    )
    assert resp.status_code == 422
    project.refresh_from_db()
    assert project.status == Project.Status.DRAFT


@pytest.fixture
def make_projects(customer, other_customer, admin_user):
    statuses = [s for s, _ in Project.Status.choices]
    for i in range(25):
        Project.objects.create(
            user=[customer, other_customer][i % 2],
            created_by=admin_user,
            name=f"Sign {i}",
            status=statuses[i % len(statuses)],
        )


@pytest.mark.django_db
def test_admin_list_paginates_and_shapes(make_projects, admin_client):
    resp = admin_client.get(f"{API_PREFIX}/admin/projects/?limit=10&offset=0")
    assert resp.status_code == 200
    data = resp.json()
    assert data["count"] == 25
    results = data["results"]
    assert len(results) == 10
    keys = {"id", "name", "status", "install_date", "install_slot", "user", "created_by"}
    assert keys.issubset(results[0].keys())
    assert results[0]["created_by"]["email"] == "admin@example.com"


@pytest.mark.django_db
def test_admin_list_filters(make_projects, admin_client, customer):
    resp = admin_client.get(f"{API_PREFIX}/admin/projects/?status=draft&user={customer.pk}")
    assert resp.status_code == 200
    results = resp.json()["results"]
    assert results
    for r in results:
        assert r["status"] == "draft"
        assert r["user"]["id"] == customer.pk


@pytest.mark.django_db
def test_admin_list_filters_by_install_range(admin_client, make_project):
    inside = make_project(install_date=date(2025, 6, 13), install_slot="am")
    make_project(name="Later", install_date=date(2025, 7, 1), install_slot="am")
    make_project(name="Unscheduled")

    resp = admin_client.get(
        f"{API_PREFIX}/admin/projects/?install_start=2025-06-01&install_end=2025-06-30"
    )
    assert [r["id"] for r in resp.json()["results"]] == [inside.pk]

    resp = admin_client.get(f"{API_PREFIX}/admin/projects/?scheduled=false")
    assert [r["name"] for r in resp.json()["results"]] == ["Unscheduled"]


@pytest.mark.django_db
@pytest.mark.parametrize(
    "query",
    ["status=NOPE", "install_start=2025-99-01", "install_start=2025-07-01&install_end=2025-06-01"],
)
def test_admin_list_bad_filters_are_422(admin_client, query):
    resp = admin_client.get(f"{API_PREFIX}/admin/projects/?{query}")
    assert resp.status_code == 422


@pytest.mark.django_db
def test_admin_routes_forbidden_for_customers(customer_client, make_project):
    project = make_project()
    assert customer_client.get(f"{API_PREFIX}/admin/projects/").status_code == 403
    assert customer_client.get(f"{API_PREFIX}/admin/projects/{project.pk}/").status_code == 403


@pytest.mark.django_db
def test_admin_moves_project_to_installation_and_books(frozen_today, admin_client, make_project):
    project = make_project(status=Project.Status.PRODUCTION)
    resp = admin_client.patch(
        f"{API_PREFIX}/admin/projects/{project.pk}/",
        {"project": {"status": "installation", "install_date": "2025-06-13", "install_slot": "pm"}},
        format="json",
    )
    assert resp.status_code == 200
    body = resp.json()
    assert body["status"] == "installation"
    assert body["install_date"] == "2025-06-13"
    assert body["install_slot"] == "pm"


@pytest.mark.django_db
def test_admin_refused_booking_rolls_back_edits(frozen_today, admin_client, make_project):
    project = make_project(status=Project.Status.PRODUCTION, location="Main St")
    resp = admin_client.patch(
        f"{API_PREFIX}/admin/projects/{project.pk}/",
        {"location": "Elm St", "status": "installation", "install_date": "2025-06-14", "install_slot": "am"},
        format="json",
    )
    assert resp.status_code == 422
    assert resp.json()["reason"] == "excluded_day"
    project.refresh_from_db()
    assert project.location == "Main St"
    assert project.status == Project.Status.PRODUCTION


@pytest.mark.django_db
def test_admin_edits_details_without_touching_schedule(admin_client, make_project, other_customer):
    project = make_project(install_date=date(2025, 6, 13), install_slot="am")
    resp = admin_client.patch(
        f"{API_PREFIX}/admin/projects/{project.pk}/",
        {"name": "Renamed", "user_id": other_customer.pk},
        format="json",
    )
    assert resp.status_code == 200
    project.refresh_from_db()
    assert project.name == "Renamed"
    assert project.user == other_customer
    assert project.install_slot == "am"


@pytest.mark.django_db
def test_admin_cancel_install(admin_client, make_project):
    project = make_project(install_date=date(2025, 6, 13), install_slot="am")
    resp = admin_client.post(f"{API_PREFIX}/admin/projects/{project.pk}/cancel_install/")
    assert resp.status_code == 200
    assert resp.json()["install_date"] is None


@pytest.mark.django_db
def test_admin_creates_project_for_customer(admin_client, admin_user, customer):
    resp = admin_client.post(
        f"{API_PREFIX}/admin/users/{customer.pk}/projects/",
        {"project": {"name": "Window vinyl", "status": "draft", "location": "Downtown"}},
        format="json",
    )
    assert resp.status_code == 201
    project = Project.objects.get(pk=resp.json()["project"]["id"])
    assert project.user == customer
    assert project.created_by == admin_user


@pytest.mark.django_db
def test_admin_create_for_missing_user_is_404(admin_client):
    resp = admin_client.post(
        f"{API_PREFIX}/admin/users/9999/projects/", {"name": "Nope"}, format="json"
    )
    assert resp.status_code == 404


@pytest.mark.django_db
def test_project_files_round_trip(admin_client, customer_client, make_project, other_customer):
    project = make_project()
    upload = SimpleUploadedFile("proof.pdf", b"%PDF-1.4 proof", content_type="application/pdf")

    resp = admin_client.post(
        f"{API_PREFIX}/admin/projects/{project.pk}/files/", {"files": [upload]}, format="multipart"
    )
    assert resp.status_code == 201
    (meta,) = resp.json()
    assert meta["filename"] == "proof.pdf"
    assert meta["byte_size"] == len(b"%PDF-1.4 proof")

    resp = customer_client.get(f"{API_PREFIX}/projects/{project.pk}/files/")
    assert [f["id"] for f in resp.json()] == [meta["id"]]

    resp = customer_client.get(f"{API_PREFIX}/projects/{project.pk}/files/{meta['id']}/")
    assert resp.status_code == 200
    assert b"".join(resp.streaming_content) == b"%PDF-1.4 proof"
    assert "attachment" in resp["Content-Disposition"]

    theirs = make_project(user=other_customer)
    assert customer_client.get(f"{API_PREFIX}/projects/{theirs.pk}/files/").status_code == 404

    resp = admin_client.delete(f"{API_PREFIX}/admin/projects/{project.pk}/files/{meta['id']}/")
    assert resp.status_code == 204
    assert not ProjectFile.objects.filter(pk=meta["id"]).exists()


@pytest.mark.django_db
def test_upload_without_files_is_422(admin_client, make_project):
    project = make_project()
    resp = admin_client.post(f"{API_PREFIX}/admin/projects/{project.pk}/files/", {}, format="multipart")
    assert resp.status_code == 422


@pytest.mark.django_db
def test_normalize_project_statuses(customer):
    legacy = ["quote_sent", "in_production", "ready_for_install", "scheduled", "installed", "bogus", "draft"]
    ids = [Project.objects.create(user=customer, name=s, status=s).pk for s in legacy]

    call_command("normalize_project_statuses", batch_size=2)

    statuses = dict(Project.objects.filter(pk__in=ids).values_list("name", "status"))
    assert statuses == {
        "quote_sent": "acquiring_permits",
        "in_production": "production",
        "ready_for_install": "installation",
        "scheduled": "installation",
        "installed": "complete",
        "bogus": "draft",
        "draft": "draft",
    }
