import pytest
from django.core.files.uploadedfile import SimpleUploadedFile

from apps.leads.models import ContactRequest
from conftest import API_PREFIX


@pytest.mark.django_db
def test_public_contact_request(api_client):
    resp = api_client.post(
        f"{API_PREFIX}/contact_requests/",
        {
            "contact_request": {
                "name": "Maria Lopez",
                "email": "maria@example.com",
                "phone": "+15551234567",
                "business_name": "Lopez Bakery",
                "city": "Springfield",
                "message": "Need a lit cabinet sign.",
            }
        },
        format="json",
    )
    assert resp.status_code == 201
    contact = ContactRequest.objects.get()
    assert contact.status == ContactRequest.Status.NEW
    assert resp.json()["contact"]["file_url"] is None


@pytest.mark.django_db
def test_contact_request_with_file(api_client):
    sketch = SimpleUploadedFile("sketch.png", b"\x89PNG...", content_type="image/png")
    resp = api_client.post(
        f"{API_PREFIX}/contact_requests/",
        {"name": "Sam", "email": "sam@example.com", "message": "See sketch", "file": sketch},
        format="multipart",
    )
    assert resp.status_code == 201
    assert resp.json()["contact"]["file_url"].endswith(".png")


@pytest.mark.django_db
def test_contact_request_validation_is_422(api_client):
    resp = api_client.post(f"{API_PREFIX}/contact_requests/", {"name": "Sam"}, format="json")
    assert resp.status_code == 422
    assert {"email", "message"} <= resp.json().keys()


@pytest.fixture
def make_leads():
    statuses = [s for s, _ in ContactRequest.Status.choices]
    for i in range(12):
        ContactRequest.objects.create(
            name=f"Lead {i}",
            email=f"lead{i}@example.com",
            message="Quote please",
            status=statuses[i % len(statuses)],
        )


@pytest.mark.django_db
def test_admin_lists_and_filters_leads(make_leads, admin_client):
    resp = admin_client.get(f"{API_PREFIX}/admin/contact_requests/?limit=5")
    assert resp.status_code == 200
    assert resp.json()["count"] == 12
    assert len(resp.json()["results"]) == 5

    resp = admin_client.get(f"{API_PREFIX}/admin/contact_requests/?status=quoted")
    results = resp.json()["results"]
    assert len(results) == 3
    assert {r["status"] for r in results} == {"quoted"}


@pytest.mark.django_db
def test_admin_updates_lead_status(admin_client):
    lead = ContactRequest.objects.create(name="Sam", email="sam@example.com", message="Hi")
    resp = admin_client.patch(
        f"{API_PREFIX}/admin/contact_requests/{lead.pk}/",
        {"contact_request": {"status": "contacted"}},
        format="json",
    )
    assert resp.status_code == 200
    lead.refresh_from_db()
    assert lead.status == ContactRequest.Status.CONTACTED

    resp = admin_client.patch(
        f"{API_PREFIX}/admin/contact_requests/{lead.pk}/", {"status": "NOPE"}, format="json"
    )
    assert resp.status_code == 422
    assert admin_client.get(f"{API_PREFIX}/admin/contact_requests/9999/").status_code == 404


@pytest.mark.django_db
def test_leads_are_admin_only(customer_client, api_client):
    assert customer_client.get(f"{API_PREFIX}/admin/contact_requests/").status_code == 403
    assert api_client.get(f"{API_PREFIX}/admin/contact_requests/").status_code == 401
