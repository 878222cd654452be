import re
from datetime import timedelta

import pytest
from django.contrib.auth import get_user_model
from django.core.management import call_command
from django.core.management.base import CommandError
from django.utils import timezone
from rest_framework.authtoken.models import Token

from apps.users.confirmation import ConfirmationError, confirm_email, send_confirmation_code
from apps.users.identity import Admin, Customer, identity_for
from conftest import API_PREFIX


@pytest.mark.django_db
def test_identity_follows_role(customer, admin_user):
    assert identity_for(customer) == Customer(user_id=customer.pk)
    assert identity_for(admin_user) == Admin(user_id=admin_user.pk)


@pytest.mark.django_db
def test_signup_creates_customer_and_token(api_client, mailoutbox):
    resp = api_client.post(
        f"{API_PREFIX}/users/",
        {
            "user": {
                "first_name": "Ada",
                "last_name": "Shop",
                "email": "Ada@Example.com",
                "password": "a-long-enough-pass",
                "password_confirmation": "a-long-enough-pass",
                "role": "admin",
            }
        },
        format="json",
    )
    assert resp.status_code == 201
    body = resp.json()
    assert body["user"]["email"] == "ada@example.com"
    assert body["user"]["role"] == "customer"
    assert Token.objects.filter(key=body["token"]).exists()
    assert body["user"]["email_confirmed_at"] is None
    assert mailoutbox[0].to == ["ada@example.com"]
    assert re.search(r"\b\d{6}\b", mailoutbox[0].body)


@pytest.mark.django_db
def test_signup_rejects_duplicate_email_and_mismatch(api_client, customer):
    resp = api_client.post(
        f"{API_PREFIX}/users/",
        {"email": "john@example.com", "password": "a-long-enough-pass"},
        format="json",
    )
    assert resp.status_code == 422
    assert "email" in resp.json()

    resp = api_client.post(
        f"{API_PREFIX}/users/",
        {"email": "new@example.com", "password": "a-long-enough-pass", "password_confirmation": "other"},
        format="json",
    )
    assert resp.status_code == 422


@pytest.mark.django_db
def test_login_and_me(api_client, customer):
    resp = api_client.post(
        f"{API_PREFIX}/login/", {"email": "john@example.com", "password": "s3cret-pass!"}, format="json"
    )
    assert resp.status_code == 200
    token = resp.json()["token"]

    api_client.credentials(HTTP_AUTHORIZATION=f"Token {token}")
    resp = api_client.get(f"{API_PREFIX}/me/")
    assert resp.status_code == 200
    assert resp.json()["email"] == "john@example.com"
    assert resp.json()["name"] == "John Doe"


@pytest.mark.django_db
def test_login_with_bad_password_is_401(api_client, customer):
    resp = api_client.post(
        f"{API_PREFIX}/login/", {"email": "john@example.com", "password": "wrong"}, format="json"
    )
    assert resp.status_code == 401
    assert resp.json() == {"error": "Invalid email or password"}


@pytest.mark.django_db
def test_me_requires_authentication(api_client):
    resp = api_client.get(f"{API_PREFIX}/me/")
    assert resp.status_code == 401
    assert "error" in resp.json()


@pytest.mark.django_db
def test_admin_user_list_includes_latest_project(admin_client, customer, make_project):
    make_project(name="First")
    latest = make_project(name="Second")

    resp = admin_client.get(f"{API_PREFIX}/admin/users/")
    assert resp.status_code == 200
    entry = next(u for u in resp.json() if u["id"] == customer.pk)
    assert entry["latest_project"] == {"id": latest.pk, "name": "Second", "status": "installation"}


@pytest.mark.django_db
def test_admin_user_detail(admin_client, customer, make_project):
    project = make_project()
    resp = admin_client.get(f"{API_PREFIX}/admin/users/{customer.pk}/")
    assert resp.status_code == 200
    assert resp.json()["user"]["email"] == "john@example.com"
    assert [p["id"] for p in resp.json()["projects"]] == [project.pk]
    assert admin_client.get(f"{API_PREFIX}/admin/users/9999/").status_code == 404


@pytest.mark.django_db
def test_admin_users_forbidden_for_customers(customer_client):
    assert customer_client.get(f"{API_PREFIX}/admin/users/").status_code == 403


@pytest.mark.django_db
def test_seed_admin_creates_then_promotes(customer):
    call_command("seed_admin", email="owner@example.com", password="seed-pass-123")
    User = get_user_model()
    assert User.objects.get(email="owner@example.com").role == "admin"

    call_command("seed_admin", email="john@example.com")
    customer.refresh_from_db()
    assert customer.role == "admin"


@pytest.mark.django_db
def test_seed_admin_needs_password():
    with pytest.raises(CommandError):
        call_command("seed_admin", email="nobody@example.com", password="")


def sent_code(message):
    return re.search(r"\b(\d{6})\b", message.body).group(1)


@pytest.mark.django_db
def test_verify_email_with_sent_code(api_client, customer, mailoutbox):
    assert send_confirmation_code(customer) is None
    code = sent_code(mailoutbox[-1])

    customer.refresh_from_db()
    assert customer.email_confirmation_code_digest
    assert customer.email_confirmation_code_digest != code

    resp = api_client.post(
        f"{API_PREFIX}/users/verify-email/", {"email": "JOHN@example.com", "code": code}, format="json"
    )
    assert resp.status_code == 200
    assert resp.json()["user"]["email_confirmed_at"] is not None

    resp = api_client.post(
        f"{API_PREFIX}/users/verify-email/", {"email": "john@example.com", "code": code}, format="json"
    )
    assert resp.status_code == 422
    assert resp.json()["reason"] == "already_confirmed"


@pytest.mark.django_db
@pytest.mark.parametrize("email, code", [("john@example.com", "000000"), ("ghost@example.com", "123456")])
def test_verify_email_rejects_wrong_code(api_client, customer, email, code, monkeypatch):
    monkeypatch.setattr("apps.users.confirmation.generate_code", lambda: "654321")
    send_confirmation_code(customer)

    resp = api_client.post(
        f"{API_PREFIX}/users/verify-email/", {"email": email, "code": code}, format="json"
    )
    assert resp.status_code == 422
    assert resp.json()["reason"] == "invalid_code"
    customer.refresh_from_db()
    assert customer.email_confirmed_at is None


@pytest.mark.django_db
def test_verify_email_code_must_be_six_digits(api_client, customer):
    resp = api_client.post(
        f"{API_PREFIX}/users/verify-email/", {"email": "john@example.com", "code": "12ab"}, format="json"
    )
    assert resp.status_code == 422
    assert "code" in resp.json()


@pytest.mark.django_db
def test_expired_code_is_refused(customer, monkeypatch, settings):
    settings.EMAIL_CONFIRMATION_CODE_TTL_MINUTES = 15
    monkeypatch.setattr("apps.users.confirmation.generate_code", lambda: "111222")
    sent = timezone.now() - timedelta(minutes=16)
    send_confirmation_code(customer, now=sent)

    customer.refresh_from_db()
    assert confirm_email(customer, "111222") == ConfirmationError.EXPIRED_CODE
    assert confirm_email(customer, "111222", now=sent + timedelta(minutes=5)) is None
    assert customer.is_email_confirmed


@pytest.mark.django_db
def test_resend_is_limited_per_window(api_client, customer, settings, mailoutbox, monkeypatch):
    settings.EMAIL_CONFIRMATION_MAX_SENDS = 2
    codes = iter(["111111", "222222"])
    monkeypatch.setattr("apps.users.confirmation.generate_code", lambda: next(codes))
    url = f"{API_PREFIX}/users/resend-confirmation-code/"

    for _ in range(2):
        assert api_client.post(url, {"email": "john@example.com"}, format="json").status_code == 200
    resp = api_client.post(url, {"email": "john@example.com"}, format="json")
    assert resp.status_code == 429
    assert resp.json()["reason"] == "too_many_sends"
    assert len(mailoutbox) == 2

    customer.refresh_from_db()
    assert confirm_email(customer, "111111") == ConfirmationError.INVALID_CODE
    assert confirm_email(customer, "222222") is None


@pytest.mark.django_db
def test_send_window_resets(customer, settings):
    settings.EMAIL_CONFIRMATION_MAX_SENDS = 1
    settings.EMAIL_CONFIRMATION_WINDOW_MINUTES = 60
    start = timezone.now()

    assert send_confirmation_code(customer, now=start) is None
    assert send_confirmation_code(customer, now=start + timedelta(minutes=30)) == (
        ConfirmationError.TOO_MANY_SENDS
    )
    assert send_confirmation_code(customer, now=start + timedelta(minutes=61)) is None


@pytest.mark.django_db
def test_resend_for_unknown_email_looks_the_same(api_client, mailoutbox):
    resp = api_client.post(
        f"{API_PREFIX}/users/resend-confirmation-code/", {"email": "ghost@example.com"}, format="json"
    )
    assert resp.status_code == 200
    assert mailoutbox == []
