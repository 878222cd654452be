from datetime import date

import pytest
from django.contrib.auth import get_user_model
from django.core.cache import cache
from rest_framework.test import APIClient

from apps.projects.models import Project


API_PREFIX = "/api/v1"

# Tuesday
TODAY = date(2025, 6, 10)


@pytest.fixture(autouse=True)
def _reset_throttles():
    cache.clear()
    yield
    cache.clear()


@pytest.fixture(autouse=True)
def _media_root(settings, tmp_path):
    settings.MEDIA_ROOT = str(tmp_path / "media")


@pytest.fixture
def frozen_today(monkeypatch):
    monkeypatch.setattr("apps.scheduling.policy.today", lambda: TODAY)
    return TODAY


def _make_user(email, role="customer", **extra):
    User = get_user_model()
    return User.objects.create_user(
        username=email, email=email, password="s3cret-pass!", role=role, **extra
    )


@pytest.fixture
def customer(db):
    return _make_user("john@example.com", first_name="John", last_name="Doe")


@pytest.fixture
def other_customer(db):
    return _make_user("jane@example.com", first_name="Jane", last_name="Smith")


@pytest.fixture
def admin_user(db):
    return _make_user("admin@example.com", role="admin", first_name="Shop", last_name="Admin")


@pytest.fixture
def api_client():
    return APIClient()


@pytest.fixture
def customer_client(customer):
    client = APIClient()
    client.force_authenticate(user=customer)
    return client


@pytest.fixture
def admin_client(admin_user):
    client = APIClient()
    client.force_authenticate(user=admin_user)
    return client


@pytest.fixture
def make_project(customer):
    def _make(user=None, status=Project.Status.INSTALLATION, **fields):
        fields.setdefault("name", "Storefront channel letters")
        return Project.objects.create(user=user or customer, status=status, **fields)

    return _make


@pytest.fixture
def json_log_formatter(settings):
    conf = dict(settings.LOGGING["formatters"]["json"])
    factory = conf.pop("()")
    return factory(**conf)
