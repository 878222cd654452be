from django.urls import path

from . import api_views

app_name = "leads"
urlpatterns = [
    path(
        "contact_requests/",
        api_views.ContactRequestCreateView.as_view(),
        name="contact-request-create",
    ),
    path(
        "admin/contact_requests/",
        api_views.AdminContactRequestListView.as_view(),
        name="admin-contact-request-list",
    ),
    path(
        "admin/contact_requests/<int:pk>/",
        api_views.AdminContactRequestDetailView.as_view(),
        name="admin-contact-request-detail",
    ),
]
