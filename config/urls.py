from django.conf import settings
from django.conf.urls.static import static
from django.urls import include, path

API_PREFIX = "api/v1/"

urlpatterns = [
    path(API_PREFIX, include("apps.users.urls")),
    path(API_PREFIX, include("apps.projects.urls")),
    path(API_PREFIX, include("apps.scheduling.urls")),
    path(API_PREFIX, include("apps.leads.urls")),
]

if settings.DEBUG:
    urlpatterns += static(settings.MEDIA_URL, document_root=settings.MEDIA_ROOT)
