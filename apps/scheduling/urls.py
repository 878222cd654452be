from django.urls import path

from .api_views import AdminScheduleView, ScheduleView

app_name = "scheduling"
urlpatterns = [
    path("schedule/", ScheduleView.as_view(), name="schedule"),
    path("admin/schedule/", AdminScheduleView.as_view(), name="admin-schedule"),
]
