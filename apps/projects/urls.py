from django.urls import path

from . import api_views

app_name = "projects"
urlpatterns = [
    path("projects/", api_views.ProjectListView.as_view(), name="project-list"),
    path("projects/<int:pk>/", api_views.ProjectDetailView.as_view(), name="project-detail"),
    path(
        "projects/<int:pk>/cancel_install/",
        api_views.CancelInstallView.as_view(),
        name="project-cancel-install",
    ),
    path(
        "projects/<int:project_pk>/files/",
        api_views.ProjectFileListView.as_view(),
        name="project-file-list",
    ),
    path(
        "projects/<int:project_pk>/files/<int:pk>/",
        api_views.ProjectFileDownloadView.as_view(),
        name="project-file-download",
    ),
    path("admin/projects/", api_views.AdminProjectListView.as_view(), name="admin-project-list"),
    path(
        "admin/projects/<int:pk>/",
        api_views.AdminProjectDetailView.as_view(),
        name="admin-project-detail",
    ),
    path(
        "admin/projects/<int:pk>/cancel_install/",
        api_views.AdminCancelInstallView.as_view(),
        name="admin-project-cancel-install",
    ),
    path(
        "admin/projects/<int:project_pk>/files/",
        api_views.AdminProjectFileListView.as_view(),
        name="admin-project-file-list",
    ),
    path(
        "admin/projects/<int:project_pk>/files/<int:pk>/",
        api_views.AdminProjectFileDetailView.as_view(),
        name="admin-project-file-detail",
    ),
    path(
        "admin/users/<int:user_pk>/projects/",
        api_views.AdminUserProjectCreateView.as_view(),
        name="admin-user-project-create",
    ),
]
