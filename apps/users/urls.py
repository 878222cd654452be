from django.urls import path

from . import api_views

app_name = "users"
urlpatterns = [
    path("users/", api_views.SignupView.as_view(), name="signup"),
    path("users/verify-email/", api_views.VerifyEmailView.as_view(), name="verify-email"),
    path(
        "users/resend-confirmation-code/",
        api_views.ResendConfirmationCodeView.as_view(),
        name="resend-confirmation-code",
    ),
    path("login/", api_views.LoginView.as_view(), name="login"),
    path("me/", api_views.MeView.as_view(), name="me"),
    path("admin/users/", api_views.AdminUserListView.as_view(), name="admin-user-list"),
    path("admin/users/<int:pk>/", api_views.AdminUserDetailView.as_view(), name="admin-user-detail"),
]
