import logging

from django.contrib.auth import get_user_model
from django.db.models import Prefetch
from django.shortcuts import get_object_or_404
from rest_framework import status
from rest_framework.authtoken.models import Token
from rest_framework.permissions import AllowAny, IsAuthenticated
from rest_framework.response import Response
from rest_framework.views import APIView

from apps.projects.models import Project
from apps.projects.serializers import ProjectSerializer

from .confirmation import ConfirmationError, confirm_email, send_confirmation_code
from .permissions import IsAdminRole
from .serializers import (
    LoginSerializer,
    ResendConfirmationCodeSerializer,
    SignupSerializer,
    UserSerializer,
    VerifyEmailSerializer,
)


logger = logging.getLogger(__name__)

User = get_user_model()


def auth_payload(user):
    token, _ = Token.objects.get_or_create(user=user)
    return {"user": UserSerializer(user).data, "token": token.key}


class SignupView(APIView):
    permission_classes = [AllowAny]

    def post(self, request):
        serializer = SignupSerializer(data=request.data.get("user", request.data))
        serializer.is_valid(raise_exception=True)
        user = serializer.save()
        logger.info("User signed up", extra={"user_id": user.pk})
        send_confirmation_code(user)
        return Response(auth_payload(user), status=status.HTTP_201_CREATED)


class LoginView(APIView):
    permission_classes = [AllowAny]

    def post(self, request):
        serializer = LoginSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        email = serializer.validated_data["email"].strip().lower()

        user = User.objects.filter(email__iexact=email, is_active=True).first()
        if user is None or not user.check_password(serializer.validated_data["password"]):
            logger.info("Failed login", extra={"email": email})
            return Response(
                {"error": "Invalid email or password"}, status=status.HTTP_401_UNAUTHORIZED
            )
        return Response(auth_payload(user))


def confirmation_rejected(error):
    code = (
        status.HTTP_429_TOO_MANY_REQUESTS
        if error == ConfirmationError.TOO_MANY_SENDS
        else status.HTTP_422_UNPROCESSABLE_ENTITY
    )
    return Response({"error": error.message, "reason": error.value}, status=code)


def find_user(email):
    return User.objects.filter(email__iexact=email.strip(), is_active=True).first()


class VerifyEmailView(APIView):
    permission_classes = [AllowAny]

    def post(self, request):
        serializer = VerifyEmailSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        user = find_user(serializer.validated_data["email"])
        if user is None:
            return confirmation_rejected(ConfirmationError.INVALID_CODE)

        error = confirm_email(user, serializer.validated_data["code"])
        if error is not None:
            return confirmation_rejected(error)
        return Response({"message": "Email confirmed", "user": UserSerializer(user).data})


class ResendConfirmationCodeView(APIView):
    """Unknown addresses get the same answer as known ones."""

    permission_classes = [AllowAny]

    def post(self, request):
        serializer = ResendConfirmationCodeSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        user = find_user(serializer.validated_data["email"])
        if user is not None:
            error = send_confirmation_code(user)
            if error is not None:
                return confirmation_rejected(error)
        return Response({"message": "Confirmation code sent"})


class MeView(APIView):
    permission_classes = [IsAuthenticated]

    def get(self, request):
        return Response(UserSerializer(request.user).data)


class AdminUserListView(APIView):
    permission_classes = [IsAdminRole]

    def get(self, request):
        users = User.objects.order_by("first_name", "last_name", "email").prefetch_related(
            Prefetch("projects", queryset=Project.objects.order_by("-created_at", "-id"))
        )
        data = []
        for user in users:
            latest = next(iter(user.projects.all()), None)
            entry = UserSerializer(user).data
            entry["latest_project"] = (
                {"id": latest.pk, "name": latest.name, "status": latest.status} if latest else None
            )
            data.append(entry)
        return Response(data)


class AdminUserDetailView(APIView):
    permission_classes = [IsAdminRole]

    def get(self, request, pk):
        user = get_object_or_404(User, pk=pk)
        projects = Project.objects.owned_by(user).order_by("-created_at", "-id")
        return Response(
            {
                "user": UserSerializer(user).data,
                "projects": ProjectSerializer(projects, many=True).data,
            }
        )
