import logging

from django.contrib.auth import get_user_model
from django.db import transaction
from django.http import FileResponse
from django.shortcuts import get_object_or_404
from rest_framework import status
from rest_framework.generics import ListAPIView
from rest_framework.parsers import FormParser, JSONParser, MultiPartParser
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response
from rest_framework.views import APIView

from apps.scheduling.booking import cancel_install, change_schedule
from apps.users.permissions import IsAdminRole

from .filters import ProjectListFilter
from .models import Project, ProjectFile
from .pagination import AdminListPagination
from .serializers import (
    AdminProjectSerializer,
    ProjectCreateSerializer,
    ProjectFileSerializer,
    ProjectSerializer,
    ScheduleChangeSerializer,
)


logger = logging.getLogger(__name__)

SCHEDULE_FIELDS = ("install_date", "install_slot")


def request_payload(request):
    """Accept both `{"project": {...}}` and a flat body."""
    nested = request.data.get("project") if hasattr(request.data, "get") else None
    return nested if isinstance(nested, dict) else request.data


def rejected(result):
    return Response(
        {"error": result.message, "reason": result.error.value},
        status=status.HTTP_422_UNPROCESSABLE_ENTITY,
    )


def apply_schedule_change(project, payload):
    change = ScheduleChangeSerializer(data=payload)
    change.is_valid(raise_exception=True)
    return change_schedule(
        project,
        change.validated_data["install_date"],
        change.validated_data["install_slot"],
    )


def uploaded_files(request):
    return request.FILES.getlist("files") or request.FILES.getlist("files[]")


def attach_files(project, uploads, user):
    records = []
    for upload in uploads:
        records.append(
            ProjectFile.objects.create(
                project=project,
                file=upload,
                filename=upload.name,
                content_type=getattr(upload, "content_type", "") or "",
                byte_size=upload.size,
                uploaded_by=user,
            )
        )
    logger.info(
        "Project files uploaded",
        extra={"project_id": project.pk, "count": len(records), "user_id": user.pk},
    )
    return records


def download(record):
    return FileResponse(
        record.file.open("rb"),
        as_attachment=True,
        filename=record.filename,
        content_type=record.content_type or "application/octet-stream",
    )


class CustomerProjectMixin:
    permission_classes = [IsAuthenticated]

    def get_project(self, pk):
        return get_object_or_404(Project.objects.owned_by(self.request.user), pk=pk)


class ProjectListView(CustomerProjectMixin, ListAPIView):
    serializer_class = ProjectSerializer
    pagination_class = None

    def get_queryset(self):
        return Project.objects.owned_by(self.request.user).order_by("-created_at", "-id")


class ProjectDetailView(CustomerProjectMixin, APIView):
    """
    GET   /api/v1/projects/<id>/
    PATCH /api/v1/projects/<id>/  {"install_date": "YYYY-MM-DD", "install_slot": "am"|"pm"}

    Customers may only change the two scheduling fields; null values cancel.
    """

    def get(self, request, pk):
        return Response(ProjectSerializer(self.get_project(pk)).data)

    def patch(self, request, pk):
        project = self.get_project(pk)
        result = apply_schedule_change(project, request_payload(request))
        if not result.ok:
            return rejected(result)
        return Response(ProjectSerializer(result.project).data)


class CancelInstallView(CustomerProjectMixin, APIView):
    def post(self, request, pk):
        result = cancel_install(self.get_project(pk))
        return Response(ProjectSerializer(result.project).data)


class ProjectFileListView(CustomerProjectMixin, APIView):
    def get(self, request, project_pk):
        project = self.get_project(project_pk)
        return Response(ProjectFileSerializer(project.files.all(), many=True).data)


class ProjectFileDownloadView(CustomerProjectMixin, APIView):
    def get(self, request, project_pk, pk):
        project = self.get_project(project_pk)
        return download(get_object_or_404(project.files, pk=pk))


class AdminProjectMixin:
    permission_classes = [IsAdminRole]

    def get_project(self, pk):
        return get_object_or_404(Project.objects.select_related("user", "created_by"), pk=pk)


class AdminProjectListView(AdminProjectMixin, ListAPIView):
    serializer_class = AdminProjectSerializer
    pagination_class = AdminListPagination
    filterset_class = ProjectListFilter
    queryset = Project.objects.select_related("user", "created_by").order_by(
        "-created_at", "-id"
    )


class AdminProjectDetailView(AdminProjectMixin, APIView):
    """
    PATCH edits project details; install_date/install_slot, when present, go
    through the same booking rules customers get. A refused booking rolls
    back the whole request.
    """

    def get(self, request, pk):
        return Response(AdminProjectSerializer(self.get_project(pk)).data)

    def patch(self, request, pk):
        project = self.get_project(pk)
        payload = request_payload(request)

        with transaction.atomic():
            serializer = AdminProjectSerializer(project, data=payload, partial=True)
            serializer.is_valid(raise_exception=True)
            project = serializer.save()

            if any(field in payload for field in SCHEDULE_FIELDS):
                result = apply_schedule_change(project, payload)
                if not result.ok:
                    transaction.set_rollback(True)
                    return rejected(result)

        logger.info("Project updated by admin", extra={"project_id": project.pk, "user_id": request.user.pk})
        return Response(AdminProjectSerializer(self.get_project(pk)).data)


class AdminCancelInstallView(AdminProjectMixin, APIView):
    def post(self, request, pk):
        cancel_install(self.get_project(pk))
        return Response(AdminProjectSerializer(self.get_project(pk)).data)


class AdminProjectFileListView(AdminProjectMixin, APIView):
    parser_classes = [MultiPartParser, FormParser, JSONParser]

    def get(self, request, project_pk):
        project = self.get_project(project_pk)
        return Response(ProjectFileSerializer(project.files.all(), many=True).data)

    def post(self, request, project_pk):
        project = self.get_project(project_pk)
        uploads = uploaded_files(request)
        if not uploads:
            return Response(
                {"error": "No files uploaded"}, status=status.HTTP_422_UNPROCESSABLE_ENTITY
            )
        attach_files(project, uploads, request.user)
        return Response(
            ProjectFileSerializer(project.files.all(), many=True).data,
            status=status.HTTP_201_CREATED,
        )


class AdminProjectFileDetailView(AdminProjectMixin, APIView):
    def get(self, request, project_pk, pk):
        project = self.get_project(project_pk)
        return download(get_object_or_404(project.files, pk=pk))

    def delete(self, request, project_pk, pk):
        project = self.get_project(project_pk)
        record = get_object_or_404(project.files, pk=pk)
        record.file.delete(save=False)
        record.delete()
        logger.info("Project file deleted", extra={"project_id": project.pk, "file_id": pk})
        return Response(status=status.HTTP_204_NO_CONTENT)


class AdminUserProjectCreateView(APIView):
    """POST /api/v1/admin/users/<user_pk>/projects/ (JSON or multipart with files)."""

    permission_classes = [IsAdminRole]
    parser_classes = [JSONParser, MultiPartParser, FormParser]

    def post(self, request, user_pk):
        owner = get_object_or_404(get_user_model(), pk=user_pk)
        serializer = ProjectCreateSerializer(data=request_payload(request))
        serializer.is_valid(raise_exception=True)
        project = serializer.save(user=owner, created_by=request.user)

        uploads = uploaded_files(request)
        if uploads:
            attach_files(project, uploads, request.user)

        logger.info(
            "Project created",
            extra={"project_id": project.pk, "owner_id": owner.pk, "user_id": request.user.pk},
        )
        return Response(
            {"message": "Project created", "project": AdminProjectSerializer(project).data},
            status=status.HTTP_201_CREATED,
        )
