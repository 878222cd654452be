from django.contrib.auth import get_user_model
from rest_framework import serializers

from apps.users.serializers import UserSummarySerializer

from .models import Project, ProjectFile


class ProjectFileSerializer(serializers.ModelSerializer):
    class Meta:
        model = ProjectFile
        fields = ("id", "filename", "content_type", "byte_size", "created_at")


class ProjectSerializer(serializers.ModelSerializer):
    can_schedule = serializers.BooleanField(source="is_installable", read_only=True)

    class Meta:
        model = Project
        fields = (
            "id",
            "name",
            "status",
            "location",
            "install_date",
            "install_slot",
            "description",
            "can_schedule",
            "created_at",
            "updated_at",
        )
        read_only_fields = fields


class AdminProjectSerializer(serializers.ModelSerializer):
    can_schedule = serializers.BooleanField(source="is_installable", read_only=True)
    user = UserSummarySerializer(read_only=True)
    created_by = UserSummarySerializer(read_only=True)
    user_id = serializers.PrimaryKeyRelatedField(
        source="user",
        queryset=get_user_model().objects.all(),
        write_only=True,
        required=False,
    )

    class Meta:
        model = Project
        fields = (
            "id",
            "name",
            "status",
            "location",
            "install_date",
            "install_slot",
            "description",
            "can_schedule",
            "user",
            "user_id",
            "created_by",
            "created_at",
            "updated_at",
        )
        read_only_fields = ("install_date", "install_slot", "created_at", "updated_at")


class ProjectCreateSerializer(serializers.ModelSerializer):
    class Meta:
        model = Project
        fields = ("name", "status", "location", "description")


class ScheduleChangeSerializer(serializers.Serializer):
    install_date = serializers.DateField(allow_null=True, required=False)
    install_slot = serializers.ChoiceField(
        choices=Project.InstallSlot.choices, allow_null=True, allow_blank=True, required=False
    )

    def validate(self, attrs):
        if "install_date" not in attrs and "install_slot" not in attrs:
            raise serializers.ValidationError(
                {"detail": "install_date and install_slot are required."}
            )
        return {
            "install_date": attrs.get("install_date"),
            "install_slot": attrs.get("install_slot") or None,
        }
