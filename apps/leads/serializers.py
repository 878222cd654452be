from rest_framework import serializers

from .models import ContactRequest


class ContactRequestSerializer(serializers.ModelSerializer):
    file_url = serializers.SerializerMethodField()

    class Meta:
        model = ContactRequest
        fields = (
            "id",
            "name",
            "email",
            "phone",
            "business_name",
            "city",
            "message",
            "status",
            "file",
            "file_url",
            "created_at",
            "updated_at",
        )
        read_only_fields = ("status", "created_at", "updated_at")
        extra_kwargs = {"file": {"write_only": True, "required": False}}

    def get_file_url(self, obj):
        if not obj.file:
            return None
        request = self.context.get("request")
        return request.build_absolute_uri(obj.file.url) if request else obj.file.url


class ContactRequestStatusSerializer(serializers.ModelSerializer):
    class Meta:
        model = ContactRequest
        fields = ("status",)
