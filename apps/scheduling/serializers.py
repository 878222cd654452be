from datetime import date, timedelta

from django.conf import settings
from rest_framework import serializers

from . import policy
from .days import month_bounds


class ScheduleQuerySerializer(serializers.Serializer):
    start = serializers.DateField(required=False)
    end = serializers.DateField(required=False)
    month = serializers.RegexField(r"^\d{4}-\d{2}$", required=False)

    def validate_month(self, value):
        year, month = (int(part) for part in value.split("-"))
        if not (date.min.year <= year <= date.max.year and 1 <= month <= 12):
            raise serializers.ValidationError("month must be YYYY-MM")
        return year, month

    def validate(self, attrs):
        ref = self.context.get("today") or policy.today()
        start, end = attrs.get("start"), attrs.get("end")

        if "month" in attrs:
            if start or end:
                raise serializers.ValidationError(
                    {"detail": "Pass either month or from/to, not both."}
                )
            start, end = month_bounds(*attrs["month"])
        else:
            start = start or ref
            if end is None:
                if (date.max - start).days < settings.SCHEDULE_DEFAULT_DAYS - 1:
                    raise serializers.ValidationError({"detail": "from is too far in the future"})
                end = start + timedelta(days=settings.SCHEDULE_DEFAULT_DAYS - 1)

        if start > end:
            raise serializers.ValidationError({"detail": "from must be on or before to"})
        if (end - start).days + 1 > settings.SCHEDULE_MAX_RANGE_DAYS:
            raise serializers.ValidationError(
                {"detail": f"Date range cannot exceed {settings.SCHEDULE_MAX_RANGE_DAYS} days"}
            )
        return {"start": start, "end": end}


class SlotSerializer(serializers.Serializer):
    key = serializers.CharField()
    label = serializers.CharField()
    scheduled_count = serializers.IntegerField()
    capacity = serializers.IntegerField()
    is_full = serializers.BooleanField()
    bookable = serializers.BooleanField()


class AdminSlotSerializer(SlotSerializer):
    projects = serializers.SerializerMethodField()

    def get_projects(self, slot):
        holders = self.context.get("projects", {})
        result = []
        for project_id in slot.project_ids:
            project = holders.get(project_id)
            if project is None:
                continue
            result.append(
                {
                    "id": project.pk,
                    "name": project.name,
                    "status": project.status,
                    "customer": project.user.display_name,
                }
            )
        return result


class CustomerSlotSerializer(SlotSerializer):
    is_mine = serializers.SerializerMethodField()

    def get_is_mine(self, slot):
        return bool(slot.project_ids)


class CalendarDaySerializer(serializers.Serializer):
    date = serializers.DateField()
    bookable = serializers.BooleanField()
    in_window = serializers.BooleanField(source="day.in_window")
    is_weekend = serializers.BooleanField(source="day.is_weekend")
    holiday = serializers.CharField(source="day.holiday", allow_null=True)


class AdminCalendarDaySerializer(CalendarDaySerializer):
    slots = AdminSlotSerializer(many=True)


class CustomerCalendarDaySerializer(CalendarDaySerializer):
    slots = CustomerSlotSerializer(many=True)
