import logging

from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response
from rest_framework.views import APIView

from apps.users.identity import identity_for
from apps.users.permissions import IsAdminRole

from .serializers import ScheduleQuerySerializer
from .services import schedule_for


logger = logging.getLogger(__name__)

QUERY_PARAMS = {"from": "start", "to": "end", "month": "month"}


def schedule_range(request):
    data = {
        field: request.query_params[param]
        for param, field in QUERY_PARAMS.items()
        if request.query_params.get(param)
    }
    query = ScheduleQuerySerializer(data=data)
    query.is_valid(raise_exception=True)
    return query.validated_data["start"], query.validated_data["end"]


class ScheduleView(APIView):
    """
    Installation calendar, two slots per day.

    GET /api/v1/schedule?from=YYYY-MM-DD&to=YYYY-MM-DD
    GET /api/v1/schedule?month=YYYY-MM
    """

    permission_classes = [IsAuthenticated]

    def get(self, request):
        start, end = schedule_range(request)
        identity = identity_for(request.user)
        logger.debug(
            "Schedule requested",
            extra={"start": str(start), "end": str(end), "identity": type(identity).__name__},
        )
        return Response(schedule_for(identity, start, end))


class AdminScheduleView(ScheduleView):
    permission_classes = [IsAdminRole]
