import logging

from django.shortcuts import get_object_or_404
from rest_framework import status
from rest_framework.generics import ListAPIView
from rest_framework.parsers import FormParser, JSONParser, MultiPartParser
from rest_framework.permissions import AllowAny
from rest_framework.response import Response
from rest_framework.throttling import AnonRateThrottle
from rest_framework.views import APIView

from apps.projects.pagination import AdminListPagination
from apps.users.permissions import IsAdminRole

from .filters import ContactRequestListFilter
from .models import ContactRequest
from .serializers import ContactRequestSerializer, ContactRequestStatusSerializer


logger = logging.getLogger(__name__)


class ContactRequestCreateView(APIView):
    """Public quote/contact form. Accepts JSON or multipart with an optional file."""

    permission_classes = [AllowAny]
    authentication_classes = []
    throttle_classes = [AnonRateThrottle]
    parser_classes = [JSONParser, MultiPartParser, FormParser]

    def post(self, request):
        data = request.data.get("contact_request", request.data)
        serializer = ContactRequestSerializer(data=data, context={"request": request})
        serializer.is_valid(raise_exception=True)
        contact = serializer.save()
        logger.info("Contact request received", extra={"contact_request_id": contact.pk})
        return Response(
            {"message": "Contact request received", "contact": serializer.data},
            status=status.HTTP_201_CREATED,
        )


class AdminContactRequestListView(ListAPIView):
    permission_classes = [IsAdminRole]
    serializer_class = ContactRequestSerializer
    pagination_class = AdminListPagination
    filterset_class = ContactRequestListFilter
    queryset = ContactRequest.objects.order_by("-created_at", "-id")


class AdminContactRequestDetailView(APIView):
    permission_classes = [IsAdminRole]

    def get(self, request, pk):
        contact = get_object_or_404(ContactRequest, pk=pk)
        return Response(ContactRequestSerializer(contact, context={"request": request}).data)

    def patch(self, request, pk):
        contact = get_object_or_404(ContactRequest, pk=pk)
        serializer = ContactRequestStatusSerializer(
            contact, data=request.data.get("contact_request", request.data), partial=True
        )
        serializer.is_valid(raise_exception=True)
        serializer.save()
        logger.info(
            "Contact request updated",
            extra={"contact_request_id": contact.pk, "status": contact.status},
        )
        return Response(ContactRequestSerializer(contact, context={"request": request}).data)
