from django.conf import settings
from rest_framework.pagination import LimitOffsetPagination


class AdminListPagination(LimitOffsetPagination):
    """?limit=&offset= paging for the admin project and lead lists."""

    default_limit = settings.ADMIN_PAGE_SIZE
    max_limit = settings.ADMIN_MAX_PAGE_SIZE
