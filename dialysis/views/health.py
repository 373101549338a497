import logging

from django.db import DatabaseError, connections
from django.http import JsonResponse
from django.utils import timezone

from dialysis.models import Slot

logger = logging.getLogger(__name__)


def healthz(request):
    try:
        with connections['default'].cursor() as c:
            c.execute('SELECT 1')
            row = c.fetchone()
        slots = Slot.objects.count()
    except DatabaseError as e:
        logger.error("health check failed: %s", e)
        return JsonResponse({'ok': False, 'error': str(e)}, status=500)
    return JsonResponse({
        'ok': True,
        'db': bool(row and row[0] == 1),
        'slots': slots,
        'time': timezone.localtime().isoformat(),
    })
