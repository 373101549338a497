from datetime import time

from django.conf import settings
from django.db import migrations

SLOTS = [
    (1, 'Morning Shift', time(6, 0), time(10, 0)),
    (2, 'Afternoon Shift', time(11, 0), time(15, 0)),
    (3, 'Evening Shift', time(16, 0), time(20, 0)),
    (4, 'Night Shift', time(21, 0), time(1, 0)),
]


def seed_slots(apps, schema_editor):
    Slot = apps.get_model('dialysis', 'Slot')
    capacity = getattr(settings, 'DEFAULT_BED_CAPACITY', 10)
    for slot_id, name, start, end in SLOTS:
        Slot.objects.get_or_create(
            id=slot_id,
            defaults={'name': name, 'start_time': start, 'end_time': end, 'bed_capacity': capacity},
        )


class Migration(migrations.Migration):

    dependencies = [
        ('dialysis', '0001_initial'),
    ]

    operations = [
        migrations.RunPython(seed_slots, migrations.RunPython.noop),
    ]
