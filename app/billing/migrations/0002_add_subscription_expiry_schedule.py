"""
Add celery-beat schedule for the owner subscription expiry sweep.

Creates an hourly periodic task for check_subscription_expiry, which
demotes lapsed owner subscriptions to past_due or suspended.
"""

from django.db import migrations


TASK_NAME = "Check Owner Subscription Expiry"


def create_periodic_task(apps, schema_editor):
    """Create the hourly periodic task for the expiry sweep."""
    IntervalSchedule = apps.get_model("django_celery_beat", "IntervalSchedule")
    PeriodicTask = apps.get_model("django_celery_beat", "PeriodicTask")

    schedule, _ = IntervalSchedule.objects.get_or_create(
        every=1,
        period="hours",
    )

    PeriodicTask.objects.get_or_create(
        name=TASK_NAME,
        defaults={
            "task": "billing.tasks.check_subscription_expiry",
            "interval": schedule,
            "enabled": True,
            "description": (
                "Moves owner subscriptions past their period end to past_due "
                "(auto-renew on) or suspended (auto-renew off)."
            ),
        },
    )


def remove_periodic_task(apps, schema_editor):
    """Remove the periodic task on migration rollback."""
    PeriodicTask = apps.get_model("django_celery_beat", "PeriodicTask")

    PeriodicTask.objects.filter(name=TASK_NAME).delete()


class Migration(migrations.Migration):
    dependencies = [
        ("billing", "0001_initial"),
        ("django_celery_beat", "0019_alter_periodictasks_options"),
    ]

    operations = [
        migrations.RunPython(create_periodic_task, remove_periodic_task),
    ]
