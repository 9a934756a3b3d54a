import uuid

import django.db.models.deletion
from django.conf import settings
from django.db import migrations, models

import events.models.event


class Migration(migrations.Migration):
    initial = True

    dependencies = [
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
    ]

    operations = [
        migrations.CreateModel(
            name="Event",
            fields=[
                ("id", models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ("created_at", models.DateTimeField(auto_now_add=True, db_index=True)),
                ("updated_at", models.DateTimeField(auto_now=True, db_index=True)),
                ("name", models.CharField(max_length=255)),
                ("slug", models.SlugField(max_length=255, unique=True)),
                (
                    "capacity",
                    models.PositiveIntegerField(
                        blank=True, help_text="Maximum confirmed attendees. Empty means unlimited.", null=True
                    ),
                ),
                ("waitlist_enabled", models.BooleanField(default=False)),
                (
                    "check_in_secret",
                    models.CharField(
                        default=events.models.event.generate_check_in_secret, editable=False, max_length=64
                    ),
                ),
                ("start", models.DateTimeField(blank=True, db_index=True, null=True)),
                ("end", models.DateTimeField(blank=True, null=True)),
                (
                    "price_cents",
                    models.PositiveIntegerField(
                        default=0, help_text="Ticket price in the smallest currency unit. 0 is free."
                    ),
                ),
                ("currency", models.CharField(default=events.models.event.default_currency, max_length=3)),
                (
                    "organizer",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="organized_events",
                        to=settings.AUTH_USER_MODEL,
                    ),
                ),
            ],
            options={
                "ordering": ["start", "name"],
            },
        ),
        migrations.CreateModel(
            name="EventRSVP",
            fields=[
                ("id", models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ("created_at", models.DateTimeField(auto_now_add=True, db_index=True)),
                ("updated_at", models.DateTimeField(auto_now=True, db_index=True)),
                (
                    "status",
                    models.CharField(
                        choices=[("going", "Going"), ("maybe", "Maybe"), ("declined", "Declined")],
                        db_index=True,
                        max_length=20,
                    ),
                ),
                (
                    "attendance_state",
                    models.CharField(
                        blank=True,
                        choices=[("confirmed", "Confirmed"), ("waitlisted", "Waitlisted")],
                        db_index=True,
                        max_length=20,
                        null=True,
                    ),
                ),
                ("check_in_code", models.CharField(blank=True, editable=False, max_length=32, null=True, unique=True)),
                ("checked_in_at", models.DateTimeField(blank=True, null=True)),
                ("waitlist_position", models.PositiveIntegerField(blank=True, null=True)),
                (
                    "event",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE, related_name="rsvps", to="events.event"
                    ),
                ),
                (
                    "user",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="rsvps",
                        to=settings.AUTH_USER_MODEL,
                    ),
                ),
            ],
            options={
                "constraints": [models.UniqueConstraint(fields=("event", "user"), name="unique_event_user")],
            },
        ),
    ]
