import django.db.models.deletion
from django.conf import settings
from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
    ]

    operations = [
        migrations.CreateModel(
            name="Venue",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("name", models.CharField(max_length=255)),
                ("address", models.CharField(blank=True, max_length=255)),
                ("city", models.CharField(blank=True, max_length=100)),
                (
                    "opening_time",
                    models.TimeField(
                        blank=True,
                        help_text="Local opening time; bookings may not start earlier.",
                        null=True,
                    ),
                ),
                (
                    "closing_time",
                    models.TimeField(
                        blank=True,
                        help_text="Local closing time; bookings may not end later.",
                        null=True,
                    ),
                ),
                (
                    "auto_confirm_bookings",
                    models.BooleanField(
                        blank=True,
                        help_text="Create bookings as confirmed. Empty means the platform default.",
                        null=True,
                    ),
                ),
                ("is_active", models.BooleanField(default=True)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
                (
                    "owner",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="venues",
                        to=settings.AUTH_USER_MODEL,
                    ),
                ),
            ],
            options={
                "verbose_name": "Venue",
                "verbose_name_plural": "Venues",
                "ordering": ["name"],
                "constraints": [
                    models.CheckConstraint(
                        condition=models.Q(
                            ("opening_time__isnull", True),
                            ("closing_time__isnull", True),
                            ("closing_time__gt", models.F("opening_time")),
                            _connector="OR",
                        ),
                        name="venue_valid_opening_hours",
                    )
                ],
            },
        ),
        migrations.CreateModel(
            name="Court",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("name", models.CharField(max_length=100)),
                ("is_active", models.BooleanField(default=True)),
                (
                    "cleaning_time_minutes",
                    models.PositiveSmallIntegerField(
                        default=0,
                        help_text="Minutes the court stays unavailable after each booking.",
                    ),
                ),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
                (
                    "venue",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="courts",
                        to="venues.venue",
                    ),
                ),
            ],
            options={
                "verbose_name": "Court",
                "verbose_name_plural": "Courts",
                "ordering": ["venue_id", "name"],
                "indexes": [models.Index(fields=["venue", "is_active"], name="court_venue_active_idx")],
            },
        ),
        migrations.CreateModel(
            name="CourtEvent",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("title", models.CharField(max_length=255)),
                ("description", models.TextField(blank=True)),
                ("start_at", models.DateTimeField()),
                ("end_at", models.DateTimeField()),
                (
                    "event_type",
                    models.CharField(
                        choices=[
                            ("maintenance", "Maintenance"),
                            ("cleaning", "Cleaning"),
                            ("closure", "Closure"),
                            ("private_event", "Private event"),
                            ("other", "Other"),
                        ],
                        default="maintenance",
                        max_length=20,
                    ),
                ),
                ("blocks_bookings", models.BooleanField(default=True)),
                ("color", models.CharField(blank=True, max_length=7)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
                (
                    "court",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="events",
                        to="venues.court",
                    ),
                ),
                (
                    "owner",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="court_events",
                        to=settings.AUTH_USER_MODEL,
                    ),
                ),
            ],
            options={
                "verbose_name": "Court event",
                "verbose_name_plural": "Court events",
                "ordering": ["start_at"],
                "indexes": [
                    models.Index(fields=["court", "blocks_bookings", "start_at"], name="court_event_lookup_idx")
                ],
                "constraints": [
                    models.CheckConstraint(
                        condition=models.Q(("end_at__gt", models.F("start_at"))),
                        name="court_event_valid_range",
                    )
                ],
            },
        ),
    ]
