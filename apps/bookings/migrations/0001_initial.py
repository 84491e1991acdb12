import django.db.models.deletion
from django.conf import settings
from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
        ("venues", "0001_initial"),
    ]

    operations = [
        migrations.CreateModel(
            name="Reservation",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("date", models.DateField(help_text="Civil date in the booking timezone.")),
                ("start_time", models.TimeField()),
                ("end_time", models.TimeField()),
                (
                    "status",
                    models.CharField(
                        choices=[
                            ("pending", "Pending"),
                            ("confirmed", "Confirmed"),
                            ("cancelled", "Cancelled"),
                            ("completed", "Completed"),
                        ],
                        default="pending",
                        max_length=20,
                    ),
                ),
                (
                    "cancellation_reason",
                    models.CharField(
                        blank=True,
                        choices=[
                            ("user_cancelled", "Cancelled by player"),
                            ("owner_cancelled", "Cancelled by venue owner"),
                            ("auto_cancelled_no_show", "No-show"),
                        ],
                        max_length=32,
                    ),
                ),
                ("cancellation_note", models.CharField(blank=True, max_length=255)),
                ("booking_code", models.CharField(editable=False, max_length=12, unique=True)),
                (
                    "source",
                    models.CharField(
                        choices=[("web", "Web"), ("mobile", "Mobile app"), ("api", "API")],
                        default="api",
                        max_length=20,
                    ),
                ),
                ("confirmed_at", models.DateTimeField(blank=True, null=True)),
                ("checked_in_at", models.DateTimeField(blank=True, null=True)),
                ("completed_at", models.DateTimeField(blank=True, null=True)),
                ("cancelled_at", models.DateTimeField(blank=True, null=True)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
                (
                    "court",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="reservations",
                        to="venues.court",
                    ),
                ),
                (
                    "player",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="reservations",
                        to=settings.AUTH_USER_MODEL,
                    ),
                ),
                (
                    "venue",
                    models.ForeignKey(
                        help_text="Copied from the court when the reservation is created.",
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="reservations",
                        to="venues.venue",
                    ),
                ),
            ],
            options={
                "verbose_name": "Reservation",
                "verbose_name_plural": "Reservations",
                "ordering": ["-date", "-start_time"],
                "indexes": [
                    models.Index(fields=["court", "date", "status"], name="reservation_court_day_idx"),
                    models.Index(fields=["player", "date"], name="reservation_player_day_idx"),
                    models.Index(fields=["status", "date", "start_time"], name="reservation_sweep_idx"),
                ],
                "constraints": [
                    models.CheckConstraint(
                        condition=models.Q(("end_time__gt", models.F("start_time"))),
                        name="reservation_valid_times",
                    ),
                    models.UniqueConstraint(
                        condition=models.Q(("status__in", ["pending", "confirmed"])),
                        fields=("court", "date", "start_time"),
                        name="reservation_unique_active_court_slot",
                    ),
                    models.UniqueConstraint(
                        condition=models.Q(("status__in", ["pending", "confirmed", "completed"])),
                        fields=("player", "venue", "date"),
                        name="reservation_unique_player_venue_day",
                    ),
                ],
            },
        ),
        migrations.CreateModel(
            name="ReservationTransition",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                (
                    "from_status",
                    models.CharField(
                        blank=True,
                        choices=[
                            ("pending", "Pending"),
                            ("confirmed", "Confirmed"),
                            ("cancelled", "Cancelled"),
                            ("completed", "Completed"),
                        ],
                        max_length=20,
                    ),
                ),
                (
                    "to_status",
                    models.CharField(
                        choices=[
                            ("pending", "Pending"),
                            ("confirmed", "Confirmed"),
                            ("cancelled", "Cancelled"),
                            ("completed", "Completed"),
                        ],
                        max_length=20,
                    ),
                ),
                (
                    "reason",
                    models.CharField(
                        blank=True,
                        choices=[
                            ("user_cancelled", "Cancelled by player"),
                            ("owner_cancelled", "Cancelled by venue owner"),
                            ("auto_cancelled_no_show", "No-show"),
                        ],
                        max_length=32,
                    ),
                ),
                (
                    "actor",
                    models.CharField(
                        choices=[("holder", "Reservation holder"), ("owner", "Venue owner"), ("system", "System")],
                        max_length=10,
                    ),
                ),
                ("occurred_at", models.DateTimeField()),
                (
                    "reservation",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="transitions",
                        to="bookings.reservation",
                    ),
                ),
            ],
            options={
                "verbose_name": "Reservation transition",
                "verbose_name_plural": "Reservation transitions",
                "ordering": ["occurred_at", "id"],
            },
        ),
    ]
