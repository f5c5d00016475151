import uuid

import django.db.models.functions.text
import django.utils.timezone
from django.db import migrations, models


class Migration(migrations.Migration):
    initial = True

    dependencies = []

    operations = [
        migrations.CreateModel(
            name="Employee",
            fields=[
                ("id", models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ("staff_number", models.CharField(editable=False, max_length=16, unique=True)),
                ("first_name", models.CharField(max_length=128)),
                ("last_name", models.CharField(max_length=128)),
                ("email", models.EmailField(max_length=254)),
                ("phone", models.CharField(blank=True, default="", max_length=32)),
                ("position", models.CharField(blank=True, default="", max_length=128)),
                ("department", models.CharField(blank=True, default="", max_length=128)),
                ("date_employed", models.DateField(default=django.utils.timezone.localdate)),
                (
                    "status",
                    models.CharField(
                        choices=[("active", "Active"), ("on_leave", "On Leave"), ("terminated", "Terminated")],
                        default="active",
                        max_length=16,
                    ),
                ),
                ("termination_date", models.DateField(blank=True, null=True)),
                ("is_driver", models.BooleanField(default=False)),
                ("license_number", models.CharField(blank=True, default="", max_length=64)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
            ],
            options={
                "ordering": ["staff_number"],
                "indexes": [
                    models.Index(fields=["status", "is_driver"], name="employee_status_driver_idx"),
                ],
                "constraints": [
                    models.UniqueConstraint(
                        django.db.models.functions.text.Lower("email"),
                        name="hr_employee_email_ci_unique",
                    ),
                ],
            },
        ),
    ]
