import django.db.models.deletion
from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        ("bookings", "0001_initial"),
    ]

    operations = [
        migrations.CreateModel(
            name="EmailLog",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("recipient", models.EmailField(max_length=254)),
                (
                    "recipient_type",
                    models.CharField(choices=[("GUEST", "Guest"), ("ADMIN", "Admin")], max_length=10),
                ),
                ("subject", models.CharField(max_length=255)),
                ("template", models.CharField(max_length=50)),
                (
                    "status",
                    models.CharField(choices=[("SENT", "Sent"), ("FAILED", "Failed")], max_length=10),
                ),
                ("error_message", models.TextField(blank=True)),
                ("sent_at", models.DateTimeField(auto_now_add=True)),
                (
                    "booking",
                    models.ForeignKey(
                        blank=True,
                        null=True,
                        on_delete=django.db.models.deletion.SET_NULL,
                        related_name="email_logs",
                        to="bookings.booking",
                    ),
                ),
            ],
            options={
                "verbose_name": "E-mail log",
                "verbose_name_plural": "E-mail logs",
                "ordering": ["-sent_at"],
            },
        ),
    ]
