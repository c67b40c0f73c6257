from django.db import migrations, models


class Migration(migrations.Migration):

    dependencies = [
        ("finances", "0001_initial"),
    ]

    operations = [
        migrations.AlterField(
            model_name="payment",
            name="status",
            field=models.CharField(
                choices=[
                    ("PENDING", "Created, awaiting payment"),
                    ("PROCESSING", "Processing"),
                    ("COMPLETED", "Paid"),
                    ("FAILED", "Failed"),
                    ("REFUNDED", "Refunded"),
                    ("CANCELLED", "Cancelled before capture"),
                ],
                default="PROCESSING",
                max_length=20,
            ),
        ),
    ]
