from django.db import migrations, models


class Migration(migrations.Migration):

    dependencies = [
        ("payments", "0001_initial"),
    ]

    operations = [
        migrations.AddField(
            model_name="payment",
            name="attempts",
            field=models.PositiveIntegerField(default=0),
        ),
        migrations.AddField(
            model_name="payment",
            name="last_outcome",
            field=models.CharField(
                blank=True,
                choices=[
                    ("SUCCEEDED", "Succeeded"),
                    ("REQUIRES_ACTION", "Requires action"),
                    ("FAILED", "Failed"),
                    ("ERROR", "Gateway error"),
                ],
                max_length=20,
            ),
        ),
        migrations.AddField(
            model_name="payment",
            name="claimed_at",
            field=models.DateTimeField(blank=True, null=True),
        ),
    ]
