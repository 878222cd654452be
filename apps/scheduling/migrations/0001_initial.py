from django.db import migrations, models


class Migration(migrations.Migration):
    initial = True

    dependencies = []

    operations = [
        migrations.CreateModel(
            name="SlotLock",
            fields=[
                (
                    "id",
                    models.BigAutoField(
                        auto_created=True, primary_key=True, serialize=False, verbose_name="ID"
                    ),
                ),
                ("date", models.DateField()),
                (
                    "slot",
                    models.CharField(
                        choices=[("am", "8:00 AM - 12:00 PM"), ("pm", "12:00 PM - 4:00 PM")],
                        max_length=2,
                    ),
                ),
                ("created_at", models.DateTimeField(auto_now_add=True)),
            ],
        ),
        migrations.AddConstraint(
            model_name="slotlock",
            constraint=models.UniqueConstraint(
                fields=("date", "slot"), name="unique_slot_lock_date_slot"
            ),
        ),
    ]
