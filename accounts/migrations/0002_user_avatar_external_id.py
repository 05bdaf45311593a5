from django.db import migrations, models


class Migration(migrations.Migration):

    dependencies = [
        ("accounts", "0001_initial"),
    ]

    operations = [
        migrations.AlterField(
            model_name="user",
            name="avatar",
            field=models.CharField(blank=True, default="", max_length=500),
        ),
        migrations.AddField(
            model_name="user",
            name="avatar_external_id",
            field=models.CharField(
                blank=True,
                default="",
                max_length=255,
                verbose_name="avatar storage key",
            ),
        ),
    ]
