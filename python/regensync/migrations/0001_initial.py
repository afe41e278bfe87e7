from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = []

    operations = [
        migrations.CreateModel(
            name="CacheEntry",
            fields=[
                (
                    "id",
                    models.BigAutoField(
                        auto_created=True, primary_key=True, serialize=False, verbose_name="ID"
                    ),
                ),
                ("namespace", models.CharField(db_index=True, max_length=200)),
                ("key", models.CharField(max_length=2048)),
                ("status", models.PositiveSmallIntegerField()),
                ("headers", models.JSONField(default=dict)),
                ("body", models.BinaryField(default=b"")),
                ("url", models.TextField(blank=True, default="")),
                ("stored_at", models.FloatField(blank=True, null=True)),
            ],
        ),
        migrations.CreateModel(
            name="PendingSyncRecord",
            fields=[
                ("id", models.BigAutoField(primary_key=True, serialize=False)),
                ("url", models.TextField()),
                ("method", models.CharField(max_length=16)),
                ("body", models.BinaryField(blank=True, null=True)),
                ("headers", models.JSONField(default=dict)),
                ("enqueued_at", models.FloatField()),
                ("attempts", models.PositiveIntegerField(default=0)),
                ("last_error", models.TextField(blank=True, null=True)),
            ],
            options={
                "ordering": ["id"],
            },
        ),
        migrations.AddConstraint(
            model_name="cacheentry",
            constraint=models.UniqueConstraint(
                fields=("namespace", "key"), name="regensync_unique_cache_key"
            ),
        ),
    ]
