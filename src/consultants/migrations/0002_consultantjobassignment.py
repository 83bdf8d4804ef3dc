import django.core.validators
import django.db.models.deletion
from django.db import migrations, models


class Migration(migrations.Migration):

    dependencies = [
        ("consultants", "0001_initial"),
        ("jobs", "0001_initial"),
    ]

    operations = [
        migrations.CreateModel(
            name="ConsultantJobAssignment",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("created_at", models.DateTimeField(auto_now_add=True, db_index=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
                ("status", models.CharField(
                    choices=[("ACTIVE", "Active"), ("INACTIVE", "Inactive")],
                    db_index=True, default="ACTIVE", max_length=20,
                )),
                ("assignment_source", models.CharField(
                    choices=[("AUTO", "Automatic"), ("MANUAL", "Manual"), ("REGION", "Region default")],
                    default="MANUAL", max_length=20,
                )),
                ("assigned_by", models.CharField(blank=True, default="", max_length=255)),
                ("assigned_at", models.DateTimeField()),
                ("pipeline_stage", models.CharField(default="SOURCING", max_length=50)),
                ("pipeline_progress", models.PositiveSmallIntegerField(
                    default=0, validators=[django.core.validators.MaxValueValidator(100)],
                )),
                ("consultant", models.ForeignKey(
                    on_delete=django.db.models.deletion.CASCADE,
                    related_name="job_assignments", to="consultants.consultant",
                )),
                ("job", models.ForeignKey(
                    on_delete=django.db.models.deletion.CASCADE,
                    related_name="consultant_assignments", to="jobs.job",
                )),
            ],
            options={
                "ordering": ["-assigned_at"],
                "constraints": [
                    models.UniqueConstraint(fields=("consultant", "job"), name="unique_consultant_job"),
                ],
            },
        ),
    ]
