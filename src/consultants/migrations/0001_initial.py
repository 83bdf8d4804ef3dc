import django.core.validators
import django.db.models.deletion
from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        ("regions", "0001_initial"),
    ]

    operations = [
        migrations.CreateModel(
            name="Consultant",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("created_at", models.DateTimeField(auto_now_add=True, db_index=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
                ("first_name", models.CharField(max_length=150)),
                ("last_name", models.CharField(blank=True, default="", max_length=150)),
                ("email", models.EmailField(max_length=254, unique=True)),
                ("role", models.CharField(
                    choices=[("RECRUITER", "Recruiter"), ("CONSULTANT_360", "Consultant 360"), ("SALES_AGENT", "Sales agent")],
                    db_index=True, default="RECRUITER", max_length=20,
                )),
                ("status", models.CharField(
                    choices=[("ACTIVE", "Active"), ("INACTIVE", "Inactive"), ("SUSPENDED", "Suspended")],
                    db_index=True, default="ACTIVE", max_length=20,
                )),
                ("availability", models.CharField(
                    choices=[("AVAILABLE", "Available"), ("AT_CAPACITY", "At capacity"), ("UNAVAILABLE", "Unavailable")],
                    default="AVAILABLE", max_length=20,
                )),
                ("current_jobs", models.PositiveIntegerField(default=0)),
                ("max_jobs", models.PositiveIntegerField(default=10)),
                ("industry_expertise", models.JSONField(blank=True, default=list)),
                ("success_rate", models.FloatField(
                    default=0,
                    validators=[
                        django.core.validators.MinValueValidator(0),
                        django.core.validators.MaxValueValidator(100),
                    ],
                )),
                ("average_days_to_fill", models.FloatField(
                    blank=True, null=True, validators=[django.core.validators.MinValueValidator(0)],
                )),
                ("default_commission_rate", models.DecimalField(
                    blank=True, decimal_places=4, help_text="Fraction, e.g. 0.1000 for 10%.", max_digits=5, null=True,
                )),
                ("region", models.ForeignKey(
                    blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL,
                    related_name="consultants", to="regions.region",
                )),
            ],
            options={"ordering": ["last_name", "first_name"]},
        ),
    ]
