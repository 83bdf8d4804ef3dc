"""Models for the consultants app."""
from django.core.validators import MaxValueValidator, MinValueValidator
from django.db import models

from core.models import TimeStampedModel


# ---------------------------------------------------------------------------
# Consultant
# ---------------------------------------------------------------------------

class Consultant(TimeStampedModel):
    """A recruiter, 360 consultant or sales agent working in one region.

    ``current_jobs`` is maintained by :mod:`consultants.services` only.
    """

    class Role(models.TextChoices):
        RECRUITER = "RECRUITER", "Recruiter"
        CONSULTANT_360 = "CONSULTANT_360", "Consultant 360"
        SALES_AGENT = "SALES_AGENT", "Sales agent"

    class Status(models.TextChoices):
        ACTIVE = "ACTIVE", "Active"
        INACTIVE = "INACTIVE", "Inactive"
        SUSPENDED = "SUSPENDED", "Suspended"

    class Availability(models.TextChoices):
        AVAILABLE = "AVAILABLE", "Available"
        AT_CAPACITY = "AT_CAPACITY", "At capacity"
        UNAVAILABLE = "UNAVAILABLE", "Unavailable"

    first_name = models.CharField(max_length=150)
    last_name = models.CharField(max_length=150, blank=True, default="")
    email = models.EmailField(unique=True)
    role = models.CharField(max_length=20, choices=Role.choices, default=Role.RECRUITER, db_index=True)
    status = models.CharField(max_length=20, choices=Status.choices, default=Status.ACTIVE, db_index=True)
    availability = models.CharField(max_length=20, choices=Availability.choices, default=Availability.AVAILABLE)
    current_jobs = models.PositiveIntegerField(default=0)
    max_jobs = models.PositiveIntegerField(default=10)
    industry_expertise = models.JSONField(default=list, blank=True)
    success_rate = models.FloatField(
        default=0,
        validators=[MinValueValidator(0), MaxValueValidator(100)],
    )
    average_days_to_fill = models.FloatField(null=True, blank=True, validators=[MinValueValidator(0)])
    default_commission_rate = models.DecimalField(
        max_digits=5,
        decimal_places=4,
        null=True,
        blank=True,
        help_text="Fraction, e.g. 0.1000 for 10%.",
    )
    region = models.ForeignKey(
        "regions.Region",
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="consultants",
    )

    class Meta:
        ordering = ["last_name", "first_name"]

    def __str__(self):
        return self.get_full_name() or self.email

    def get_full_name(self):
        return f"{self.first_name} {self.last_name}".strip()


# ---------------------------------------------------------------------------
# ConsultantJobAssignment
# ---------------------------------------------------------------------------

class ConsultantJobAssignment(TimeStampedModel):
    """Links a consultant to a job. Deactivated on reassignment, never deleted."""

    class Status(models.TextChoices):
        ACTIVE = "ACTIVE", "Active"
        INACTIVE = "INACTIVE", "Inactive"

    class Source(models.TextChoices):
        AUTO = "AUTO", "Automatic"
        MANUAL = "MANUAL", "Manual"
        REGION = "REGION", "Region default"

    consultant = models.ForeignKey(Consultant, on_delete=models.CASCADE, related_name="job_assignments")
    job = models.ForeignKey("jobs.Job", on_delete=models.CASCADE, related_name="consultant_assignments")
    status = models.CharField(max_length=20, choices=Status.choices, default=Status.ACTIVE, db_index=True)
    assignment_source = models.CharField(max_length=20, choices=Source.choices, default=Source.MANUAL)
    assigned_by = models.CharField(max_length=255, blank=True, default="")
    assigned_at = models.DateTimeField()
    pipeline_stage = models.CharField(max_length=50, default="SOURCING")
    pipeline_progress = models.PositiveSmallIntegerField(
        default=0,
        validators=[MaxValueValidator(100)],
    )

    class Meta:
        ordering = ["-assigned_at"]
        constraints = [
            models.UniqueConstraint(fields=["consultant", "job"], name="unique_consultant_job"),
        ]

    def __str__(self):
        return f"{self.consultant} -> {self.job_id} ({self.status})"
