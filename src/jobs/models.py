"""Models for the jobs app.

Only the fields the sales engine reads or writes live here; postings,
applications and pipelines belong to the recruitment side of the platform.
"""
from django.db import models

from core.models import TimeStampedModel


class Job(TimeStampedModel):

    class ServicePackage(models.TextChoices):
        SELF_MANAGED = "SELF_MANAGED", "Self-managed"
        SHORTLISTING = "SHORTLISTING", "Shortlisting"
        FULL_SERVICE = "FULL_SERVICE", "Full service"
        EXECUTIVE_SEARCH = "EXECUTIVE_SEARCH", "Executive search"

    class PaymentStatus(models.TextChoices):
        PENDING = "PENDING", "Pending"
        PAID = "PAID", "Paid"
        REFUNDED = "REFUNDED", "Refunded"

    title = models.CharField(max_length=255)
    company = models.ForeignKey("companies.Company", on_delete=models.CASCADE, related_name="jobs")
    region = models.ForeignKey(
        "regions.Region",
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="jobs",
    )
    category = models.CharField(max_length=100, blank=True, default="")
    service_package = models.CharField(
        max_length=20,
        choices=ServicePackage.choices,
        default=ServicePackage.SELF_MANAGED,
    )
    payment_status = models.CharField(
        max_length=20,
        choices=PaymentStatus.choices,
        default=PaymentStatus.PENDING,
        db_index=True,
    )
    payment_amount = models.DecimalField(max_digits=14, decimal_places=2, null=True, blank=True)
    payment_completed_at = models.DateTimeField(null=True, blank=True)
    assigned_consultant = models.ForeignKey(
        "consultants.Consultant",
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="assigned_jobs",
    )
    assignment_source = models.CharField(max_length=20, blank=True, default="")

    class Meta:
        ordering = ["-created_at"]

    def __str__(self):
        return self.title

    @property
    def is_paid(self):
        return self.payment_status == self.PaymentStatus.PAID
