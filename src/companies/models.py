"""Models for the companies app."""
from decimal import Decimal

from django.db import models

from core.models import TimeStampedModel


# ---------------------------------------------------------------------------
# Company
# ---------------------------------------------------------------------------

class Company(TimeStampedModel):
    """A client company. ``referred_by`` credits the consultant who brought it in."""

    name = models.CharField(max_length=255)
    domain = models.CharField(max_length=255, blank=True, default="")
    region = models.ForeignKey(
        "regions.Region",
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="companies",
    )
    referred_by = models.ForeignKey(
        "consultants.Consultant",
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="referred_companies",
    )
    attribution_locked = models.BooleanField(default=False)
    attribution_locked_at = models.DateTimeField(null=True, blank=True)

    class Meta:
        verbose_name_plural = "companies"
        ordering = ["name"]

    def __str__(self):
        return self.name

    def save(self, *args, **kwargs):
        if self.attribution_locked != (self.attribution_locked_at is not None):
            raise ValueError("attribution_locked_at must be set if and only if attribution_locked is true.")
        super().save(*args, **kwargs)


# ---------------------------------------------------------------------------
# Subscription
# ---------------------------------------------------------------------------

class Subscription(TimeStampedModel):
    """A recurring plan sold to a company; anchors subscription-sale commissions."""

    class Status(models.TextChoices):
        PENDING = "PENDING", "Pending payment"
        ACTIVE = "ACTIVE", "Active"
        CANCELLED = "CANCELLED", "Cancelled"
        EXPIRED = "EXPIRED", "Expired"

    company = models.ForeignKey(Company, on_delete=models.CASCADE, related_name="subscriptions")
    plan = models.CharField(max_length=100)
    price = models.DecimalField(max_digits=14, decimal_places=2, default=Decimal("0.00"))
    start_date = models.DateField()
    end_date = models.DateField(null=True, blank=True)
    status = models.CharField(max_length=20, choices=Status.choices, default=Status.PENDING, db_index=True)

    class Meta:
        ordering = ["-start_date"]

    def __str__(self):
        return f"{self.company} - {self.plan} ({self.start_date})"
