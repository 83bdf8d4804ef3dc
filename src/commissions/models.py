"""Models for the commissions app."""
from decimal import Decimal

from django.db import models

from core.models import TimeStampedModel

from .exceptions import CommissionIntegrityError


class Commission(TimeStampedModel):
    """Money owed to a consultant for a sale or a placement.

    Lifecycle: PENDING -> CONFIRMED -> PAID, or PENDING -> CANCELLED.
    The amount is frozen once the commission is CONFIRMED or PAID.
    """

    class Type(models.TextChoices):
        SUBSCRIPTION_SALE = "SUBSCRIPTION_SALE", "Subscription sale"
        PLACEMENT = "PLACEMENT", "Placement"

    class Status(models.TextChoices):
        PENDING = "PENDING", "Pending"
        CONFIRMED = "CONFIRMED", "Confirmed"
        PAID = "PAID", "Paid"
        CANCELLED = "CANCELLED", "Cancelled"

    FROZEN_STATUSES = (Status.CONFIRMED, Status.PAID)

    consultant = models.ForeignKey("consultants.Consultant", on_delete=models.PROTECT, related_name="commissions")
    job = models.ForeignKey(
        "jobs.Job",
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="commissions",
    )
    region = models.ForeignKey(
        "regions.Region",
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="commissions",
    )
    subscription = models.ForeignKey(
        "companies.Subscription",
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="commissions",
    )
    type = models.CharField(max_length=20, choices=Type.choices, db_index=True)
    amount = models.DecimalField(max_digits=14, decimal_places=2)
    rate = models.DecimalField(max_digits=5, decimal_places=4)
    status = models.CharField(max_length=20, choices=Status.choices, default=Status.PENDING, db_index=True)
    description = models.CharField(max_length=500, blank=True, default="")
    notes = models.TextField(blank=True, default="")
    confirmed_at = models.DateTimeField(null=True, blank=True)
    paid_at = models.DateTimeField(null=True, blank=True)
    payment_reference = models.CharField(max_length=255, blank=True, default="")
    commission_expiry_date = models.DateTimeField(null=True, blank=True, db_index=True)

    class Meta:
        ordering = ["-created_at"]
        constraints = [
            models.UniqueConstraint(
                fields=["job", "type"],
                condition=models.Q(status__in=["CONFIRMED", "PAID"]),
                name="unique_settled_commission_per_job_type",
            ),
        ]
        indexes = [
            models.Index(fields=["status", "type", "created_at"], name="commission_sweep_idx"),
        ]

    def __str__(self):
        return f"{self.get_type_display()} {self.amount} -> {self.consultant} ({self.status})"

    @classmethod
    def from_db(cls, db, field_names, values):
        instance = super().from_db(db, field_names, values)
        instance._loaded_amount = getattr(instance, "amount", None) if "amount" in field_names else None
        instance._loaded_status = getattr(instance, "status", None) if "status" in field_names else None
        return instance

    def save(self, *args, **kwargs):
        if self.amount is not None and Decimal(self.amount) < 0:
            raise CommissionIntegrityError(f"Commission amount cannot be negative: {self.amount}")
        loaded_status = getattr(self, "_loaded_status", None)
        loaded_amount = getattr(self, "_loaded_amount", None)
        if (
            self.pk is not None
            and loaded_status in self.FROZEN_STATUSES
            and loaded_amount is not None
            and Decimal(self.amount) != Decimal(loaded_amount)
        ):
            raise CommissionIntegrityError(
                f"Commission #{self.pk} is {loaded_status}; amount {loaded_amount} cannot change to {self.amount}."
            )
        super().save(*args, **kwargs)
        self._loaded_amount = self.amount
        self._loaded_status = self.status
