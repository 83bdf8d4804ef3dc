"""Models for the regions app."""
from decimal import Decimal

from django.core.validators import MaxValueValidator, MinValueValidator
from django.db import models

from core.models import TimeStampedModel

from .exceptions import LedgerIntegrityError


# ---------------------------------------------------------------------------
# RegionalLicensee
# ---------------------------------------------------------------------------

class RegionalLicensee(TimeStampedModel):
    """A partner operating one or more regions under a revenue-share agreement."""

    class Status(models.TextChoices):
        ACTIVE = "ACTIVE", "Active"
        SUSPENDED = "SUSPENDED", "Suspended"
        TERMINATED = "TERMINATED", "Terminated"

    name = models.CharField(max_length=255)
    legal_entity_name = models.CharField(max_length=255, blank=True, default="")
    email = models.EmailField(blank=True, default="")
    revenue_share_percent = models.DecimalField(
        max_digits=5,
        decimal_places=2,
        default=Decimal("0.00"),
        validators=[MinValueValidator(Decimal("0")), MaxValueValidator(Decimal("100"))],
    )
    agreement_start_date = models.DateField()
    agreement_end_date = models.DateField(null=True, blank=True)
    status = models.CharField(max_length=20, choices=Status.choices, default=Status.ACTIVE, db_index=True)

    class Meta:
        ordering = ["name"]

    def __str__(self):
        return self.name


# ---------------------------------------------------------------------------
# Region
# ---------------------------------------------------------------------------

class Region(TimeStampedModel):
    """A geographic market. Regions without a licensee are operated by HRM8."""

    name = models.CharField(max_length=255)
    code = models.CharField(max_length=20, unique=True)
    country = models.CharField(max_length=100, blank=True, default="")
    is_active = models.BooleanField(default=True)
    licensee = models.ForeignKey(
        RegionalLicensee,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="regions",
    )

    class Meta:
        ordering = ["name"]

    def __str__(self):
        return f"{self.name} ({self.code})"


# ---------------------------------------------------------------------------
# Settlement
# ---------------------------------------------------------------------------

class Settlement(TimeStampedModel):
    """A payout batch owed to a licensee for confirmed revenue."""

    class Status(models.TextChoices):
        PENDING = "PENDING", "Pending"
        PAID = "PAID", "Paid"

    licensee = models.ForeignKey(RegionalLicensee, on_delete=models.PROTECT, related_name="settlements")
    period_start = models.DateField()
    period_end = models.DateField()
    total_revenue = models.DecimalField(max_digits=14, decimal_places=2, default=Decimal("0.00"))
    licensee_share = models.DecimalField(max_digits=14, decimal_places=2, default=Decimal("0.00"))
    hrm8_share = models.DecimalField(max_digits=14, decimal_places=2, default=Decimal("0.00"))
    status = models.CharField(max_length=20, choices=Status.choices, default=Status.PENDING, db_index=True)
    generated_at = models.DateTimeField()
    paid_at = models.DateTimeField(null=True, blank=True)
    payment_reference = models.CharField(max_length=255, blank=True, default="")

    class Meta:
        ordering = ["-generated_at"]

    def __str__(self):
        return f"Settlement {self.licensee} {self.period_start:%Y-%m}..{self.period_end:%Y-%m}"


# ---------------------------------------------------------------------------
# RegionalRevenue
# ---------------------------------------------------------------------------

class RegionalRevenueQuerySet(models.QuerySet):

    def for_region(self, region):
        return self.filter(region=region)

    def for_licensee(self, licensee):
        return self.filter(licensee=licensee)

    def with_status(self, *statuses):
        return self.filter(status__in=statuses)

    def overlapping(self, start, end):
        """Records whose [period_start, period_end] intersects [start, end]."""
        qs = self
        if start is not None:
            qs = qs.filter(period_end__gte=start)
        if end is not None:
            qs = qs.filter(period_start__lte=end)
        return qs


class RegionalRevenue(TimeStampedModel):
    """Revenue generated in a region for one accounting period, and its split."""

    class Status(models.TextChoices):
        PENDING = "PENDING", "Pending"
        CONFIRMED = "CONFIRMED", "Confirmed"
        PAID = "PAID", "Paid"

    region = models.ForeignKey(Region, on_delete=models.PROTECT, related_name="revenues")
    licensee = models.ForeignKey(
        RegionalLicensee,
        on_delete=models.PROTECT,
        null=True,
        blank=True,
        related_name="revenues",
    )
    period_start = models.DateField()
    period_end = models.DateField()
    total_revenue = models.DecimalField(max_digits=14, decimal_places=2)
    licensee_share = models.DecimalField(max_digits=14, decimal_places=2)
    hrm8_share = models.DecimalField(max_digits=14, decimal_places=2)
    status = models.CharField(max_length=20, choices=Status.choices, default=Status.PENDING, db_index=True)
    paid_at = models.DateTimeField(null=True, blank=True)
    settlement = models.ForeignKey(
        Settlement,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="revenues",
    )

    objects = RegionalRevenueQuerySet.as_manager()

    class Meta:
        ordering = ["-period_start", "id"]
        constraints = [
            models.UniqueConstraint(fields=["region", "period_start"], name="unique_region_period_start"),
        ]
        indexes = [
            models.Index(fields=["region", "period_start", "period_end"], name="revenue_region_period_idx"),
        ]

    def __str__(self):
        return f"{self.region} {self.period_start}..{self.period_end}: {self.total_revenue}"

    def save(self, *args, **kwargs):
        self.assert_balanced()
        super().save(*args, **kwargs)

    def assert_balanced(self):
        if self.licensee_share < 0 or self.hrm8_share < 0:
            raise LedgerIntegrityError(
                f"Negative share on revenue {self.region_id}/{self.period_start}: "
                f"licensee={self.licensee_share} hrm8={self.hrm8_share}"
            )
        if Decimal(self.licensee_share) + Decimal(self.hrm8_share) != Decimal(self.total_revenue):
            raise LedgerIntegrityError(
                f"Unbalanced revenue {self.region_id}/{self.period_start}: "
                f"{self.licensee_share} + {self.hrm8_share} != {self.total_revenue}"
            )
