# kits/models
from django.conf import settings
from django.db import models

from common.exceptions import LedgerImmutable
from common.models import TimeStamped


class KitType(models.TextChoices):
    LELAKI    = "LELAKI", "Lelaki"
    PEREMPUAN = "PEREMPUAN", "Perempuan"


class UsageReason(models.TextChoices):
    BOOKING           = "BOOKING", "Tempahan"
    BOOKING_CANCELLED = "BOOKING_CANCELLED", "Tempahan dibatalkan"
    BOOKING_REJECTED  = "BOOKING_REJECTED", "Tempahan ditolak"
    BOOKING_COMPLETED = "BOOKING_COMPLETED", "Tempahan selesai"
    ADMIN_ADD         = "ADMIN_ADD", "Tambahan admin"
    ADMIN_REMOVE      = "ADMIN_REMOVE", "Pengurangan admin"


class FuneralKit(TimeStamped):
    kit_type = models.CharField(max_length=10, choices=KitType.choices, unique=True)
    available_quantity = models.PositiveIntegerField(default=0)
    total_used = models.PositiveIntegerField(default=0)

    class Meta:
        ordering = ["kit_type"]

    def __str__(self):
        return f"{self.get_kit_type_display()} ({self.available_quantity})"


class BookingFuneralKit(TimeStamped):
    """Kit stock reserved against a booking."""

    booking = models.ForeignKey(
        "booking.Booking",
        on_delete=models.CASCADE,
        related_name="funeral_kits",
    )
    kit = models.ForeignKey(
        FuneralKit,
        on_delete=models.PROTECT,
        related_name="reservations",
    )
    quantity = models.PositiveIntegerField(default=1)

    class Meta:
        ordering = ["id"]
        constraints = [
            models.UniqueConstraint(fields=["booking", "kit"], name="uniq_booking_kit"),
        ]

    def __str__(self):
        return f"{self.booking_id} / {self.kit.kit_type} x{self.quantity}"


class FuneralKitUsageQuerySet(models.QuerySet):
    def update(self, **kwargs):
        raise LedgerImmutable("Rekod penggunaan kit tidak boleh diubah.")

    def delete(self):
        raise LedgerImmutable("Rekod penggunaan kit tidak boleh dipadam.")


class FuneralKitUsage(models.Model):
    """
    Append-only stock ledger. quantity_change is signed:
    negative when stock leaves the shelf, positive when it comes back.
    Bookings and users with ledger rows cannot be deleted.
    """

    kit = models.ForeignKey(
        FuneralKit,
        on_delete=models.PROTECT,
        related_name="usage",
    )
    booking = models.ForeignKey(
        "booking.Booking",
        on_delete=models.PROTECT,
        related_name="kit_usage",
        null=True,
        blank=True,
    )
    quantity_change = models.IntegerField()
    reason = models.CharField(max_length=20, choices=UsageReason.choices)
    changed_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.PROTECT,
        related_name="kit_usage_entries",
        null=True,
        blank=True,
    )
    notes = models.TextField(blank=True)
    created_at = models.DateTimeField(auto_now_add=True, db_index=True)

    objects = FuneralKitUsageQuerySet.as_manager()

    class Meta:
        ordering = ["-created_at", "-id"]

    def __str__(self):
        return f"{self.kit_id} {self.quantity_change:+d} ({self.reason})"

    def save(self, *args, **kwargs):
        if self.pk is not None and not self._state.adding:
            raise LedgerImmutable("Rekod penggunaan kit tidak boleh diubah.")
        super().save(*args, **kwargs)

    def delete(self, *args, **kwargs):
        raise LedgerImmutable("Rekod penggunaan kit tidak boleh dipadam.")
