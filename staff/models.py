# staff/models
import uuid

from django.conf import settings
from django.db import models

from common.models import TimeStamped

# "Tidak Perlu": picked when no corpse washer is needed; never busy
NOT_NEEDED_PEMANDI_ID = "not-needed-pemandi"


class StaffType(models.TextChoices):
    PENGALI_KUBUR   = "PENGALI_KUBUR", "Pengali Kubur"
    PEMANDI_JENAZAH = "PEMANDI_JENAZAH", "Pemandi Jenazah"


def _new_staff_id():
    return str(uuid.uuid4())


class Staff(TimeStamped):
    id = models.CharField(primary_key=True, max_length=64, default=_new_staff_id, editable=False)
    name = models.CharField(max_length=255)
    phone = models.CharField(max_length=32, blank=True)
    staff_type = models.CharField(max_length=20, choices=StaffType.choices, db_index=True)
    is_active = models.BooleanField(default=True)

    class Meta:
        ordering = ["name"]
        verbose_name_plural = "staff"

    def __str__(self):
        return f"{self.name} ({self.get_staff_type_display()})"

    @property
    def is_sentinel(self):
        return self.pk == NOT_NEEDED_PEMANDI_ID


class BookingStaff(TimeStamped):
    booking = models.ForeignKey(
        "booking.Booking",
        on_delete=models.CASCADE,
        related_name="staff_assignments",
    )
    staff = models.ForeignKey(
        Staff,
        on_delete=models.PROTECT,
        related_name="assignments",
    )
    staff_type = models.CharField(max_length=20, choices=StaffType.choices)
    assigned_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        related_name="staff_assignments_made",
        null=True,
        blank=True,
    )
    assigned_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ["staff_type", "id"]
        constraints = [
            models.UniqueConstraint(fields=["booking", "staff"], name="uniq_booking_staff"),
        ]

    def __str__(self):
        return f"{self.booking_id} / {self.staff_id} ({self.staff_type})"
