# booking/models
from django.conf import settings
from django.db import models
from django.db.models import Q

from common.models import TimeStamped


class BookingStatus(models.TextChoices):
    PENDING                  = "PENDING", "Menunggu kelulusan"
    APPROVED_PENDING_PAYMENT = "APPROVED_PENDING_PAYMENT", "Diluluskan, menunggu bayaran"
    PAYMENT_CONFIRMED        = "PAYMENT_CONFIRMED", "Bayaran disahkan"
    COMPLETED                = "COMPLETED", "Selesai"
    REJECTED                 = "REJECTED", "Ditolak"
    CANCELLED                = "CANCELLED", "Dibatalkan"


# statuses that still hold the plot
ACTIVE_BOOKING_STATUSES = (
    BookingStatus.PENDING,
    BookingStatus.APPROVED_PENDING_PAYMENT,
    BookingStatus.PAYMENT_CONFIRMED,
    BookingStatus.COMPLETED,
)


class PaymentStatus(models.TextChoices):
    PENDING    = "PENDING", "Menunggu bayaran"
    SUBMITTED  = "SUBMITTED", "Dihantar"
    SUCCESSFUL = "SUCCESSFUL", "Berjaya"
    REJECTED   = "REJECTED", "Ditolak"
    CANCELLED  = "CANCELLED", "Dibatalkan"


OPEN_PAYMENT_STATUSES = (
    PaymentStatus.PENDING,
    PaymentStatus.SUBMITTED,
    PaymentStatus.SUCCESSFUL,
)


class PaymentMethod(models.TextChoices):
    QR_PAYMENT = "QR_PAYMENT", "QR Payment"


class Booking(TimeStamped):
    """
    One reservation of a burial plot.
    - applicant (user) + plot + deceased details
    - documents: death certificate, burial permit
    - lifecycle status, driven only by booking.lifecycle
    """

    user = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.PROTECT,
        related_name="bookings",
    )
    plot = models.ForeignKey(
        "cemetery.Plot",
        on_delete=models.PROTECT,
        related_name="bookings",
    )
    deceased = models.OneToOneField(
        "cemetery.Deceased",
        on_delete=models.SET_NULL,
        related_name="booking",
        null=True,
        blank=True,
    )

    booking_date = models.DateTimeField(help_text="Date and time of the burial")
    status = models.CharField(
        max_length=32,
        choices=BookingStatus.choices,
        default=BookingStatus.PENDING,
        db_index=True,
    )
    total_price = models.DecimalField(max_digits=12, decimal_places=2, default=0)

    # ---------- Approval ----------
    approved_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        related_name="approved_bookings",
        null=True,
        blank=True,
    )
    approval_date = models.DateTimeField(null=True, blank=True)
    rejection_reason = models.TextField(blank=True)
    admin_notes = models.TextField(blank=True)
    payment_deadline = models.DateTimeField(null=True, blank=True)

    # ---------- Documents ----------
    death_certificate = models.FileField(
        upload_to="booking_documents/death_certificates/",
        null=True,
        blank=True,
    )
    burial_permit = models.FileField(
        upload_to="booking_documents/burial_permits/",
        null=True,
        blank=True,
    )

    notes = models.TextField(blank=True)

    class Meta:
        ordering = ["-created_at"]
        constraints = [
            models.UniqueConstraint(
                fields=["plot"],
                condition=Q(status__in=list(ACTIVE_BOOKING_STATUSES)),
                name="uniq_active_booking_per_plot",
            ),
        ]

    def __str__(self):
        return f"Booking #{self.pk} - {self.plot_id} ({self.status})"


class Package(TimeStamped):
    """Optional burial service a customer can add to a booking."""

    label = models.CharField(max_length=150)
    price = models.DecimalField(max_digits=12, decimal_places=2)
    description = models.TextField(blank=True)

    class Meta:
        ordering = ["price", "id"]

    def __str__(self):
        return f"{self.label} (RM {self.price})"


class BookingPackage(models.Model):
    """A package picked for a booking, with the price charged at the time."""

    booking = models.ForeignKey(
        Booking,
        on_delete=models.CASCADE,
        related_name="package_lines",
    )
    package = models.ForeignKey(
        Package,
        on_delete=models.PROTECT,
        related_name="booking_lines",
    )
    price = models.DecimalField(max_digits=12, decimal_places=2)

    class Meta:
        constraints = [
            models.UniqueConstraint(fields=["booking", "package"], name="uniq_package_per_booking"),
        ]

    def __str__(self):
        return f"{self.booking_id}: {self.package_id}"


class Payment(TimeStamped):
    booking = models.ForeignKey(
        Booking,
        on_delete=models.CASCADE,
        related_name="payments",
    )
    amount = models.DecimalField(max_digits=12, decimal_places=2)
    currency = models.CharField(max_length=3, default="MYR")
    payment_method = models.CharField(
        max_length=20,
        choices=PaymentMethod.choices,
        default=PaymentMethod.QR_PAYMENT,
    )
    payment_status = models.CharField(
        max_length=12,
        choices=PaymentStatus.choices,
        default=PaymentStatus.PENDING,
        db_index=True,
    )

    transaction_id = models.CharField(max_length=100, blank=True)
    receipt = models.FileField(upload_to="payment_receipts/", null=True, blank=True)
    paid_at = models.DateTimeField(null=True, blank=True)

    verified_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        related_name="verified_payments",
        null=True,
        blank=True,
    )
    verified_at = models.DateTimeField(null=True, blank=True)
    payment_notes = models.TextField(blank=True)

    class Meta:
        ordering = ["-created_at"]
        constraints = [
            models.UniqueConstraint(
                fields=["booking"],
                condition=Q(payment_status__in=list(OPEN_PAYMENT_STATUSES)),
                name="uniq_open_payment_per_booking",
            ),
        ]

    def __str__(self):
        return f"Payment #{self.pk} - booking {self.booking_id} ({self.payment_status})"


class BookingStatusHistory(TimeStamped):
    """
    Audit log:
    - which booking changed status
    - old -> new status
    - who changed it (created_at from TimeStamped says when)
    - reason + action type
    """

    class Action(models.TextChoices):
        CREATE          = "CREATE", "Create"
        APPROVE         = "APPROVE", "Approve"
        REJECT          = "REJECT", "Reject"
        VERIFY_PAYMENT  = "VERIFY_PAYMENT", "Verify payment"
        REJECT_PAYMENT  = "REJECT_PAYMENT", "Reject payment"
        SUBMIT_PAYMENT  = "SUBMIT_PAYMENT", "Submit payment"
        COMPLETE        = "COMPLETE", "Complete"

    booking = models.ForeignKey(
        Booking,
        on_delete=models.CASCADE,
        related_name="status_history",
    )
    old_status = models.CharField(
        max_length=32,
        choices=BookingStatus.choices,
        blank=True,
    )
    new_status = models.CharField(
        max_length=32,
        choices=BookingStatus.choices,
    )
    action = models.CharField(max_length=20, choices=Action.choices)
    reason = models.TextField(blank=True)
    changed_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        related_name="booking_status_changes",
        null=True,
        blank=True,
    )

    class Meta:
        ordering = ["-created_at", "-id"]
        verbose_name_plural = "booking status history"

    def __str__(self):
        return f"{self.booking_id}: {self.old_status or '-'} -> {self.new_status} ({self.action})"


class PaymentSetting(TimeStamped):
    """
    Site-wide payment configuration, one row per type.
    Only the QR image customers scan to pay is kept today.
    """

    class Type(models.TextChoices):
        QR_PAYMENT = "qr_payment", "QR Payment"

    type = models.CharField(max_length=30, choices=Type.choices, unique=True)
    qr_image_url = models.CharField(max_length=500)

    def __str__(self):
        return f"{self.type}: {self.qr_image_url}"
