# waqaf/models
import uuid

from django.conf import settings
from django.db import models
from django.utils import timezone

from common.models import TimeStamped


def new_transaction_id():
    return f"WQF{timezone.localdate():%Y%m%d}{uuid.uuid4().hex[:8].upper()}"


class Waqaf(TimeStamped):
    """
    A cash endowment toward the cemetery, with the donor's transfer receipt.
    Recorded as given; there is no approval step.
    """

    transaction_id = models.CharField(max_length=30, unique=True, default=new_transaction_id, editable=False)
    donor_name = models.CharField(max_length=255)
    donor_email = models.EmailField()
    amount = models.DecimalField(max_digits=12, decimal_places=2)
    message = models.TextField(blank=True)
    receipt = models.FileField(upload_to="waqaf_receipts/", null=True, blank=True)
    receipt_filename = models.CharField(max_length=255, blank=True)
    user = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        related_name="waqaf",
        null=True,
        blank=True,
    )

    class Meta:
        ordering = ["-created_at", "-id"]
        verbose_name_plural = "waqaf"

    def __str__(self):
        return f"{self.transaction_id} - {self.donor_name} (RM {self.amount})"
