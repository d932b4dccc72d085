# cemetery/models
from django.db import models

from common.models import TimeStamped


class PlotStatus(models.TextChoices):
    AVAILABLE = "AVAILABLE", "Tersedia"
    BOOKED    = "BOOKED", "Ditempah"
    OCCUPIED  = "OCCUPIED", "Diduduki"


class Gender(models.TextChoices):
    LELAKI    = "LELAKI", "Lelaki"
    PEREMPUAN = "PEREMPUAN", "Perempuan"


class Plot(TimeStamped):
    """
    A physical burial location.
    - AVAILABLE: no active booking holds it
    - BOOKED: held by a pending / approved / paid booking
    - OCCUPIED: booking completed
    """

    identifier = models.CharField(max_length=50, unique=True)
    row = models.CharField(max_length=20, blank=True)
    column = models.CharField(max_length=20, blank=True)

    status = models.CharField(
        max_length=12,
        choices=PlotStatus.choices,
        default=PlotStatus.AVAILABLE,
        db_index=True,
    )
    price = models.DecimalField(max_digits=12, decimal_places=2, default=0)

    current_booking = models.ForeignKey(
        "booking.Booking",
        on_delete=models.SET_NULL,
        related_name="+",
        null=True,
        blank=True,
        help_text="Active booking currently holding this plot",
    )

    class Meta:
        ordering = ["identifier"]

    def __str__(self):
        return self.identifier

    @property
    def blok(self):
        return extract_blok(self.identifier)


class Deceased(TimeStamped):
    name = models.CharField(max_length=255)
    ic_number = models.CharField("No. K/P", max_length=20, blank=True, db_index=True)
    gender = models.CharField(max_length=10, choices=Gender.choices, blank=True)
    date_of_birth = models.DateField(null=True, blank=True)
    date_of_death = models.DateField(null=True, blank=True)

    # stamped when the burial booking is completed
    plot = models.ForeignKey(
        Plot,
        on_delete=models.SET_NULL,
        related_name="deceased",
        null=True,
        blank=True,
    )

    class Meta:
        ordering = ["name"]
        verbose_name_plural = "deceased"

    def __str__(self):
        return self.name


def extract_blok(identifier):
    """
    "A-01" -> "A", "Blok C No 5" -> "Blok C", "C01" -> "C01".
    """
    if not identifier or not isinstance(identifier, str):
        return None
    value = identifier.strip()
    if not value:
        return None

    if "-" in value:
        return value.split("-", 1)[0].strip()

    if value.lower().startswith("blok "):
        parts = value.split()
        return " ".join(parts[:2])

    return value.split(" ")[0]
