# accounts/models.py
from django.contrib.auth.models import AbstractUser
from django.db import models


class Role(models.TextChoices):
    ADMIN = "ADMIN", "Admin"
    USER  = "USER", "Pengguna"


class User(AbstractUser):
    """
    - role: ADMIN runs the back office (approve / reject / verify / complete),
      USER is a customer making plot bookings.
    """

    email = models.EmailField(
        unique=True,
        blank=False,
        null=False,
        error_messages={"unique": "Pengguna dengan emel ini sudah wujud."},
    )
    phone = models.CharField(max_length=32, blank=True)

    role = models.CharField(
        max_length=10,
        choices=Role.choices,
        default=Role.USER,
        help_text="Business role",
    )

    @property
    def display_name(self) -> str:
        return self.get_full_name() or self.username
