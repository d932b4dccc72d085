"""
Shared fixtures: users, plots, bookings in each lifecycle state,
funeral kits, staff and authenticated API clients.
"""
from datetime import datetime
from decimal import Decimal

import pytest
from django.utils import timezone
from rest_framework.test import APIClient

from accounts.models import Role, User
from booking import lifecycle
from booking.models import PaymentStatus
from cemetery.models import Plot
from kits.models import FuneralKit, KitType
from staff.models import NOT_NEEDED_PEMANDI_ID, Staff, StaffType


@pytest.fixture(autouse=True)
def _media_root(settings, tmp_path):
    settings.MEDIA_ROOT = tmp_path / "media"


def local_dt(year, month, day, hour=10, minute=0):
    return timezone.make_aware(datetime(year, month, day, hour, minute))


@pytest.fixture
def burial_date():
    return local_dt(2025, 6, 10, 10, 0)


# ---------- users ----------

@pytest.fixture
def user(db):
    return User.objects.create_user(
        username="ali", email="ali@example.com", password="rahsia123",
        first_name="Ali", last_name="Abu", role=Role.USER,
    )


@pytest.fixture
def other_user(db):
    return User.objects.create_user(
        username="siti", email="siti@example.com", password="rahsia123", role=Role.USER,
    )


@pytest.fixture
def admin_user(db):
    return User.objects.create_user(
        username="pentadbir", email="admin@example.com", password="rahsia123", role=Role.ADMIN,
    )


@pytest.fixture
def api():
    return APIClient()


@pytest.fixture
def user_client(user):
    client = APIClient()
    client.force_authenticate(user=user)
    return client


@pytest.fixture
def other_client(other_user):
    client = APIClient()
    client.force_authenticate(user=other_user)
    return client


@pytest.fixture
def admin_client(admin_user):
    client = APIClient()
    client.force_authenticate(user=admin_user)
    return client


# ---------- cemetery / booking ----------

@pytest.fixture
def plot(db):
    return Plot.objects.create(identifier="A-01", row="1", column="1", price=Decimal("1500.00"))


@pytest.fixture
def plot2(db):
    return Plot.objects.create(identifier="A-02", row="1", column="2", price=Decimal("1200.00"))


@pytest.fixture
def make_booking(user, burial_date):
    def _make(plot, actor=None, when=None, name="Allahyarham Ahmad"):
        return lifecycle.create_booking(
            actor=actor or user,
            plot_id=plot.pk,
            booking_date=when or burial_date,
            deceased={"name": name, "ic_number": "500101-01-5001", "gender": "LELAKI"},
        )
    return _make


@pytest.fixture
def booking(make_booking, plot):
    return make_booking(plot)


@pytest.fixture
def approved_booking(booking, admin_user):
    lifecycle.approve_booking(booking.pk, admin_user)
    booking.refresh_from_db()
    return booking


@pytest.fixture
def submitted_payment(approved_booking, user):
    return lifecycle.submit_payment(approved_booking.pk, user, transaction_id="TX-1001")


@pytest.fixture
def confirmed_booking(submitted_payment, admin_user):
    payment, booking = lifecycle.verify_payment(submitted_payment.pk, admin_user, True)
    assert payment.payment_status == PaymentStatus.SUCCESSFUL
    booking.refresh_from_db()
    return booking


# ---------- kits ----------

@pytest.fixture
def kits(db):
    return {
        KitType.LELAKI: FuneralKit.objects.create(kit_type=KitType.LELAKI, available_quantity=10),
        KitType.PEREMPUAN: FuneralKit.objects.create(kit_type=KitType.PEREMPUAN, available_quantity=5),
    }


# ---------- staff ----------

@pytest.fixture
def sentinel(db):
    return Staff.objects.create(
        id=NOT_NEEDED_PEMANDI_ID, name="Tidak Perlu", staff_type=StaffType.PEMANDI_JENAZAH,
    )


@pytest.fixture
def digger(db):
    return Staff.objects.create(name="Kassim", staff_type=StaffType.PENGALI_KUBUR)


@pytest.fixture
def digger2(db):
    return Staff.objects.create(name="Ahmad", staff_type=StaffType.PENGALI_KUBUR)


@pytest.fixture
def washer(db):
    return Staff.objects.create(name="Aminah", staff_type=StaffType.PEMANDI_JENAZAH)
