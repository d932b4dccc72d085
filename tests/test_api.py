import io
from decimal import Decimal
from unittest import mock

import pytest
from kombu.exceptions import OperationalError
from openpyxl import load_workbook

from booking import lifecycle
from booking.models import Booking, BookingStatus, Package, PaymentSetting, PaymentStatus
from cemetery.models import Deceased, PlotStatus
from kits import ledger
from kits.models import BookingFuneralKit, FuneralKitUsage, KitType
from staff.models import BookingStaff, Staff, StaffType

pytestmark = pytest.mark.django_db


class TestBookingFlow:
    def test_full_lifecycle_over_http(self, user_client, admin_client, plot, kits):
        resp = user_client.post("/api/bookings/", {
            "plot": plot.pk,
            "booking_date": "2025-06-10T10:00:00+08:00",
            "deceased_name": "Allahyarham Osman",
            "deceased_ic_number": "450101-01-1111",
            "deceased_gender": "LELAKI",
            "notes": "Selepas zohor",
        })
        assert resp.status_code == 201, resp.data
        booking_id = resp.data["booking"]["id"]
        assert resp.data["booking"]["status"] == BookingStatus.PENDING
        assert resp.data["booking"]["plot"]["blok"] == "A"

        resp = user_client.post("/api/booking-kits/", {
            "booking_id": booking_id,
            "selected_kits": [{"kit_type": "LELAKI", "quantity": 1}],
        }, format="json")
        assert resp.status_code == 201, resp.data

        resp = admin_client.post(f"/api/admin/bookings/{booking_id}/approve/", {"admin_notes": "Lengkap"}, format="json")
        assert resp.status_code == 200, resp.data
        assert resp.data["booking"]["status"] == BookingStatus.APPROVED_PENDING_PAYMENT
        payment_id = resp.data["payment"]["id"]
        assert Decimal(resp.data["payment"]["amount"]) == Decimal("1500.00")

        resp = user_client.post(f"/api/bookings/{booking_id}/payment/", {"transaction_id": "DN123"})
        assert resp.status_code == 200, resp.data
        assert resp.data["payment"]["payment_status"] == PaymentStatus.SUBMITTED

        resp = admin_client.post(f"/api/admin/payments/{payment_id}/verify/", {"verified": True}, format="json")
        assert resp.status_code == 200, resp.data
        assert resp.data["booking"]["status"] == BookingStatus.PAYMENT_CONFIRMED

        resp = admin_client.post(f"/api/admin/bookings/{booking_id}/complete/", {}, format="json")
        assert resp.status_code == 200, resp.data
        assert resp.data["booking"]["status"] == BookingStatus.COMPLETED
        assert resp.data["booking"]["plot"]["status"] == PlotStatus.OCCUPIED

        resp = admin_client.get(f"/api/admin/bookings/{booking_id}/history/")
        assert [row["action"] for row in resp.data] == [
            "COMPLETE", "VERIFY_PAYMENT", "SUBMIT_PAYMENT", "APPROVE", "CREATE",
        ]

        resp = user_client.get("/api/cemetery/deceased/search/", {"plot": "A-01"})
        assert resp.status_code == 200
        assert [r["nama"] for r in resp.data] == ["Allahyarham Osman"]

    def test_create_on_booked_plot(self, booking, other_client, plot):
        resp = other_client.post("/api/bookings/", {
            "plot": plot.pk,
            "booking_date": "2025-06-11T10:00:00+08:00",
            "deceased_name": "Allahyarhamah Fatimah",
        })
        assert resp.status_code == 400
        assert resp.data["error"] == "Plot tidak tersedia untuk ditempah."

    def test_own_bookings_only(self, booking, user_client, other_client):
        assert len(user_client.get("/api/bookings/").data) == 1
        assert other_client.get("/api/bookings/").data == []
        assert other_client.get(f"/api/bookings/{booking.pk}/").status_code == 404

    def test_payment_read_permissions(self, approved_booking, user_client, other_client, admin_client):
        url = f"/api/bookings/{approved_booking.pk}/payment/"
        assert user_client.get(url).status_code == 200
        assert admin_client.get(url).status_code == 200
        resp = other_client.get(url)
        assert resp.status_code == 403
        assert "error" in resp.data


class TestErrors:
    def test_anonymous_is_401(self, api, booking):
        resp = api.post(f"/api/admin/bookings/{booking.pk}/approve/", {}, format="json")
        assert resp.status_code == 401
        assert set(resp.data) == {"error"}

    def test_non_admin_is_403(self, user_client, booking):
        resp = user_client.post(f"/api/admin/bookings/{booking.pk}/approve/", {}, format="json")
        assert resp.status_code == 403
        assert resp.data["error"]
        assert Booking.objects.get(pk=booking.pk).status == BookingStatus.PENDING

    def test_invalid_state_is_400(self, admin_client, approved_booking):
        resp = admin_client.post(f"/api/admin/bookings/{approved_booking.pk}/approve/", {}, format="json")
        assert resp.status_code == 400
        assert resp.data == {"error": "Hanya tempahan yang berstatus PENDING boleh diluluskan."}

    def test_missing_booking_is_404(self, admin_client):
        resp = admin_client.post("/api/admin/bookings/999999/approve/", {}, format="json")
        assert resp.status_code == 404
        assert resp.data == {"error": "Tempahan tidak ditemukan."}

    def test_reject_without_reason(self, admin_client, booking):
        resp = admin_client.post(f"/api/admin/bookings/{booking.pk}/reject/", {"rejection_reason": " "}, format="json")
        assert resp.status_code == 400
        assert resp.data["error"] == "Sebab penolakan adalah wajib."
        assert "rejection_reason" in resp.data["fields"]

    def test_verify_needs_boolean(self, admin_client, submitted_payment):
        resp = admin_client.post(f"/api/admin/payments/{submitted_payment.pk}/verify/", {}, format="json")
        assert resp.status_code == 400
        assert resp.data["error"] == "Status pengesahan pembayaran adalah wajib."

    def test_approve_succeeds_while_broker_is_down(
        self, admin_client, booking, mailoutbox, django_capture_on_commit_callbacks,
    ):
        with mock.patch.object(lifecycle, "send_booking_status_email") as task:
            task.delay.side_effect = OperationalError("broker down")
            with django_capture_on_commit_callbacks(execute=True):
                resp = admin_client.post(f"/api/admin/bookings/{booking.pk}/approve/", {}, format="json")

        assert resp.status_code == 200, resp.data
        assert Booking.objects.get(pk=booking.pk).status == BookingStatus.APPROVED_PENDING_PAYMENT
        assert mailoutbox == []


class TestAdminBookings:
    def test_list_with_pagination_and_statistics(self, admin_client, make_booking, plot, plot2, admin_user):
        first = make_booking(plot)
        second = make_booking(plot2, name="Allahyarham Yusof")
        lifecycle.approve_booking(first.pk, admin_user)

        resp = admin_client.get("/api/admin/bookings/", {"limit": 1, "page": 2})
        assert resp.status_code == 200
        assert len(resp.data["bookings"]) == 1
        assert resp.data["pagination"] == {
            "page": 2, "limit": 1, "total_count": 2, "total_pages": 2,
            "has_next_page": False, "has_previous_page": True,
        }
        assert resp.data["statistics"][BookingStatus.PENDING] == 1
        assert resp.data["statistics"][BookingStatus.APPROVED_PENDING_PAYMENT] == 1

        resp = admin_client.get("/api/admin/bookings/", {"status": "pending"})
        assert [b["id"] for b in resp.data["bookings"]] == [second.pk]
        assert resp.data["pagination"]["total_count"] == 1

    def test_bad_status_filter(self, admin_client):
        resp = admin_client.get("/api/admin/bookings/", {"status": "HILANG"})
        assert resp.status_code == 400

    def test_statistics(self, admin_client, booking):
        resp = admin_client.get("/api/admin/bookings/statistics/")
        assert resp.data["total"] == 1
        assert resp.data["statistics"][BookingStatus.PENDING] == 1

    def test_reject_releases_plot(self, admin_client, booking):
        resp = admin_client.post(
            f"/api/admin/bookings/{booking.pk}/reject/",
            {"rejection_reason": "Dokumen palsu"}, format="json",
        )
        assert resp.status_code == 200
        assert resp.data["booking"]["rejection_reason"] == "Dokumen palsu"
        assert resp.data["booking"]["plot"]["status"] == PlotStatus.AVAILABLE

    def test_verify_false(self, admin_client, submitted_payment):
        resp = admin_client.post(
            f"/api/admin/payments/{submitted_payment.pk}/verify/",
            {"verified": False, "admin_notes": "Resit kabur"}, format="json",
        )
        assert resp.status_code == 200
        assert resp.data["payment"]["payment_status"] == PaymentStatus.REJECTED
        assert resp.data["booking"]["status"] == BookingStatus.APPROVED_PENDING_PAYMENT


class TestCemetery:
    def test_plots_are_public(self, api, plot, plot2, booking):
        resp = api.get("/api/cemetery/plots/", {"status": "available"})
        assert resp.status_code == 200
        assert [p["identifier"] for p in resp.data] == ["A-02"]

    def test_search_requires_a_filter(self, api):
        resp = api.get("/api/cemetery/deceased/search/")
        assert resp.status_code == 400
        assert "error" in resp.data

    def test_search_by_name_and_ic(self, api, booking):
        resp = api.get("/api/cemetery/deceased/search/", {"nama": "ahmad"})
        assert [r["nama"] for r in resp.data] == ["Allahyarham Ahmad"]
        assert resp.data[0]["plot_identifier"] is None

        resp = api.get("/api/cemetery/deceased/search/", {"kp": "500101-01-5001"})
        assert len(resp.data) == 1

    def test_plot_search_only_lists_buried(self, api, booking):
        assert Deceased.objects.count() == 1
        resp = api.get("/api/cemetery/deceased/search/", {"plot": "A-01"})
        assert resp.data == []


class TestKits:
    def test_list(self, user_client, kits):
        resp = user_client.get("/api/funeral-kits/")
        assert resp.status_code == 200
        assert [k["kit_type"] for k in resp.data["kits"]] == ["LELAKI", "PEREMPUAN"]

    def test_adjust_and_usage(self, admin_client, kits):
        lelaki = kits[KitType.LELAKI]
        resp = admin_client.post("/api/funeral-kits/adjust/", {
            "kit_id": lelaki.pk, "quantity_change": 5, "reason": "ADMIN_ADD", "notes": "Belian baru",
        }, format="json")
        assert resp.status_code == 200, resp.data
        assert resp.data["kit"]["available_quantity"] == 15

        resp = admin_client.post("/api/funeral-kits/adjust/", {
            "kit_id": lelaki.pk, "quantity_change": -20, "reason": "ADMIN_REMOVE",
        }, format="json")
        assert resp.status_code == 400
        assert resp.data["error"].startswith("Kuantiti tidak boleh dikurangkan di bawah 0")

        resp = admin_client.get("/api/funeral-kits/usage/", {"kit_id": lelaki.pk, "limit": 10})
        assert resp.status_code == 200
        assert resp.data["pagination"]["total"] == 1
        assert resp.data["usage"][0]["quantity_change"] == 5

    def test_adjust_is_admin_only(self, user_client, kits):
        resp = user_client.post("/api/funeral-kits/adjust/", {
            "kit_id": kits[KitType.LELAKI].pk, "quantity_change": 1, "reason": "ADMIN_ADD",
        }, format="json")
        assert resp.status_code == 403

    def test_reserve_and_cancel(self, user_client, booking, kits):
        resp = user_client.post("/api/booking-kits/", {
            "booking_id": booking.pk,
            "selected_kits": [
                {"kit_type": "LELAKI", "quantity": 2},
                {"kit_type": "PEREMPUAN", "quantity": 1},
            ],
        }, format="json")
        assert resp.status_code == 201, resp.data
        assert BookingFuneralKit.objects.filter(booking=booking).count() == 2

        resp = user_client.delete(f"/api/booking-kits/?booking_id={booking.pk}")
        assert resp.status_code == 200
        assert len(resp.data["released"]) == 2
        assert not BookingFuneralKit.objects.filter(booking=booking).exists()

        kits[KitType.LELAKI].refresh_from_db()
        assert kits[KitType.LELAKI].available_quantity == 10
        assert FuneralKitUsage.objects.filter(booking=booking).count() == 4

    def test_reserve_over_stock_rolls_back_whole_selection(self, user_client, booking, kits):
        resp = user_client.post("/api/booking-kits/", {
            "booking_id": booking.pk,
            "selected_kits": [
                {"kit_type": "LELAKI", "quantity": 1},
                {"kit_type": "PEREMPUAN", "quantity": 9},
            ],
        }, format="json")
        assert resp.status_code == 400
        kits[KitType.LELAKI].refresh_from_db()
        assert kits[KitType.LELAKI].available_quantity == 10
        assert not BookingFuneralKit.objects.exists()

    def test_reserve_someone_elses_booking(self, other_client, booking, kits):
        resp = other_client.post("/api/booking-kits/", {
            "booking_id": booking.pk,
            "selected_kits": [{"kit_type": "LELAKI", "quantity": 1}],
        }, format="json")
        assert resp.status_code == 404

    def test_reserve_after_approval_refused(self, user_client, approved_booking, kits):
        resp = user_client.post("/api/booking-kits/", {
            "booking_id": approved_booking.pk,
            "selected_kits": [{"kit_type": "LELAKI", "quantity": 1}],
        }, format="json")
        assert resp.status_code == 400


class TestStaff:
    def test_admin_manages_staff(self, admin_client, user_client):
        resp = admin_client.post("/api/staff/", {"name": " Rahim ", "staff_type": "PENGALI_KUBUR"}, format="json")
        assert resp.status_code == 201, resp.data
        assert resp.data["name"] == "Rahim"

        resp = user_client.post("/api/staff/", {"name": "Rahman", "staff_type": "PENGALI_KUBUR"}, format="json")
        assert resp.status_code == 403

        resp = user_client.get("/api/staff/", {"type": "PENGALI_KUBUR"})
        assert [s["name"] for s in resp.data] == ["Rahim"]

    def test_invalid_type(self, admin_client):
        resp = admin_client.post("/api/staff/", {"name": "X", "staff_type": "TUKANG"}, format="json")
        assert resp.status_code == 400
        assert resp.data["error"] == "Jenis kakitangan tidak sah"

    def test_cannot_delete_assigned_staff(self, admin_client, booking, digger, sentinel):
        BookingStaff.objects.create(booking=booking, staff=digger, staff_type=StaffType.PENGALI_KUBUR)
        resp = admin_client.delete(f"/api/staff/{digger.pk}/")
        assert resp.status_code == 400
        assert Staff.objects.filter(pk=digger.pk).exists()

    def test_delete_unassigned(self, admin_client, digger2):
        resp = admin_client.delete(f"/api/staff/{digger2.pk}/")
        assert resp.status_code == 200
        assert not Staff.objects.filter(pk=digger2.pk).exists()

    def test_available(self, user_client, sentinel, digger, washer):
        resp = user_client.get("/api/staff/available/", {"date": "2025-06-10"})
        assert resp.status_code == 200
        assert resp.data["date"] == "2025-06-10"
        assert resp.data["total_available"] == 3
        assert resp.data["staff_by_type"]["PEMANDI_JENAZAH"][0]["id"] == "not-needed-pemandi"

    def test_query_params_are_snake_case(self, user_client, booking, sentinel, digger, digger2):
        BookingStaff.objects.create(booking=booking, staff=digger, staff_type=StaffType.PENGALI_KUBUR)
        Staff.objects.filter(pk=digger2.pk).update(is_active=False)

        resp = user_client.get("/api/staff/", {"type": "PENGALI_KUBUR", "active_only": "true"})
        assert [s["id"] for s in resp.data] == [digger.pk]

        busy = user_client.get("/api/staff/available/", {"date": "2025-06-10", "type": "PENGALI_KUBUR"})
        assert busy.data["total_available"] == 0

        resp = user_client.get("/api/staff/available/", {
            "date": "2025-06-10", "type": "PENGALI_KUBUR", "exclude_booking_id": booking.pk,
        })
        assert [s["id"] for s in resp.data["staff_by_type"]["PENGALI_KUBUR"]] == [digger.pk]

        resp = user_client.get("/api/staff/available/", {"date": "2025-06-10", "exclude_booking_id": "abc"})
        assert resp.status_code == 400
        assert "exclude_booking_id" in resp.data["fields"]

    def test_available_without_date(self, user_client):
        resp = user_client.get("/api/staff/available/")
        assert resp.status_code == 400
        assert resp.data["error"] == "Tarikh tempahan diperlukan"

    def test_assign_and_read(self, user_client, other_client, booking, digger, sentinel):
        payload = {
            "booking_id": booking.pk,
            "staff_assignments": [
                {"staff_id": digger.pk, "staff_type": "PENGALI_KUBUR"},
                {"staff_id": sentinel.pk, "staff_type": "PEMANDI_JENAZAH"},
            ],
        }
        assert other_client.post("/api/booking-staff/", payload, format="json").status_code == 403

        resp = user_client.post("/api/booking-staff/", payload, format="json")
        assert resp.status_code == 201, resp.data
        assert len(resp.data["assignments"]) == 2

        resp = user_client.get("/api/booking-staff/", {"booking_id": booking.pk})
        assert {a["staff"]["id"] for a in resp.data} == {digger.pk, sentinel.pk}


class TestDashboard:
    @pytest.fixture
    def history(self, confirmed_booking, make_booking, plot2, other_user):
        make_booking(plot2, actor=other_user, name="Allahyarhamah Zainab")
        return confirmed_booking

    def test_admin_dashboard(self, admin_client, history, kits):
        resp = admin_client.get("/api/dashboard/admin/", {"year": 2025, "month": 6})
        assert resp.status_code == 200
        data = resp.data["data"]
        assert resp.data["success"] is True
        assert data["total_bookings"] == 2
        assert data["confirmed_bookings"] == 1
        assert data["pending_bookings"] == 1
        assert data["payments_received"] == Decimal("1500.00")
        assert list(data["monthly_data"]) == ["2025-06"]
        assert len(data["funeral_kits"]) == 2

    def test_period_filters_out_other_months(self, admin_client, history):
        resp = admin_client.get("/api/dashboard/admin/", {"year": 2024})
        assert resp.data["data"]["total_bookings"] == 0

    def test_bad_month(self, admin_client):
        resp = admin_client.get("/api/dashboard/admin/", {"year": 2025, "month": 13})
        assert resp.status_code == 400

    def test_admin_dashboard_forbidden_for_users(self, user_client):
        assert user_client.get("/api/dashboard/admin/").status_code == 403

    def test_user_dashboard_sees_own_only(self, user_client, history):
        data = user_client.get("/api/dashboard/me/").data["data"]
        assert data["total_bookings"] == 1
        assert data["bookings"][0]["deceased_name"] == "Allahyarham Ahmad"

    def test_pdf_export(self, admin_client, user_client, history):
        resp = admin_client.get("/api/dashboard/export/", {"type": "admin", "year": 2025})
        assert resp.status_code == 200
        assert resp["Content-Type"] == "application/pdf"
        assert resp.content.startswith(b"%PDF")
        assert "admin-statistics-2025.pdf" in resp["Content-Disposition"]

        assert user_client.get("/api/dashboard/export/", {"type": "admin"}).status_code == 403
        assert user_client.get("/api/dashboard/export/").status_code == 200

    def test_excel_export(self, admin_client, history):
        resp = admin_client.get("/api/dashboard/bookings.xlsx", {"status": "PAYMENT_CONFIRMED"})
        assert resp.status_code == 200
        wb = load_workbook(io.BytesIO(resp.content))
        rows = list(wb["Tempahan"].iter_rows(values_only=True))
        assert rows[0][0] == "ID"
        assert len(rows) == 2
        assert rows[1][2] == "A-01"


def test_booking_detail_lists_reserved_kits(user_client, booking, kits):
    ledger.reserve(kits[KitType.LELAKI], 1, booking)
    resp = user_client.get(f"/api/bookings/{booking.pk}/")
    assert resp.data["funeral_kits"] == [
        {"kit_id": kits[KitType.LELAKI].pk, "kit_type": "LELAKI", "quantity": 1},
    ]


class TestQrPaymentSetting:
    def test_default_image_until_configured(self, api, settings):
        settings.PUSARA_DEFAULT_QR_IMAGE_URL = "/images/default-qr.png"
        resp = api.get("/api/payment-settings/qr/")
        assert resp.status_code == 200
        assert resp.data == {"qr_image_url": "/images/default-qr.png"}

    def test_admin_updates_then_public_reads(self, admin_client, api):
        resp = admin_client.put("/api/payment-settings/qr/", {"qr_image_url": "/media/qr/masjid.png"}, format="json")
        assert resp.status_code == 200, resp.data
        assert resp.data["qr_image_url"] == "/media/qr/masjid.png"

        resp = admin_client.put("/api/payment-settings/qr/", {"qr_image_url": "/media/qr/baru.png"}, format="json")
        assert resp.status_code == 200
        assert PaymentSetting.objects.count() == 1

        assert api.get("/api/payment-settings/qr/").data == {"qr_image_url": "/media/qr/baru.png"}

    @pytest.mark.parametrize("body", [{}, {"qr_image_url": ""}, {"qr_image_url": "   "}])
    def test_url_is_required(self, admin_client, body):
        resp = admin_client.put("/api/payment-settings/qr/", body, format="json")
        assert resp.status_code == 400
        assert resp.data["error"] == "URL imej QR adalah wajib."
        assert not PaymentSetting.objects.exists()

    def test_update_is_admin_only(self, api, user_client):
        body = {"qr_image_url": "/x.png"}
        assert api.put("/api/payment-settings/qr/", body, format="json").status_code == 401
        assert user_client.put("/api/payment-settings/qr/", body, format="json").status_code == 403
        assert not PaymentSetting.objects.exists()


class TestPackages:
    def test_admin_manages_packages(self, admin_client, user_client):
        resp = admin_client.post("/api/packages/", {"label": " Van jenazah ", "price": "250.00"}, format="json")
        assert resp.status_code == 201, resp.data
        assert resp.data["label"] == "Van jenazah"
        package_id = resp.data["id"]

        resp = admin_client.patch(f"/api/packages/{package_id}/", {"price": "275.00"}, format="json")
        assert resp.status_code == 200
        assert Package.objects.get(pk=package_id).price == Decimal("275.00")

        assert user_client.get("/api/packages/").status_code == 200
        resp = user_client.post("/api/packages/", {"label": "X", "price": "1.00"}, format="json")
        assert resp.status_code == 403

    def test_negative_price(self, admin_client):
        resp = admin_client.post("/api/packages/", {"label": "X", "price": "-1"}, format="json")
        assert resp.status_code == 400
        assert resp.data["error"] == "Harga pakej tidak boleh negatif."

    def test_booking_with_packages_over_http(self, user_client, admin_client, plot):
        package = Package.objects.create(label="Mandi jenazah", price=Decimal("300.00"))
        resp = user_client.post("/api/bookings/", {
            "plot": plot.pk,
            "booking_date": "2025-06-10T10:00:00+08:00",
            "deceased_name": "Allahyarham Osman",
            "packages": [package.pk],
        })
        assert resp.status_code == 201, resp.data
        assert Decimal(resp.data["booking"]["total_price"]) == Decimal("1800.00")
        assert [p["id"] for p in resp.data["booking"]["packages"]] == [package.pk]

        resp = admin_client.delete(f"/api/packages/{package.pk}/")
        assert resp.status_code == 400
        assert Package.objects.filter(pk=package.pk).exists()

    def test_unknown_package_is_400(self, user_client, plot):
        resp = user_client.post("/api/bookings/", {
            "plot": plot.pk,
            "booking_date": "2025-06-10T10:00:00+08:00",
            "deceased_name": "Allahyarham Osman",
            "packages": [999999],
        })
        assert resp.status_code == 400
        assert resp.data["error"] == "Pakej tidak sah."
        assert not Booking.objects.exists()

    def test_delete_unused(self, admin_client):
        package = Package.objects.create(label="Khemah", price=Decimal("100.00"))
        resp = admin_client.delete(f"/api/packages/{package.pk}/")
        assert resp.status_code == 200
        assert not Package.objects.exists()
