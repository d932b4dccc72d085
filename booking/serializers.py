# booking/serializers.py
from rest_framework import serializers

from cemetery.models import Gender, Plot
from cemetery.serializers import DeceasedSerializer

from .models import Booking, BookingStatusHistory, Package, Payment


class PaymentSerializer(serializers.ModelSerializer):
    verified_by_name = serializers.SerializerMethodField()

    class Meta:
        model = Payment
        fields = [
            "id", "booking", "amount", "currency", "payment_method",
            "payment_status", "transaction_id", "receipt", "paid_at",
            "verified_by", "verified_by_name", "verified_at", "payment_notes",
            "created_at",
        ]
        read_only_fields = fields

    def get_verified_by_name(self, obj):
        return obj.verified_by.display_name if obj.verified_by else None


class PackageSerializer(serializers.ModelSerializer):
    price = serializers.DecimalField(
        max_digits=12,
        decimal_places=2,
        min_value=0,
        error_messages={"min_value": "Harga pakej tidak boleh negatif."},
    )

    class Meta:
        model = Package
        fields = ["id", "label", "price", "description", "created_at", "updated_at"]
        read_only_fields = ["id", "created_at", "updated_at"]

    def validate_label(self, value):
        value = value.strip()
        if not value:
            raise serializers.ValidationError("Nama pakej adalah wajib.")
        return value


class BookingStatusHistorySerializer(serializers.ModelSerializer):
    changed_by_name = serializers.SerializerMethodField()

    class Meta:
        model = BookingStatusHistory
        fields = [
            "id", "old_status", "new_status", "action", "reason",
            "changed_by", "changed_by_name", "created_at",
        ]
        read_only_fields = fields

    def get_changed_by_name(self, obj):
        return obj.changed_by.display_name if obj.changed_by else None


class BookingSerializer(serializers.ModelSerializer):
    """
    Read model for a booking, with its plot, deceased, payments,
    staff and reserved kits.
    """
    user = serializers.SerializerMethodField()
    plot = serializers.SerializerMethodField()
    deceased = DeceasedSerializer(read_only=True)
    payments = PaymentSerializer(many=True, read_only=True)
    assigned_staff = serializers.SerializerMethodField()
    funeral_kits = serializers.SerializerMethodField()
    packages = serializers.SerializerMethodField()

    class Meta:
        model = Booking
        fields = [
            "id", "user", "plot", "deceased",
            "booking_date", "status", "total_price",
            "approved_by", "approval_date", "rejection_reason",
            "admin_notes", "payment_deadline",
            "death_certificate", "burial_permit", "notes",
            "payments", "packages", "assigned_staff", "funeral_kits",
            "created_at", "updated_at",
        ]
        read_only_fields = fields

    def get_user(self, obj):
        u = obj.user
        return {
            "id": u.id,
            "name": u.display_name,
            "email": u.email,
            "phone": u.phone,
        }

    def get_plot(self, obj):
        p = obj.plot
        return {
            "id": p.id,
            "identifier": p.identifier,
            "blok": p.blok,
            "row": p.row,
            "column": p.column,
            "status": p.status,
        }

    def get_assigned_staff(self, obj):
        return [
            {
                "id": a.staff_id,
                "name": a.staff.name,
                "staff_type": a.staff_type,
            }
            for a in obj.staff_assignments.all()
        ]

    def get_packages(self, obj):
        return [
            {
                "id": line.package_id,
                "label": line.package.label,
                "price": line.price,
            }
            for line in obj.package_lines.all()
        ]

    def get_funeral_kits(self, obj):
        return [
            {
                "kit_id": r.kit_id,
                "kit_type": r.kit.kit_type,
                "quantity": r.quantity,
            }
            for r in obj.funeral_kits.all()
        ]


class BookingCreateSerializer(serializers.Serializer):
    """
    Multipart form from the booking page.
    """
    plot = serializers.PrimaryKeyRelatedField(queryset=Plot.objects.all())
    booking_date = serializers.DateTimeField()

    deceased_name = serializers.CharField(max_length=255)
    deceased_ic_number = serializers.CharField(max_length=20, required=False, allow_blank=True)
    deceased_gender = serializers.ChoiceField(choices=Gender.choices, required=False, allow_blank=True)
    deceased_date_of_birth = serializers.DateField(required=False, allow_null=True)
    deceased_date_of_death = serializers.DateField(required=False, allow_null=True)

    death_certificate = serializers.FileField(required=False, allow_null=True)
    burial_permit = serializers.FileField(required=False, allow_null=True)
    notes = serializers.CharField(required=False, allow_blank=True)
    packages = serializers.PrimaryKeyRelatedField(
        queryset=Package.objects.all(), many=True, required=False,
        error_messages={"does_not_exist": "Pakej tidak sah."},
    )

    def validate(self, data):
        dob = data.get("deceased_date_of_birth")
        dod = data.get("deceased_date_of_death")
        if dob and dod and dod < dob:
            raise serializers.ValidationError(
                {"deceased_date_of_death": "Tarikh kematian tidak boleh sebelum tarikh lahir."}
            )
        return data

    def deceased_payload(self):
        data = self.validated_data
        return {
            "name": data["deceased_name"].strip(),
            "ic_number": (data.get("deceased_ic_number") or "").strip(),
            "gender": data.get("deceased_gender") or "",
            "date_of_birth": data.get("deceased_date_of_birth"),
            "date_of_death": data.get("deceased_date_of_death"),
        }


class PaymentSubmitSerializer(serializers.Serializer):
    receipt = serializers.FileField(required=False, allow_null=True)
    transaction_id = serializers.CharField(max_length=100, required=False, allow_blank=True)
    payment_notes = serializers.CharField(required=False, allow_blank=True)


class AdminNotesSerializer(serializers.Serializer):
    admin_notes = serializers.CharField(required=False, allow_blank=True, allow_null=True)


class RejectBookingSerializer(AdminNotesSerializer):
    # presence/blankness is checked by the lifecycle
    rejection_reason = serializers.CharField(required=False, allow_blank=True, allow_null=True)


class QrImageSerializer(serializers.Serializer):
    qr_image_url = serializers.CharField(
        max_length=500,
        error_messages={
            "required": "URL imej QR adalah wajib.",
            "blank": "URL imej QR adalah wajib.",
            "null": "URL imej QR adalah wajib.",
        },
    )
