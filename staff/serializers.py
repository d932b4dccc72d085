from rest_framework import serializers

from .models import BookingStaff, Staff, StaffType


class StaffSerializer(serializers.ModelSerializer):
    class Meta:
        model = Staff
        fields = ["id", "name", "phone", "staff_type", "is_active", "created_at", "updated_at"]
        read_only_fields = ["id", "created_at", "updated_at"]
        extra_kwargs = {
            "name": {"error_messages": {"required": "Nama dan jenis kakitangan diperlukan"}},
            "staff_type": {
                "error_messages": {
                    "required": "Nama dan jenis kakitangan diperlukan",
                    "invalid_choice": "Jenis kakitangan tidak sah",
                },
            },
        }

    def validate_name(self, value):
        value = value.strip()
        if not value:
            raise serializers.ValidationError("Nama dan jenis kakitangan diperlukan")
        return value


class BookingStaffSerializer(serializers.ModelSerializer):
    staff = StaffSerializer(read_only=True)

    class Meta:
        model = BookingStaff
        fields = ["id", "booking", "staff", "staff_type", "assigned_by", "assigned_at"]
        read_only_fields = fields


class StaffAssignmentItemSerializer(serializers.Serializer):
    staff_id = serializers.CharField()
    staff_type = serializers.ChoiceField(
        choices=StaffType.choices,
        error_messages={"invalid_choice": "Jenis kakitangan tidak sah"},
    )


class AssignStaffSerializer(serializers.Serializer):
    booking_id = serializers.IntegerField(
        error_messages={"required": "ID tempahan dan tugasan kakitangan diperlukan"},
    )
    staff_assignments = StaffAssignmentItemSerializer(
        many=True,
        error_messages={"required": "ID tempahan dan tugasan kakitangan diperlukan"},
    )
