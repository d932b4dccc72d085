from rest_framework import serializers

from .models import BookingFuneralKit, FuneralKit, FuneralKitUsage, KitType, UsageReason


class FuneralKitSerializer(serializers.ModelSerializer):
    class Meta:
        model = FuneralKit
        fields = ["id", "kit_type", "available_quantity", "total_used", "updated_at"]
        read_only_fields = fields


class FuneralKitUsageSerializer(serializers.ModelSerializer):
    kit_type = serializers.CharField(source="kit.kit_type", read_only=True)
    changed_by_name = serializers.SerializerMethodField()

    class Meta:
        model = FuneralKitUsage
        fields = [
            "id", "kit", "kit_type", "booking", "quantity_change",
            "reason", "changed_by", "changed_by_name", "notes", "created_at",
        ]
        read_only_fields = fields

    def get_changed_by_name(self, obj):
        return obj.changed_by.display_name if obj.changed_by else None


class BookingFuneralKitSerializer(serializers.ModelSerializer):
    kit_type = serializers.CharField(source="kit.kit_type", read_only=True)

    class Meta:
        model = BookingFuneralKit
        fields = ["id", "booking", "kit", "kit_type", "quantity", "created_at"]
        read_only_fields = fields


class KitAdjustSerializer(serializers.Serializer):
    kit_id = serializers.PrimaryKeyRelatedField(queryset=FuneralKit.objects.all(), source="kit")
    quantity_change = serializers.IntegerField()
    reason = serializers.ChoiceField(choices=[UsageReason.ADMIN_ADD, UsageReason.ADMIN_REMOVE])
    notes = serializers.CharField(required=False, allow_blank=True)

    def validate_quantity_change(self, value):
        if value == 0:
            raise serializers.ValidationError("Perubahan kuantiti mesti nombor bukan sifar.")
        return value


class KitSelectionSerializer(serializers.Serializer):
    kit_type = serializers.ChoiceField(choices=KitType.choices)
    quantity = serializers.IntegerField(min_value=1, default=1)


class KitReserveSerializer(serializers.Serializer):
    booking_id = serializers.IntegerField()
    selected_kits = KitSelectionSerializer(many=True, allow_empty=False)

    def validate_selected_kits(self, value):
        types = [k["kit_type"] for k in value]
        if len(types) != len(set(types)):
            raise serializers.ValidationError("Jenis kit yang sama dipilih lebih daripada sekali.")
        return value
