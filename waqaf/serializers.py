# waqaf/serializers.py
import os
from decimal import Decimal

from rest_framework import serializers

from .models import Waqaf


class WaqafSerializer(serializers.ModelSerializer):
    amount = serializers.DecimalField(
        max_digits=12,
        decimal_places=2,
        min_value=Decimal("0.01"),
        error_messages={"min_value": "Jumlah waqaf mesti lebih daripada 0."},
    )

    class Meta:
        model = Waqaf
        fields = [
            "id", "transaction_id", "donor_name", "donor_email", "amount",
            "message", "receipt", "receipt_filename", "created_at",
        ]
        read_only_fields = ["id", "transaction_id", "created_at"]

    def validate_donor_name(self, value):
        value = value.strip()
        if not value:
            raise serializers.ValidationError("Nama penyumbang adalah wajib.")
        return value

    def validate(self, data):
        receipt = data.get("receipt")
        if receipt is not None and not data.get("receipt_filename"):
            data["receipt_filename"] = os.path.basename(receipt.name)
        return data
