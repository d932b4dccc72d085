# waqaf/admin.py
from django.contrib import admin

from .models import Waqaf


@admin.register(Waqaf)
class WaqafAdmin(admin.ModelAdmin):
    list_display = ("transaction_id", "donor_name", "donor_email", "amount", "created_at")
    search_fields = ("transaction_id", "donor_name", "donor_email")
    raw_id_fields = ("user",)
    readonly_fields = ("transaction_id",)
