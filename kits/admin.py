# kits/admin.py
from django.contrib import admin

from .models import BookingFuneralKit, FuneralKit, FuneralKitUsage


@admin.register(FuneralKit)
class FuneralKitAdmin(admin.ModelAdmin):
    list_display = ("kit_type", "available_quantity", "total_used", "updated_at")
    # stock moves only through the ledger
    readonly_fields = ("available_quantity", "total_used")


@admin.register(BookingFuneralKit)
class BookingFuneralKitAdmin(admin.ModelAdmin):
    list_display = ("booking", "kit", "quantity", "created_at")
    list_filter = ("kit",)
    raw_id_fields = ("booking",)


@admin.register(FuneralKitUsage)
class FuneralKitUsageAdmin(admin.ModelAdmin):
    list_display = ("created_at", "kit", "booking", "quantity_change", "reason", "changed_by")
    list_filter = ("reason", "kit")
    search_fields = ("booking__id", "notes")

    def has_add_permission(self, request):
        return False

    def has_change_permission(self, request, obj=None):
        return False

    def has_delete_permission(self, request, obj=None):
        return False
