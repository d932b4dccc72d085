# cemetery/admin.py
from django.contrib import admin

from .models import Deceased, Plot


@admin.register(Plot)
class PlotAdmin(admin.ModelAdmin):
    list_display = ("identifier", "row", "column", "status", "price", "current_booking")
    list_filter = ("status",)
    search_fields = ("identifier",)
    raw_id_fields = ("current_booking",)


@admin.register(Deceased)
class DeceasedAdmin(admin.ModelAdmin):
    list_display = ("name", "ic_number", "gender", "date_of_death", "plot")
    list_filter = ("gender",)
    search_fields = ("name", "ic_number", "plot__identifier")
    raw_id_fields = ("plot",)
