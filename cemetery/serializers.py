from rest_framework import serializers

from .models import Deceased, Plot


class PlotSerializer(serializers.ModelSerializer):
    blok = serializers.CharField(read_only=True)

    class Meta:
        model = Plot
        fields = [
            "id", "identifier", "blok", "row", "column",
            "status", "price", "current_booking",
        ]
        read_only_fields = fields


class DeceasedSerializer(serializers.ModelSerializer):
    class Meta:
        model = Deceased
        fields = [
            "id", "name", "ic_number", "gender",
            "date_of_birth", "date_of_death", "plot",
        ]
        read_only_fields = ["id", "plot"]


class DeceasedSearchResultSerializer(serializers.ModelSerializer):
    """
    Flattened row for the public grave search page.
    """
    nama = serializers.CharField(source="name")
    plot_identifier = serializers.CharField(source="plot.identifier", default=None)
    plot_row = serializers.CharField(source="plot.row", default=None)
    plot_column = serializers.CharField(source="plot.column", default=None)
    plot_status = serializers.CharField(source="plot.status", default=None)
    blok = serializers.CharField(source="plot.blok", default=None)

    class Meta:
        model = Deceased
        fields = [
            "id", "nama", "ic_number", "gender",
            "date_of_birth", "date_of_death",
            "plot_identifier", "plot_row", "plot_column", "plot_status", "blok",
        ]
