from rest_framework import viewsets
from rest_framework.exceptions import ValidationError
from rest_framework.permissions import AllowAny
from rest_framework.response import Response
from rest_framework.views import APIView

from .models import Deceased, Plot, PlotStatus
from .serializers import DeceasedSearchResultSerializer, PlotSerializer


class PlotViewSet(viewsets.ReadOnlyModelViewSet):
    """
    GET /api/cemetery/plots/?status=AVAILABLE
    GET /api/cemetery/plots/<id>/
    """
    serializer_class = PlotSerializer
    permission_classes = [AllowAny]

    def get_queryset(self):
        qs = Plot.objects.all().order_by("identifier")
        status_param = self.request.query_params.get("status")
        if status_param:
            status_param = status_param.upper()
            if status_param not in PlotStatus.values:
                raise ValidationError({"status": "Status plot tidak sah."})
            qs = qs.filter(status=status_param)
        return qs


class DeceasedSearchView(APIView):
    """
    GET /api/cemetery/deceased/search/?nama=&kp=&plot=
    At least one filter is required. `plot` restricts to buried deceased.
    """
    permission_classes = [AllowAny]
    authentication_classes = []

    def get(self, request):
        nama = (request.query_params.get("nama") or "").strip()
        kp = (request.query_params.get("kp") or "").strip()
        plot = (request.query_params.get("plot") or "").strip()

        if not (nama or kp or plot):
            raise ValidationError(
                "Sekurang-kurangnya satu parameter carian diperlukan (nama, kp atau plot)."
            )

        qs = Deceased.objects.select_related("plot")
        if plot:
            qs = qs.filter(plot__isnull=False, plot__identifier__icontains=plot)
        if nama:
            qs = qs.filter(name__icontains=nama)
        if kp:
            qs = qs.filter(ic_number=kp)

        qs = qs.order_by("name", "id")
        return Response(DeceasedSearchResultSerializer(qs, many=True).data)
