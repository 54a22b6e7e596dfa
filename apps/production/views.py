from rest_framework import mixins, status, viewsets
from rest_framework.decorators import action, api_view, permission_classes
from rest_framework.pagination import PageNumberPagination
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response
from drf_spectacular.utils import extend_schema, OpenApiParameter

from apps.lots.services import LotEngine
from apps.lots.serializers import LotSerializer

from .models import Batch, GravityReading, Recipe, Vessel
from .serializers import (
    BatchCreateSerializer,
    BatchMetricsSerializer,
    BatchSerializer,
    GravityConvertQuerySerializer,
    GravityReadingCreateSerializer,
    GravityReadingResultSerializer,
    GravityReadingSerializer,
    RecipeSerializer,
    StartBrewingSerializer,
    StartFermentationSerializer,
    VesselSerializer,
)
from .units import GravityUnit, from_sg, to_sg

from apps.production.services import (
    create_batch,
    start_brewing,
    start_fermentation,
    get_batch_metrics,
    # Exceptions
    BatchNotFoundError,
    RecipeNotFoundError,
    VesselNotFoundError,
    VesselUnavailableError,
    InvalidBatchStateError,
    InvalidGravityReadingError,
)


class ProductionPagination(PageNumberPagination):
    """Custom pagination for production lists."""
    page_size = 20
    page_size_query_param = 'page_size'
    max_page_size = 100


class RecipeViewSet(viewsets.ReadOnlyModelViewSet):
    """
    Read-only recipe catalog.

    list: Get all recipes
    retrieve: Get a specific recipe
    """

    queryset = Recipe.objects.all()
    serializer_class = RecipeSerializer
    permission_classes = [IsAuthenticated]
    pagination_class = ProductionPagination


class VesselViewSet(viewsets.ReadOnlyModelViewSet):
    """
    Vessels and their availability.

    list: Get all vessels (filter with ?status=available)
    retrieve: Get a specific vessel
    """

    queryset = Vessel.objects.all()
    serializer_class = VesselSerializer
    permission_classes = [IsAuthenticated]
    pagination_class = ProductionPagination

    def get_queryset(self):
        queryset = super().get_queryset()
        vessel_status = self.request.query_params.get('status')
        if vessel_status:
            queryset = queryset.filter(status=vessel_status)
        return queryset


class BatchViewSet(mixins.ListModelMixin,
                   mixins.RetrieveModelMixin,
                   viewsets.GenericViewSet):
    """
    ViewSet for batches.

    All business logic is handled by services.
    Views are thin HTTP handlers only.

    list: Get all batches (filter with ?status=fermenting)
    create: Plan a new batch
    retrieve: Get a specific batch
    """

    queryset = Batch.objects.select_related('recipe', 'created_by')
    serializer_class = BatchSerializer
    permission_classes = [IsAuthenticated]
    pagination_class = ProductionPagination

    def get_queryset(self):
        queryset = super().get_queryset()
        batch_status = self.request.query_params.get('status')
        if batch_status:
            queryset = queryset.filter(status=batch_status)
        return queryset

    @extend_schema(request=BatchCreateSerializer, responses={201: BatchSerializer})
    def create(self, request, *args, **kwargs):
        """Plan a new batch."""
        serializer = BatchCreateSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        try:
            batch = create_batch(created_by=request.user, **serializer.validated_data)
        except RecipeNotFoundError as e:
            return Response({'error': str(e)}, status=status.HTTP_400_BAD_REQUEST)

        return Response(BatchSerializer(batch).data, status=status.HTTP_201_CREATED)

    @extend_schema(request=StartBrewingSerializer, responses={200: BatchSerializer})
    @action(detail=True, methods=['post'])
    def start_brewing(self, request, pk=None):
        """Move a planned batch to brewing."""
        serializer = StartBrewingSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        try:
            batch = start_brewing(batch_id=pk, **serializer.validated_data)
        except BatchNotFoundError as e:
            return Response({'error': str(e)}, status=status.HTTP_404_NOT_FOUND)
        except InvalidBatchStateError as e:
            return Response({'error': str(e)}, status=status.HTTP_409_CONFLICT)

        return Response(BatchSerializer(batch).data)

    @extend_schema(request=StartFermentationSerializer, responses={201: LotSerializer})
    @action(detail=True, methods=['post'])
    def start_fermentation(self, request, pk=None):
        """Transfer the batch to a fermenter and create its lot."""
        serializer = StartFermentationSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        try:
            batch, lot = start_fermentation(
                batch_id=pk,
                vessel_id=serializer.validated_data['vessel_id'],
                volume=serializer.validated_data.get('volume'),
                actor=request.user,
            )
        except (BatchNotFoundError, VesselNotFoundError) as e:
            return Response({'error': str(e)}, status=status.HTTP_404_NOT_FOUND)
        except (InvalidBatchStateError, VesselUnavailableError) as e:
            return Response({'error': str(e)}, status=status.HTTP_409_CONFLICT)

        return Response(
            {
                'batch': BatchSerializer(batch).data,
                'lot': LotSerializer(lot).data,
            },
            status=status.HTTP_201_CREATED,
        )

    @extend_schema(
        methods=['GET'],
        responses={200: GravityReadingSerializer(many=True)},
    )
    @extend_schema(
        methods=['POST'],
        request=GravityReadingCreateSerializer,
        responses={201: GravityReadingResultSerializer},
    )
    @action(detail=True, methods=['get', 'post'])
    def readings(self, request, pk=None):
        """List the batch's gravity readings or record a new one."""
        if request.method == 'GET':
            batch = self.get_object()
            readings = GravityReading.objects.filter(batch=batch).select_related('recorded_by')
            page = self.paginate_queryset(readings)
            if page is not None:
                return self.get_paginated_response(GravityReadingSerializer(page, many=True).data)
            return Response(GravityReadingSerializer(readings, many=True).data)

        serializer = GravityReadingCreateSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        try:
            reading, metrics = LotEngine.record_gravity_reading(
                batch_id=pk,
                actor=request.user,
                **serializer.validated_data,
            )
        except BatchNotFoundError as e:
            return Response({'error': str(e)}, status=status.HTTP_404_NOT_FOUND)
        except InvalidGravityReadingError as e:
            return Response({'error': str(e)}, status=status.HTTP_400_BAD_REQUEST)

        return Response(
            {
                'reading': GravityReadingSerializer(reading).data,
                'metrics': BatchMetricsSerializer(metrics).data,
            },
            status=status.HTTP_201_CREATED,
        )

    @extend_schema(responses={200: BatchMetricsSerializer})
    @action(detail=True, methods=['get'])
    def metrics(self, request, pk=None):
        """OG, current gravity, ABV and attenuation."""
        try:
            metrics = get_batch_metrics(batch_id=pk)
        except BatchNotFoundError as e:
            return Response({'error': str(e)}, status=status.HTTP_404_NOT_FOUND)
        return Response(BatchMetricsSerializer(metrics).data)


@extend_schema(
    parameters=[
        OpenApiParameter(name='value', type=float, required=True),
        OpenApiParameter(name='unit', type=str, enum=GravityUnit.values),
    ],
    description="Express a gravity value in SG, °Plato and °Brix.",
    tags=['production'],
)
@api_view(['GET'])
@permission_classes([IsAuthenticated])
def convert_gravity(request):
    """Convert a gravity value between SG, Plato and Brix."""
    serializer = GravityConvertQuerySerializer(data=request.query_params)
    serializer.is_valid(raise_exception=True)

    sg = to_sg(serializer.validated_data['value'], serializer.validated_data['unit'])
    return Response({
        'sg': str(sg),
        'plato': str(from_sg(sg, GravityUnit.PLATO)),
        'brix': str(from_sg(sg, GravityUnit.BRIX)),
    })
