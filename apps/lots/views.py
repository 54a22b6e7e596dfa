from django.db.models import Q
from rest_framework import mixins, status, viewsets
from rest_framework.decorators import action
from rest_framework.pagination import PageNumberPagination
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response
from drf_spectacular.utils import extend_schema

from .models import Lot, LotTimelineEntry, PackagingRun
from .serializers import (
    AdvancePhaseSerializer,
    BlendBatchesSerializer,
    BlendResultSerializer,
    CompleteLotSerializer,
    LotLineageSerializer,
    LotSerializer,
    LotStatusSerializer,
    LotTimelineEntrySerializer,
    PackagingRunCreateSerializer,
    PackagingRunResultSerializer,
    PackagingRunSerializer,
    SplitBatchSerializer,
    SplitResultSerializer,
)

from apps.lots.services import (
    LotEngine,
    # Exceptions
    LotEngineError,
    LotNotFoundError,
    InvalidTransitionError,
    BlendMembershipConflictError,
    LotCompletedError,
    ConcurrentModificationError,
    SplitVolumeMismatchError,
    InvalidAllocationError,
    SourceNotActiveError,
    UnsupportedLotOperationError,
    BlendSourceUnavailableError,
    VolumeExceededError,
    InvalidPackagingRunError,
    IdempotencyKeyReuseError,
)
from apps.production.services import (
    ProductionServiceError,
    BatchNotFoundError,
    VesselNotFoundError,
    VesselUnavailableError,
)


ERROR_STATUS = {
    LotNotFoundError: status.HTTP_404_NOT_FOUND,
    BatchNotFoundError: status.HTTP_404_NOT_FOUND,
    VesselNotFoundError: status.HTTP_404_NOT_FOUND,
    InvalidTransitionError: status.HTTP_409_CONFLICT,
    BlendMembershipConflictError: status.HTTP_409_CONFLICT,
    LotCompletedError: status.HTTP_409_CONFLICT,
    ConcurrentModificationError: status.HTTP_409_CONFLICT,
    SourceNotActiveError: status.HTTP_409_CONFLICT,
    UnsupportedLotOperationError: status.HTTP_409_CONFLICT,
    BlendSourceUnavailableError: status.HTTP_409_CONFLICT,
    VolumeExceededError: status.HTTP_409_CONFLICT,
    IdempotencyKeyReuseError: status.HTTP_409_CONFLICT,
    VesselUnavailableError: status.HTTP_409_CONFLICT,
    SplitVolumeMismatchError: status.HTTP_400_BAD_REQUEST,
    InvalidAllocationError: status.HTTP_400_BAD_REQUEST,
    InvalidPackagingRunError: status.HTTP_400_BAD_REQUEST,
}


def error_response(error):
    """Translate a service error into ``{"error", "code", ...details}``."""
    body = {'error': str(error)}
    if isinstance(error, LotEngineError):
        body['code'] = error.code
        body.update(error.details)
    return Response(
        body,
        status=ERROR_STATUS.get(type(error), status.HTTP_400_BAD_REQUEST),
    )


class LotPagination(PageNumberPagination):
    """Custom pagination for lots."""
    page_size = 20
    page_size_query_param = 'page_size'
    max_page_size = 100


class LotViewSet(mixins.ListModelMixin,
                 mixins.RetrieveModelMixin,
                 viewsets.GenericViewSet):
    """
    ViewSet for lots.

    All business logic is handled by LotEngine.
    Views are thin HTTP handlers only.

    list: Get all lots (filter with ?status=ACTIVE&phase=BRIGHT)
    retrieve: Get a specific lot
    """

    queryset = Lot.objects.select_related('vessel').prefetch_related('batch_links__batch')
    serializer_class = LotSerializer
    permission_classes = [IsAuthenticated]
    pagination_class = LotPagination

    def get_queryset(self):
        queryset = super().get_queryset()
        params = self.request.query_params
        if params.get('status'):
            queryset = queryset.filter(status=params['status'])
        if params.get('phase'):
            queryset = queryset.filter(phase=params['phase'])
        if params.get('batch'):
            queryset = queryset.filter(batch_links__batch_id=params['batch'])
        return queryset

    @extend_schema(responses={200: LotStatusSerializer})
    @action(detail=True, methods=['get'], url_path='status', url_name='status')
    def lot_status(self, request, pk=None):
        """Current phase and total / packaged / remaining volume."""
        try:
            lot_status = LotEngine.get_lot_status(lot_id=pk)
        except LotNotFoundError as e:
            return error_response(e)
        return Response(LotStatusSerializer(lot_status).data)

    @extend_schema(responses={200: LotLineageSerializer})
    @action(detail=True, methods=['get'])
    def lineage(self, request, pk=None):
        """Split parent/children and blend sources/result."""
        try:
            lineage = LotEngine.get_lot_lineage(lot_id=pk)
        except LotNotFoundError as e:
            return error_response(e)
        return Response(LotLineageSerializer(lineage).data)

    @extend_schema(responses={200: LotTimelineEntrySerializer(many=True)})
    @action(detail=True, methods=['get'])
    def timeline(self, request, pk=None):
        lot = self.get_object()
        entries = LotTimelineEntry.objects.filter(lot=lot).select_related('actor')
        return Response(LotTimelineEntrySerializer(entries, many=True).data)

    @extend_schema(request=AdvancePhaseSerializer, responses={200: LotSerializer})
    @action(detail=True, methods=['post'])
    def advance_phase(self, request, pk=None):
        """Move the lot to its next phase."""
        serializer = AdvancePhaseSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        try:
            lot = LotEngine.advance_lot_phase(
                lot_id=pk,
                actor=request.user,
                **serializer.validated_data,
            )
        except LotEngineError as e:
            return error_response(e)

        return Response(LotSerializer(lot).data)

    @extend_schema(request=CompleteLotSerializer, responses={200: LotSerializer})
    @action(detail=True, methods=['post'])
    def complete(self, request, pk=None):
        """Complete a lot that is in PACKAGING and free its vessel."""
        serializer = CompleteLotSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        try:
            lot = LotEngine.complete_lot(
                lot_id=pk,
                actor=request.user,
                **serializer.validated_data,
            )
        except LotEngineError as e:
            return error_response(e)

        return Response(LotSerializer(lot).data)

    @extend_schema(
        methods=['GET'],
        responses={200: PackagingRunSerializer(many=True)},
    )
    @extend_schema(
        methods=['POST'],
        request=PackagingRunCreateSerializer,
        responses={201: PackagingRunResultSerializer},
    )
    @action(detail=True, methods=['get', 'post'])
    def packaging_runs(self, request, pk=None):
        """
        List the lot's packaging runs or record a new one.

        A run bigger than what is left returns 409 with
        ``requires_confirmation``; resend with ``confirm_overshoot``.
        """
        if request.method == 'GET':
            lot = self.get_object()
            runs = (
                PackagingRun.objects
                .filter(Q(lot=lot) | Q(lot__isnull=True, lot_code=lot.lot_code))
                .select_related('performed_by')
            )
            return Response(PackagingRunSerializer(runs, many=True).data)

        serializer = PackagingRunCreateSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        try:
            run, summary = LotEngine.record_packaging_run(
                lot_id=pk,
                actor=request.user,
                **serializer.validated_data,
            )
        except LotEngineError as e:
            return error_response(e)

        return Response(
            PackagingRunResultSerializer({'run': run, 'summary': summary}).data,
            status=status.HTTP_201_CREATED,
        )

    @extend_schema(request=SplitBatchSerializer, responses={201: SplitResultSerializer})
    @action(detail=False, methods=['post'])
    def split(self, request):
        """Split a batch's active lot into child lots."""
        serializer = SplitBatchSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        try:
            children, unassigned = LotEngine.split_batch(
                actor=request.user,
                **serializer.validated_data,
            )
        except (LotEngineError, ProductionServiceError) as e:
            return error_response(e)

        return Response(
            SplitResultSerializer({'children': children, 'unassigned_volume': unassigned}).data,
            status=status.HTTP_201_CREATED,
        )

    @extend_schema(request=BlendBatchesSerializer, responses={201: BlendResultSerializer})
    @action(detail=False, methods=['post'])
    def blend(self, request):
        """Blend the active lots of several batches into one vessel."""
        serializer = BlendBatchesSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        try:
            blend, warnings = LotEngine.blend_batches(
                actor=request.user,
                **serializer.validated_data,
            )
        except (LotEngineError, ProductionServiceError) as e:
            return error_response(e)

        return Response(
            BlendResultSerializer({'lot': blend, 'warnings': warnings}).data,
            status=status.HTTP_201_CREATED,
        )
