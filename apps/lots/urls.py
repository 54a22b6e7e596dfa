from django.urls import path, include
from rest_framework.routers import DefaultRouter
from . import views

app_name = 'lots'

# Router for ViewSets
router = DefaultRouter()
router.register(r'', views.LotViewSet, basename='lot')

urlpatterns = [
    # Lot ViewSet routes
    # GET    /api/lots/                - List lots (?status=&phase=&batch=)
    # GET    /api/lots/{id}/           - Get lot details

    # Custom lot actions
    # GET    /api/lots/{id}/status/           - Phase and volume reconciliation
    # GET    /api/lots/{id}/lineage/          - Split / blend lineage
    # GET    /api/lots/{id}/timeline/         - Audit timeline
    # POST   /api/lots/{id}/advance_phase/    - Move to next phase
    # POST   /api/lots/{id}/complete/         - Complete a packaged lot
    # GET    /api/lots/{id}/packaging_runs/   - List packaging runs
    # POST   /api/lots/{id}/packaging_runs/   - Record packaging run

    # Split / blend
    # POST   /api/lots/split/          - Split a batch's lot across vessels
    # POST   /api/lots/blend/          - Blend batches into one vessel

    # Include router URLs
    path('', include(router.urls)),
]
