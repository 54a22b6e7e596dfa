from django.urls import path, include
from rest_framework.routers import DefaultRouter
from . import views

app_name = 'production'

# Router for ViewSets
router = DefaultRouter()
router.register(r'recipes', views.RecipeViewSet, basename='recipe')
router.register(r'vessels', views.VesselViewSet, basename='vessel')
router.register(r'batches', views.BatchViewSet, basename='batch')

urlpatterns = [
    # Recipe / Vessel routes (read-only)
    # GET    /api/production/recipes/                 - List recipes
    # GET    /api/production/recipes/{id}/            - Recipe detail
    # GET    /api/production/vessels/                 - List vessels (?status=)
    # GET    /api/production/vessels/{id}/            - Vessel detail

    # Batch routes
    # GET    /api/production/batches/                 - List batches (?status=)
    # POST   /api/production/batches/                 - Plan batch
    # GET    /api/production/batches/{id}/            - Batch detail

    # Custom batch actions
    # POST   /api/production/batches/{id}/start_brewing/        - PLANNED -> BREWING
    # POST   /api/production/batches/{id}/start_fermentation/   - Transfer to fermenter, create lot
    # GET    /api/production/batches/{id}/readings/             - List gravity readings
    # POST   /api/production/batches/{id}/readings/             - Record gravity reading
    # GET    /api/production/batches/{id}/metrics/              - OG / ABV / attenuation

    # Additional endpoints
    path('gravity/convert/', views.convert_gravity, name='gravity-convert'),

    # Include router URLs
    path('', include(router.urls)),
]
