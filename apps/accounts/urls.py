from django.urls import path
from rest_framework_simplejwt.views import TokenObtainPairView
from . import views

app_name = 'users'

urlpatterns = [
    # Authentication
    # POST /api/auth/token/          - Obtain access/refresh pair (email + password)
    # POST /api/auth/token/refresh/  - Registered in config/urls.py
    path('token/', TokenObtainPairView.as_view(), name='token'),

    # User profile
    path('me/', views.get_current_user, name='current-user'),
]
