"""
URL configuration for authentication app
"""
from django.urls import path
from rest_framework_simplejwt.views import TokenRefreshView
from .views import (
    TokenView,
    RegisterView,
    CurrentUserView,
    LogoutView,
    RouteAccessView,
)

urlpatterns = [
    path('login/', TokenView.as_view(), name='login'),
    path('register/', RegisterView.as_view(), name='register'),
    path('me/', CurrentUserView.as_view(), name='current_user'),
    path('logout/', LogoutView.as_view(), name='logout'),
    path('token/refresh/', TokenRefreshView.as_view(), name='token_refresh'),
    path('route-access/', RouteAccessView.as_view(), name='route_access'),
]
