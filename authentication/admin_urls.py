"""
Admin API URLs for users and roles
"""
from django.urls import path, include
from rest_framework.routers import SimpleRouter
from .admin_views import AdminUserViewSet, AssignRoleView, RolesView

router = SimpleRouter()
router.register(r'users', AdminUserViewSet, basename='admin-user')

urlpatterns = [
    path('', include(router.urls)),
    path('assign-role/', AssignRoleView.as_view(), name='admin-assign-role'),
    path('roles/', RolesView.as_view(), name='admin-roles'),
]
