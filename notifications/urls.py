from django.urls import path, include
from rest_framework.routers import SimpleRouter

from .views import AdminNotificationView, NotificationViewSet

router = SimpleRouter()
router.register(r'notifications', NotificationViewSet, basename='notification')

urlpatterns = [
    path('admin/notifications/', AdminNotificationView.as_view(), name='admin-notifications'),
    path('', include(router.urls)),
]
