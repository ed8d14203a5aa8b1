from django.contrib import admin
from django.urls import path, include

from contract_portal.metrics import metrics_view

from drf_spectacular.views import SpectacularAPIView, SpectacularSwaggerView

urlpatterns = [
    path('admin/', admin.site.urls),
    path('metrics', metrics_view),

    # OpenAPI/Swagger
    path('api/schema/', SpectacularAPIView.as_view(), name='openapi-schema'),
    path('api/docs/', SpectacularSwaggerView.as_view(url_name='openapi-schema'), name='swagger-ui'),

    path('api/auth/', include('authentication.urls')),
    path('api/v1/admin/', include('authentication.admin_urls')),
    path('api/v1/admin/', include('contracts.urls_admin')),
    path('api/v1/', include('notifications.urls')),
    path('api/v1/', include('contracts.urls')),

    # Edge-function style endpoints (bearer auth + CORS) and the Figma plugin export
    path('api/edge-functions/', include('contracts.urls_edge')),
    path('api/figma/', include('contracts.urls_figma')),
]
