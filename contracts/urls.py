"""
URL configuration for the contracts app
"""
from django.urls import path, include
from rest_framework.routers import SimpleRouter

from . import views
from .approval_views import ApprovalTokenApproveView, ApprovalTokenView, ApproveTokenView
from .template_views import ContractTemplateViewSet

router = SimpleRouter()
router.register(r'contract-templates', ContractTemplateViewSet, basename='contract-template')
router.register(r'contracts', views.ContractViewSet, basename='contract')

urlpatterns = [
    # Approval links (token is the credential) and the signed-in variant
    path('approvals/approve/', ApproveTokenView.as_view(), name='approval-approve'),
    path('approvals/<str:token>/', ApprovalTokenView.as_view(), name='approval-token'),
    path('approvals/<str:token>/approve/', ApprovalTokenApproveView.as_view(), name='approval-token-approve'),

    path('', include(router.urls)),
]
