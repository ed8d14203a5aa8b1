from django.urls import path

from .figma_views import FigmaContractDetailView, FigmaContractListView, FigmaContractRegenerateView

urlpatterns = [
    path('contracts/', FigmaContractListView.as_view(), name='figma-contracts'),
    path('contracts/regenerate/', FigmaContractRegenerateView.as_view(), name='figma-contracts-regenerate'),
    path('contracts/<uuid:contract_id>/', FigmaContractDetailView.as_view(), name='figma-contract-detail'),
]
