from django.urls import re_path

from .edge_views import ContractLayoutEdgeView, ImportMergePreviewEdgeView

# Trailing slash optional: edge clients call the bare function name.
urlpatterns = [
    re_path(r'^get-contract-layout/?$', ContractLayoutEdgeView.as_view(), name='edge-get-contract-layout'),
    re_path(r'^import-merge-preview/?$', ImportMergePreviewEdgeView.as_view(), name='edge-import-merge-preview'),
]
