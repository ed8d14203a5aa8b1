from __future__ import annotations

from drf_spectacular.openapi import AutoSchema


class FeatureAutoSchema(AutoSchema):
    MODULE_TAGS: list[tuple[str, str]] = [
        ('authentication.admin_', 'Admin'),
        ('authentication.', 'Authentication'),
        ('contracts.template_', 'Templates'),
        ('contracts.approval_', 'Approvals'),
        ('contracts.edge_', 'Edge Functions'),
        ('contracts.figma_', 'Figma Export'),
        ('contracts.admin_', 'Admin'),
        ('contracts.', 'Contracts'),
        ('notifications.', 'Notifications'),
    ]

    PATH_TAGS: list[tuple[str, str]] = [
        ('/api/v1/admin/', 'Admin'),
        ('/api/auth/', 'Authentication'),
        ('/api/edge-functions/', 'Edge Functions'),
        ('/api/figma/', 'Figma Export'),
    ]

    def get_tags(self) -> list[str]:  # type: ignore[override]
        # 1) Prefer path-based tagging when obvious.
        path = (self.path or '').strip()
        for prefix, tag in self.PATH_TAGS:
            if path.startswith(prefix):
                return [tag]

        # 2) Fall back to module-based tagging.
        module = getattr(self.view, '__module__', '') or ''
        for prefix, tag in self.MODULE_TAGS:
            if module.startswith(prefix):
                return [tag]

        return super().get_tags()
