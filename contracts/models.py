"""
Contract, template and approval models with tenant isolation
"""
from django.db import models
from django.utils import timezone
import uuid


TEMPLATE_CATEGORY_CHOICES = [
    ('general', 'General'),
    ('employment', 'Employment'),
    ('services', 'Services'),
    ('consulting', 'Consulting'),
    ('legal', 'Legal'),
    ('financial', 'Financial'),
    ('real-estate', 'Real Estate'),
    ('other', 'Other'),
]

# Fields copied into every TemplateVersion snapshot and compared by `compare`.
TEMPLATE_VERSIONED_FIELDS = [
    'name',
    'description',
    'contract_type',
    'responsibilities',
    'default_duration',
    'category',
]


class ContractTemplate(models.Model):
    """
    Reusable contract template with an admin approval workflow
    """
    APPROVAL_STATUS_CHOICES = [
        ('draft', 'Draft'),
        ('pending_approval', 'Pending Approval'),
        ('approved', 'Approved'),
        ('rejected', 'Rejected'),
    ]

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    tenant_id = models.UUIDField(db_index=True, help_text='Tenant ID for RLS')
    name = models.CharField(max_length=255, help_text='Template name')
    description = models.TextField(blank=True, default='', help_text='Template description')
    contract_type = models.CharField(max_length=100, blank=True, default='', help_text='Type of contract')
    responsibilities = models.TextField(blank=True, default='', help_text='Default promoter responsibilities')
    default_duration = models.PositiveIntegerField(default=30, help_text='Default contract duration in days')
    category = models.CharField(max_length=20, choices=TEMPLATE_CATEGORY_CHOICES, default='general')
    approval_status = models.CharField(
        max_length=20,
        choices=APPROVAL_STATUS_CHOICES,
        default='draft',
        db_index=True,
    )
    approval_requested_at = models.DateTimeField(null=True, blank=True)
    approval_requested_by = models.UUIDField(null=True, blank=True)
    approved_at = models.DateTimeField(null=True, blank=True)
    approved_by = models.UUIDField(null=True, blank=True)
    rejected_at = models.DateTimeField(null=True, blank=True)
    rejected_by = models.UUIDField(null=True, blank=True)
    approval_comments = models.TextField(blank=True, default='')
    is_published = models.BooleanField(default=False, help_text='Visible to every tenant user')
    version = models.IntegerField(default=1, help_text='Template version number')
    last_modified_by = models.UUIDField(null=True, blank=True)
    predefined_key = models.CharField(
        max_length=64, blank=True, default='',
        help_text='Key of the built-in template this row was seeded from',
    )
    created_by = models.UUIDField(help_text='User ID who created the template')
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = 'contract_templates'
        ordering = ['-created_at']
        indexes = [
            models.Index(fields=['tenant_id', 'approval_status'], name='tpl_tenant_approval_idx'),
            models.Index(fields=['tenant_id', 'category'], name='tpl_tenant_category_idx'),
        ]

    def __str__(self):
        return f"{self.name} v{self.version} ({self.approval_status})"

    def snapshot(self):
        return {field: getattr(self, field) for field in TEMPLATE_VERSIONED_FIELDS}


class TemplateVersion(models.Model):
    """
    Immutable snapshot of a template's editable fields
    """
    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    template = models.ForeignKey(
        ContractTemplate,
        on_delete=models.CASCADE,
        related_name='versions',
    )
    version = models.IntegerField(help_text='Template version captured by this snapshot')
    name = models.CharField(max_length=255)
    description = models.TextField(blank=True, default='')
    contract_type = models.CharField(max_length=100, blank=True, default='')
    responsibilities = models.TextField(blank=True, default='')
    default_duration = models.PositiveIntegerField(default=30)
    category = models.CharField(max_length=20, choices=TEMPLATE_CATEGORY_CHOICES, default='general')
    change_notes = models.TextField(blank=True, default='')
    created_by = models.UUIDField(null=True, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        db_table = 'contract_template_versions'
        ordering = ['-version', '-created_at']
        indexes = [
            models.Index(fields=['template', 'version'], name='tplver_template_version_idx'),
        ]

    def __str__(self):
        return f"{self.name} v{self.version}"

    def snapshot(self):
        return {field: getattr(self, field) for field in TEMPLATE_VERSIONED_FIELDS}


class Contract(models.Model):
    """
    Bilingual promotion contract with tenant isolation for RLS
    """
    STATUS_CHOICES = [
        ('draft', 'Draft'),
        ('pending', 'Pending Approval'),
        ('approved', 'Approved'),
        ('rejected', 'Rejected'),
        ('active', 'Active'),
    ]
    LANGUAGE_CHOICES = [
        ('en', 'English'),
        ('ar', 'Arabic'),
        ('both', 'English and Arabic'),
    ]

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    tenant_id = models.UUIDField(db_index=True, help_text='Tenant ID for RLS')
    created_by = models.UUIDField(db_index=True, help_text='User ID who owns the contract')
    template = models.ForeignKey(
        ContractTemplate,
        on_delete=models.SET_NULL,
        related_name='contracts',
        null=True,
        blank=True,
        help_text='Source template used to generate this contract'
    )
    reference_number = models.CharField(max_length=64, blank=True, default='', db_index=True)
    contract_type = models.CharField(max_length=100, blank=True, default='')

    first_party_name_en = models.CharField(max_length=255, blank=True, default='')
    first_party_name_ar = models.CharField(max_length=255, blank=True, default='')
    first_party_cr = models.CharField(max_length=100, blank=True, default='', help_text='Commercial registration')
    second_party_name_en = models.CharField(max_length=255, blank=True, default='')
    second_party_name_ar = models.CharField(max_length=255, blank=True, default='')
    second_party_cr = models.CharField(max_length=100, blank=True, default='', help_text='Commercial registration')
    promoter_name_en = models.CharField(max_length=255, blank=True, default='')
    promoter_name_ar = models.CharField(max_length=255, blank=True, default='')
    promoter_id = models.CharField(max_length=100, blank=True, default='')
    product_name_en = models.CharField(max_length=255, blank=True, default='')
    product_name_ar = models.CharField(max_length=255, blank=True, default='')
    location_name_en = models.CharField(max_length=255, blank=True, default='')
    location_name_ar = models.CharField(max_length=255, blank=True, default='')
    start_date = models.DateField(null=True, blank=True)
    end_date = models.DateField(null=True, blank=True)
    responsibilities = models.TextField(blank=True, default='')

    signature_url = models.URLField(max_length=1000, blank=True, default='')
    stamp_url = models.URLField(max_length=1000, blank=True, default='')
    letterhead_image_url = models.URLField(max_length=1000, blank=True, default='')
    id_photo_url = models.URLField(max_length=1000, blank=True, default='')
    passport_photo_url = models.URLField(max_length=1000, blank=True, default='')

    language = models.CharField(max_length=4, choices=LANGUAGE_CHOICES, default='both')
    status = models.CharField(
        max_length=20,
        choices=STATUS_CHOICES,
        default='draft',
        help_text='Contract workflow status'
    )

    contract_data = models.JSONField(default=dict, blank=True, help_text='Raw creation input')
    contract_layout = models.JSONField(default=dict, blank=True, help_text='Generated page layout')
    contract_template = models.JSONField(null=True, blank=True, help_text='Filled v2 template document')
    json_layout = models.JSONField(null=True, blank=True, help_text='Figma plugin export')

    pdf_url = models.CharField(max_length=1000, blank=True, default='')
    pdf_generated_at = models.DateTimeField(null=True, blank=True)
    approved_at = models.DateTimeField(null=True, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = 'contracts'
        ordering = ['-created_at']
        indexes = [
            models.Index(fields=['tenant_id', 'status'], name='ct_tenant_status_idx'),
            models.Index(fields=['tenant_id', 'created_by'], name='ct_tenant_owner_idx'),
        ]

    def __str__(self):
        return f"{self.reference_number or self.id} ({self.status})"

    def is_owned_by(self, user):
        return str(self.created_by) == str(getattr(user, 'user_id', ''))


class ApprovalToken(models.Model):
    """
    Single-use link that lets one contract party approve without an account
    """
    PARTY_ROLE_CHOICES = [
        ('first_party', 'First Party'),
        ('second_party', 'Second Party'),
        ('promoter', 'Promoter'),
    ]

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    token = models.UUIDField(default=uuid.uuid4, unique=True, editable=False)
    contract = models.ForeignKey(
        Contract,
        on_delete=models.CASCADE,
        related_name='approval_tokens',
    )
    party_role = models.CharField(max_length=20, choices=PARTY_ROLE_CHOICES)
    party_name = models.CharField(max_length=255, blank=True, default='')
    party_email = models.EmailField(blank=True, default='')
    expires_at = models.DateTimeField()
    used = models.BooleanField(default=False)
    used_at = models.DateTimeField(null=True, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        db_table = 'contract_approval_tokens'
        ordering = ['created_at']
        indexes = [
            models.Index(fields=['contract', 'used'], name='apt_contract_used_idx'),
            models.Index(fields=['expires_at'], name='apt_expires_idx'),
        ]

    def __str__(self):
        return f"{self.party_role} approval for {self.contract_id}"

    @property
    def is_expired(self):
        return self.expires_at <= timezone.now()


class ContractActivity(models.Model):
    """
    Audit trail of contract actions
    """
    ACTION_CHOICES = [
        ('created', 'Created'),
        ('updated', 'Updated'),
        ('deleted', 'Deleted'),
        ('approval_requested', 'Approval Requested'),
        ('party_approved', 'Party Approved'),
        ('approved', 'Approved'),
        ('pdf_generated', 'PDF Generated'),
        ('json_regenerated', 'JSON Layout Regenerated'),
    ]

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    contract = models.ForeignKey(
        Contract,
        on_delete=models.CASCADE,
        related_name='activities',
    )
    action = models.CharField(max_length=32, choices=ACTION_CHOICES)
    performed_by = models.UUIDField(null=True, blank=True, help_text='User ID, empty for link approvals')
    comment = models.TextField(blank=True, default='')
    metadata = models.JSONField(default=dict, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        db_table = 'contract_activities'
        ordering = ['-created_at']
        indexes = [
            models.Index(fields=['contract', 'created_at'], name='cta_contract_created_idx'),
        ]

    def __str__(self):
        return f"{self.contract_id} - {self.action} at {self.created_at}"
