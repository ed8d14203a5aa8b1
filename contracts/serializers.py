from rest_framework import serializers

from .generator import CONTRACT_TEMPLATES
from .models import (
    ApprovalToken,
    Contract,
    ContractActivity,
    ContractTemplate,
    TemplateVersion,
)


class ContractTemplateSerializer(serializers.ModelSerializer):
    change_notes = serializers.CharField(write_only=True, required=False, allow_blank=True)

    class Meta:
        model = ContractTemplate
        fields = [
            'id',
            'tenant_id',
            'name',
            'description',
            'contract_type',
            'responsibilities',
            'default_duration',
            'category',
            'approval_status',
            'approval_requested_at',
            'approval_requested_by',
            'approved_at',
            'approved_by',
            'rejected_at',
            'rejected_by',
            'approval_comments',
            'is_published',
            'version',
            'last_modified_by',
            'predefined_key',
            'created_by',
            'created_at',
            'updated_at',
            'change_notes',
        ]
        read_only_fields = [
            'id',
            'tenant_id',
            'approval_status',
            'approval_requested_at',
            'approval_requested_by',
            'approved_at',
            'approved_by',
            'rejected_at',
            'rejected_by',
            'approval_comments',
            'is_published',
            'version',
            'last_modified_by',
            'predefined_key',
            'created_by',
            'created_at',
            'updated_at',
        ]

    def validate_default_duration(self, value):
        if value < 1:
            raise serializers.ValidationError('Duration must be at least 1 day')
        return value


class TemplateImportSerializer(ContractTemplateSerializer):
    """Template shared as JSON; server-managed fields in the payload are ignored"""

    class Meta(ContractTemplateSerializer.Meta):
        extra_kwargs = {
            'contract_type': {'required': True, 'allow_blank': False},
            'responsibilities': {'required': True, 'allow_blank': False},
        }


class TemplateVersionSerializer(serializers.ModelSerializer):
    class Meta:
        model = TemplateVersion
        fields = [
            'id',
            'template',
            'version',
            'name',
            'description',
            'contract_type',
            'responsibilities',
            'default_duration',
            'category',
            'change_notes',
            'created_by',
            'created_at',
        ]
        read_only_fields = fields


class TemplateDecisionSerializer(serializers.Serializer):
    comments = serializers.CharField(required=False, allow_blank=True, default='')


class TemplateRestoreSerializer(serializers.Serializer):
    version_id = serializers.UUIDField()


class ContractWriteSerializer(serializers.ModelSerializer):
    """
    Create/update input. Names, CRs and the promoter id are required on
    create; Arabic names and image URLs are optional.
    """
    first_party_name_en = serializers.CharField(min_length=2, max_length=255)
    second_party_name_en = serializers.CharField(min_length=2, max_length=255)
    promoter_name_en = serializers.CharField(min_length=2, max_length=255)
    product_name_en = serializers.CharField(min_length=2, max_length=255)
    location_name_en = serializers.CharField(min_length=2, max_length=255)
    first_party_cr = serializers.CharField(min_length=2, max_length=100)
    second_party_cr = serializers.CharField(min_length=2, max_length=100)
    promoter_id = serializers.CharField(max_length=100)
    start_date = serializers.DateField(input_formats=['iso-8601', '%d/%m/%Y'])
    end_date = serializers.DateField(input_formats=['iso-8601', '%d/%m/%Y'])
    template = serializers.PrimaryKeyRelatedField(
        queryset=ContractTemplate.objects.all(), required=False, allow_null=True,
    )
    template_type = serializers.ChoiceField(
        choices=sorted(CONTRACT_TEMPLATES), required=False, allow_blank=True, write_only=True,
    )

    class Meta:
        model = Contract
        fields = [
            'reference_number',
            'contract_type',
            'template',
            'template_type',
            'first_party_name_en',
            'first_party_name_ar',
            'first_party_cr',
            'second_party_name_en',
            'second_party_name_ar',
            'second_party_cr',
            'promoter_name_en',
            'promoter_name_ar',
            'promoter_id',
            'product_name_en',
            'product_name_ar',
            'location_name_en',
            'location_name_ar',
            'start_date',
            'end_date',
            'responsibilities',
            'signature_url',
            'stamp_url',
            'letterhead_image_url',
            'id_photo_url',
            'passport_photo_url',
            'language',
        ]

    def validate_template(self, value):
        request = self.context.get('request')
        if value is not None and request is not None and value.tenant_id != request.user.tenant_id:
            raise serializers.ValidationError('Template not found')
        return value

    def validate(self, attrs):
        start = attrs.get('start_date', getattr(self.instance, 'start_date', None))
        end = attrs.get('end_date', getattr(self.instance, 'end_date', None))
        if start and end and end < start:
            raise serializers.ValidationError({'end_date': 'End date must be on or after the start date'})
        return attrs


class ContractListSerializer(serializers.ModelSerializer):
    """Small payload for lists; stored JSON shapes are left out."""

    class Meta:
        model = Contract
        fields = [
            'id',
            'reference_number',
            'contract_type',
            'status',
            'language',
            'first_party_name_en',
            'first_party_name_ar',
            'second_party_name_en',
            'second_party_name_ar',
            'promoter_name_en',
            'promoter_name_ar',
            'start_date',
            'end_date',
            'pdf_url',
            'created_by',
            'created_at',
            'updated_at',
        ]
        read_only_fields = fields


class ContractDetailSerializer(serializers.ModelSerializer):
    class Meta:
        model = Contract
        exclude = ['json_layout']
        read_only_fields = [
            'id',
            'tenant_id',
            'created_by',
            'status',
            'contract_data',
            'contract_layout',
            'contract_template',
            'pdf_url',
            'pdf_generated_at',
            'approved_at',
            'created_at',
            'updated_at',
        ]


class ContractSearchFiltersSerializer(serializers.Serializer):
    status = serializers.ChoiceField(choices=Contract.STATUS_CHOICES, required=False)
    contract_type = serializers.CharField(required=False, allow_blank=True)
    start_date_from = serializers.DateField(required=False)
    end_date_to = serializers.DateField(required=False)


class ContractSearchSerializer(serializers.Serializer):
    query = serializers.CharField(required=False, allow_blank=True, default='')
    limit = serializers.IntegerField(required=False, default=10, min_value=1, max_value=100)
    offset = serializers.IntegerField(required=False, default=0, min_value=0)
    filters = ContractSearchFiltersSerializer(required=False)


class PdfOptionsSerializer(serializers.Serializer):
    language = serializers.ChoiceField(choices=['en', 'ar', 'both'], required=False)
    paper_size = serializers.ChoiceField(choices=['a4', 'letter'], required=False, default='a4')
    orientation = serializers.ChoiceField(choices=['portrait', 'landscape'], required=False, default='portrait')
    include_signatures = serializers.BooleanField(required=False, default=True)
    include_watermark = serializers.BooleanField(required=False, default=False)


class ApprovalPartySerializer(serializers.Serializer):
    party_role = serializers.ChoiceField(choices=ApprovalToken.PARTY_ROLE_CHOICES)
    party_name = serializers.CharField(max_length=255)
    party_email = serializers.EmailField(required=False, allow_blank=True, default='')


class ApprovalRequestSerializer(serializers.Serializer):
    parties = ApprovalPartySerializer(many=True, required=False)

    def validate_parties(self, value):
        roles = [party['party_role'] for party in value]
        if len(roles) != len(set(roles)):
            raise serializers.ValidationError('Each party role may appear once')
        return value


class ApproveTokenSerializer(serializers.Serializer):
    token = serializers.CharField(min_length=1)


class ApprovalTokenSerializer(serializers.ModelSerializer):
    class Meta:
        model = ApprovalToken
        fields = [
            'token',
            'party_role',
            'party_name',
            'party_email',
            'expires_at',
            'used',
            'used_at',
            'created_at',
        ]
        read_only_fields = fields


class ContractActivitySerializer(serializers.ModelSerializer):
    class Meta:
        model = ContractActivity
        fields = ['id', 'action', 'performed_by', 'comment', 'metadata', 'created_at']
        read_only_fields = fields
