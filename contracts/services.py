"""
Contract, template and approval services

Views stay thin: they validate input and check access, these classes do
the writes together with their side effects (activity rows,
notifications, emails).
"""
import logging
import uuid
from datetime import date, timedelta

from django.conf import settings
from django.db import transaction
from django.db.models import Q
from django.utils import timezone

from authentication.roles import ROLE_ADMIN
from notifications.email_service import EmailService
from notifications.services import NotificationService

from .generator import generate_contract_layout, generate_reference_number
from .models import (
    ApprovalToken,
    Contract,
    ContractActivity,
    ContractTemplate,
    TEMPLATE_VERSIONED_FIELDS,
    TemplateVersion,
)
from .template_library import PREDEFINED_TEMPLATES

logger = logging.getLogger(__name__)
audit_logger = logging.getLogger('audit')

# Changing any of these regenerates the stored layout.
LAYOUT_FIELDS = (
    'first_party_name_en', 'first_party_name_ar', 'first_party_cr',
    'second_party_name_en', 'second_party_name_ar', 'second_party_cr',
    'promoter_name_en', 'promoter_name_ar', 'promoter_id',
    'product_name_en', 'product_name_ar',
    'location_name_en', 'location_name_ar',
    'start_date', 'end_date', 'responsibilities',
    'signature_url', 'stamp_url', 'letterhead_image_url', 'id_photo_url', 'passport_photo_url',
)


class TemplateTransitionError(Exception):
    """Raised for an approval workflow step that the current status does not allow."""


def _json_ready(value):
    if isinstance(value, dict):
        return {key: _json_ready(item) for key, item in value.items()}
    if isinstance(value, date):
        return value.isoformat()
    if isinstance(value, ContractTemplate):
        return str(value.id)
    return value


def log_activity(contract, action, user=None, comment='', **metadata):
    return ContractActivity.objects.create(
        contract=contract,
        action=action,
        performed_by=getattr(user, 'user_id', None),
        comment=comment,
        metadata=metadata,
    )


class ContractService:

    @staticmethod
    def _apply_layout(contract, template_type=None):
        data = _json_ready({field: getattr(contract, field) for field in LAYOUT_FIELDS})
        data['reference_number'] = contract.reference_number
        layout = generate_contract_layout(data, template_type=template_type, contract_id=contract.id)
        contract.contract_layout = layout
        contract.contract_template = layout.get('contract_template')

    @staticmethod
    @transaction.atomic
    def create_contract(user, validated_data) -> Contract:
        data = dict(validated_data)
        template_type = data.pop('template_type', None) or None
        template = data.get('template')

        contract = Contract(
            tenant_id=user.tenant_id,
            created_by=user.user_id,
            contract_data=_json_ready(data),
            **data,
        )
        if not contract.reference_number:
            contract.reference_number = generate_reference_number()
        if template is not None and not contract.contract_type:
            contract.contract_type = template.contract_type
        if template is not None and not contract.responsibilities:
            contract.responsibilities = template.responsibilities
        if template_type:
            contract.contract_data['template_type'] = template_type

        ContractService._apply_layout(contract, template_type)
        contract.save()

        log_activity(contract, 'created', user, reference_number=contract.reference_number)
        NotificationService.notify(
            user.tenant_id,
            user.user_id,
            'contract-created',
            {'reference_number': contract.reference_number, 'contract_type': contract.contract_type},
            related_item_id=str(contract.id),
            related_item_type='contract',
        )
        audit_logger.info(
            "CONTRACT_CREATED|contract_id=%s|user_id=%s|tenant_id=%s",
            contract.id, user.user_id, user.tenant_id,
        )
        return contract

    @staticmethod
    @transaction.atomic
    def update_contract(contract, user, validated_data) -> Contract:
        validated_data = dict(validated_data)
        template_type = validated_data.pop('template_type', None) or None
        changed = [
            field for field, value in validated_data.items()
            if getattr(contract, field) != value
        ]
        for field, value in validated_data.items():
            setattr(contract, field, value)
        contract.contract_data = {
            **(contract.contract_data or {}),
            **_json_ready(validated_data),
        }
        if template_type:
            contract.contract_data['template_type'] = template_type

        layout_changed = any(field in LAYOUT_FIELDS for field in changed)
        if layout_changed or template_type:
            template_type = template_type or (contract.contract_data or {}).get('template_type')
            ContractService._apply_layout(contract, template_type)
        contract.save()

        log_activity(contract, 'updated', user, fields=sorted(changed), layout_regenerated=layout_changed)
        if str(contract.created_by) != str(user.user_id):
            NotificationService.notify(
                contract.tenant_id,
                contract.created_by,
                'contract-updated',
                {'reference_number': contract.reference_number, 'updated_by': user.email},
                related_item_id=str(contract.id),
                related_item_type='contract',
            )
        return contract

    @staticmethod
    def delete_contract(contract, user):
        audit_logger.info(
            "CONTRACT_DELETED|contract_id=%s|reference=%s|user_id=%s",
            contract.id, contract.reference_number, user.user_id,
        )
        contract.delete()

    @staticmethod
    def search(queryset, query='', filters=None):
        filters = filters or {}
        if query:
            queryset = queryset.filter(
                Q(first_party_name_en__icontains=query)
                | Q(first_party_name_ar__icontains=query)
                | Q(second_party_name_en__icontains=query)
                | Q(second_party_name_ar__icontains=query)
                | Q(promoter_name_en__icontains=query)
                | Q(reference_number__icontains=query)
            )
        if filters.get('status'):
            queryset = queryset.filter(status=filters['status'])
        if filters.get('contract_type'):
            queryset = queryset.filter(contract_type__iexact=filters['contract_type'])
        if filters.get('start_date_from'):
            queryset = queryset.filter(start_date__gte=filters['start_date_from'])
        if filters.get('end_date_to'):
            queryset = queryset.filter(end_date__lte=filters['end_date_to'])
        return queryset


class TemplateService:

    @staticmethod
    def snapshot(template, user=None, change_notes='') -> TemplateVersion:
        return TemplateVersion.objects.create(
            template=template,
            version=template.version,
            created_by=getattr(user, 'user_id', None),
            change_notes=change_notes or '',
            **template.snapshot(),
        )

    @staticmethod
    @transaction.atomic
    def update_template(template, user, validated_data, change_notes='') -> ContractTemplate:
        TemplateService.snapshot(template, user, change_notes)
        for field, value in validated_data.items():
            setattr(template, field, value)
        template.version += 1
        template.last_modified_by = user.user_id
        if template.approval_status == 'approved':
            template.approval_status = 'draft'
            template.is_published = False
        template.save()
        return template

    @staticmethod
    def submit(template, user) -> ContractTemplate:
        if template.approval_status not in ('draft', 'rejected'):
            raise TemplateTransitionError(
                f"Only draft or rejected templates can be submitted (current: {template.approval_status})"
            )
        template.approval_status = 'pending_approval'
        template.approval_requested_at = timezone.now()
        template.approval_requested_by = user.user_id
        template.save()
        NotificationService.notify_role(
            template.tenant_id,
            ROLE_ADMIN,
            'template-submitted',
            {'template_name': template.name, 'submitted_by': user.email},
            related_item_id=str(template.id),
            related_item_type='template',
        )
        return template

    @staticmethod
    def approve(template, user, comments='') -> ContractTemplate:
        if template.approval_status != 'pending_approval':
            raise TemplateTransitionError('Only templates pending approval can be approved')
        template.approval_status = 'approved'
        template.is_published = True
        template.approved_at = timezone.now()
        template.approved_by = user.user_id
        template.approval_comments = comments or ''
        template.save()
        NotificationService.notify(
            template.tenant_id,
            template.created_by,
            'template-approved',
            {'template_name': template.name, 'approved_by': user.email},
            related_item_id=str(template.id),
            related_item_type='template',
        )
        return template

    @staticmethod
    def reject(template, user, comments='') -> ContractTemplate:
        if template.approval_status != 'pending_approval':
            raise TemplateTransitionError('Only templates pending approval can be rejected')
        template.approval_status = 'rejected'
        template.is_published = False
        template.rejected_at = timezone.now()
        template.rejected_by = user.user_id
        template.approval_comments = comments or ''
        template.save()
        NotificationService.notify(
            template.tenant_id,
            template.created_by,
            'template-rejected',
            {'template_name': template.name, 'rejected_by': user.email, 'rejection_reason': comments},
            related_item_id=str(template.id),
            related_item_type='template',
        )
        return template

    @staticmethod
    @transaction.atomic
    def restore(template, version: TemplateVersion, user) -> ContractTemplate:
        TemplateService.snapshot(template, user, f"Before restoring version {version.version}")
        for field, value in version.snapshot().items():
            setattr(template, field, value)
        template.version += 1
        template.last_modified_by = user.user_id
        template.save()
        return template

    @staticmethod
    def compare(before: dict, after: dict) -> dict:
        return {
            field: {
                'before': before.get(field),
                'after': after.get(field),
                'changed': before.get(field) != after.get(field),
            }
            for field in TEMPLATE_VERSIONED_FIELDS
        }

    @staticmethod
    @transaction.atomic
    def seed_predefined(tenant_id, user_id) -> list:
        """Install the built-in templates into a tenant; existing keys are skipped."""
        existing = set(
            ContractTemplate.objects.filter(tenant_id=tenant_id)
            .exclude(predefined_key='')
            .values_list('predefined_key', flat=True)
        )
        created = []
        for predefined in PREDEFINED_TEMPLATES:
            if predefined['key'] in existing:
                continue
            fields = {k: v for k, v in predefined.items() if k != 'key'}
            created.append(ContractTemplate.objects.create(
                tenant_id=tenant_id,
                created_by=user_id,
                predefined_key=predefined['key'],
                approval_status='approved',
                is_published=True,
                approved_at=timezone.now(),
                approved_by=user_id,
                **fields,
            ))
        if created:
            logger.info("Seeded %d predefined templates for tenant %s", len(created), tenant_id)
        return created


class ApprovalError(Exception):
    """Token redemption failure carrying the HTTP status to answer with."""

    def __init__(self, message, status_code):
        super().__init__(message)
        self.message = message
        self.status_code = status_code


def approval_link(token) -> str:
    base = getattr(settings, 'FRONTEND_BASE_URL', '').rstrip('/')
    return f"{base}/approve/{token}"


class ApprovalService:

    @staticmethod
    def default_parties(contract):
        return [
            {'party_role': 'first_party', 'party_name': contract.first_party_name_en, 'party_email': ''},
            {'party_role': 'second_party', 'party_name': contract.second_party_name_en, 'party_email': ''},
        ]

    @staticmethod
    @transaction.atomic
    def request_approval(contract, user, parties=None) -> list:
        """
        Move the contract to `pending` and issue one token per party.
        Unused tokens from an earlier request are replaced.
        """
        parties = parties or ApprovalService.default_parties(contract)
        ttl = timedelta(hours=getattr(settings, 'APPROVAL_TOKEN_TTL_HOURS', 72))
        expires_at = timezone.now() + ttl

        contract.approval_tokens.filter(used=False).delete()
        tokens = [
            ApprovalToken.objects.create(
                contract=contract,
                party_role=party['party_role'],
                party_name=party.get('party_name') or '',
                party_email=party.get('party_email') or '',
                expires_at=expires_at,
            )
            for party in parties
        ]

        contract.status = 'pending'
        contract.save(update_fields=['status', 'updated_at'])
        log_activity(
            contract, 'approval_requested', user,
            parties=[t.party_role for t in tokens],
        )

        email_service = EmailService()
        for token in tokens:
            if token.party_email:
                email_service.send_approval_link_email(
                    token.party_email,
                    token.party_name,
                    contract.reference_number,
                    approval_link(token.token),
                    expires_at=token.expires_at,
                )
        return tokens

    @staticmethod
    def check_token(token: ApprovalToken):
        if token.used:
            raise ApprovalError('Already approved', 400)
        if token.is_expired:
            raise ApprovalError('Approval link expired', 410)

    @staticmethod
    def _lookup(queryset, token_value) -> ApprovalToken:
        try:
            return queryset.get(token=uuid.UUID(str(token_value)))
        except (ValueError, ApprovalToken.DoesNotExist):
            raise ApprovalError('Invalid approval link', 404)

    @staticmethod
    def get_valid_token(token_value) -> ApprovalToken:
        token = ApprovalService._lookup(ApprovalToken.objects.select_related('contract'), token_value)
        ApprovalService.check_token(token)
        return token

    @staticmethod
    def redeem(token_value, user=None) -> Contract:
        """
        Mark the token used; approve the contract once every token issued
        for it has been used.
        """
        with transaction.atomic():
            token = ApprovalService._lookup(ApprovalToken.objects.select_for_update(), token_value)
            ApprovalService.check_token(token)

            now = timezone.now()
            token.used = True
            token.used_at = now
            token.save(update_fields=['used', 'used_at'])

            contract = Contract.objects.select_for_update().get(pk=token.contract_id)
            log_activity(
                contract, 'party_approved', user,
                party_role=token.party_role, party_name=token.party_name,
            )
            if not contract.approval_tokens.filter(used=False).exists():
                contract.status = 'approved'
                contract.approved_at = now
                contract.save(update_fields=['status', 'approved_at', 'updated_at'])
                log_activity(contract, 'approved', user)

        NotificationService.notify(
            contract.tenant_id,
            contract.created_by,
            'general-success',
            {
                'title': 'Contract approval received',
                'message': f"{token.party_name or token.party_role} approved contract #{contract.reference_number}.",
            },
            category='approval',
            related_item_id=str(contract.id),
            related_item_type='contract',
        )
        audit_logger.info(
            "CONTRACT_PARTY_APPROVED|contract_id=%s|party_role=%s|status=%s",
            contract.id, token.party_role, contract.status,
        )
        return contract
