"""
Figma plugin export endpoints (X-API-Key authentication)
"""
import hmac
import logging
import uuid

from django.conf import settings
from django.db.models import Q
from rest_framework import status
from rest_framework.authentication import BaseAuthentication
from rest_framework.exceptions import AuthenticationFailed
from rest_framework.response import Response
from rest_framework.views import APIView

from .figma import generate_figma_contract_json
from .models import Contract
from .services import log_activity

logger = logging.getLogger(__name__)

INVALID_API_KEY = 'Unauthorized: Invalid API key'


class FigmaPluginClient:
    """Request principal for calls made with the plugin API key."""
    pk = 'figma-plugin'
    is_authenticated = True
    is_anonymous = False
    role = None
    tenant_id = None

    def __str__(self):
        return self.pk


class FigmaApiKeyAuthentication(BaseAuthentication):
    def authenticate(self, request):
        expected = getattr(settings, 'FIGMA_PLUGIN_API_KEY', '') or ''
        provided = request.META.get('HTTP_X_API_KEY', '') or ''
        if not expected or not provided or not hmac.compare_digest(provided, expected):
            raise AuthenticationFailed(INVALID_API_KEY)
        return FigmaPluginClient(), None

    def authenticate_header(self, request):
        return 'X-API-Key'


class FigmaView(APIView):
    authentication_classes = [FigmaApiKeyAuthentication]
    error_envelope = True
    unauthenticated_error = INVALID_API_KEY
    throttle_scope = 'figma'

    def success(self, data):
        return Response({'success': True, 'data': data})

    def failure(self, message, status_code):
        return Response({'success': False, 'error': message}, status=status_code)


def _int_param(value, default, minimum=0, maximum=None):
    try:
        number = int(value)
    except (TypeError, ValueError):
        return default
    number = max(minimum, number)
    return min(number, maximum) if maximum is not None else number


def _name(contract, field):
    metadata = (contract.contract_layout or {}).get('metadata') or {}
    value = metadata.get(field.replace('_en', '')) or {}
    return getattr(contract, field) or (value.get('en') if isinstance(value, dict) else '') or 'Unknown'


class FigmaContractListView(FigmaView):
    """GET /api/figma/contracts/?limit=&offset=&search="""

    def get(self, request):
        limit = _int_param(request.query_params.get('limit'), 10, minimum=1, maximum=100)
        offset = _int_param(request.query_params.get('offset'), 0)
        search = (request.query_params.get('search') or '').strip()

        qs = Contract.objects.only(
            'id', 'created_at', 'first_party_name_en', 'second_party_name_en',
            'promoter_name_en', 'contract_layout', 'json_layout',
        ).order_by('-created_at')
        if search:
            qs = qs.filter(
                Q(first_party_name_en__icontains=search)
                | Q(second_party_name_en__icontains=search)
                | Q(promoter_name_en__icontains=search)
            )

        total = qs.count()
        contracts = [
            {
                'id': str(contract.id),
                'created_at': contract.created_at,
                'first_party': _name(contract, 'first_party_name_en'),
                'second_party': _name(contract, 'second_party_name_en'),
                'promoter': _name(contract, 'promoter_name_en'),
                'has_json_layout': bool(contract.json_layout),
            }
            for contract in qs[offset:offset + limit]
        ]
        return self.success({'contracts': contracts, 'total': total, 'limit': limit, 'offset': offset})


class FigmaContractDetailView(FigmaView):
    """GET /api/figma/contracts/{id}/"""

    def get(self, request, contract_id):
        contract = Contract.objects.filter(id=contract_id).only('id', 'created_at', 'json_layout').first()
        if contract is None:
            return self.failure('Contract not found', status.HTTP_404_NOT_FOUND)
        if not contract.json_layout:
            return self.failure(
                'Contract JSON layout not available for this contract. '
                'Regenerate it through /api/figma/contracts/regenerate/.',
                status.HTTP_404_NOT_FOUND,
            )
        return self.success({
            'id': str(contract.id),
            'created_at': contract.created_at,
            'layout': contract.json_layout,
        })


class FigmaContractRegenerateView(FigmaView):
    """POST /api/figma/contracts/regenerate/ {contractId}"""

    def post(self, request):
        body = request.data if isinstance(request.data, dict) else {}
        contract_id = body.get('contractId')
        if not contract_id:
            return self.failure('Contract ID is required', status.HTTP_400_BAD_REQUEST)
        try:
            contract_uuid = uuid.UUID(str(contract_id))
        except ValueError:
            return self.failure('Invalid contract ID format', status.HTTP_400_BAD_REQUEST)

        contract = Contract.objects.filter(id=contract_uuid).first()
        if contract is None:
            return self.failure('Contract not found', status.HTTP_404_NOT_FOUND)

        contract.json_layout = generate_figma_contract_json(contract)
        contract.save(update_fields=['json_layout', 'updated_at'])
        log_activity(contract, 'json_regenerated')
        logger.info("Regenerated Figma JSON layout for contract %s", contract.id)

        return self.success({
            'id': str(contract.id),
            'message': 'Contract JSON layout regenerated successfully',
            'layout': contract.json_layout,
        })
