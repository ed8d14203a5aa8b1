"""
Edge-function style endpoints

Bearer-authenticated JSON endpoints that any origin may call. Responses use
the `{success, data}` / `{success: false, error}` envelope and carry
wildcard CORS headers; preflight requests are answered here with 204.
"""
import csv
import io
import json
import logging
import uuid

from rest_framework import serializers, status
from rest_framework.response import Response
from rest_framework.views import APIView

from authentication.permissions import role_of
from authentication.roles import ROLE_ADMIN, ROLE_COMPANY, ROLE_PROMOTER, has_required_role

from .layout import normalize_layout
from .models import Contract

logger = logging.getLogger(__name__)

PREVIEW_ROWS = 10


class EdgeFunctionView(APIView):
    error_envelope = True
    unauthenticated_error = 'Unauthorized: Missing or invalid token'
    throttle_scope = 'edge'
    allowed_methods_header = 'GET, POST, OPTIONS'
    allowed_roles = ()

    def check_permissions(self, request):
        if request.method == 'OPTIONS':
            return
        super().check_permissions(request)

    def check_throttles(self, request):
        if request.method == 'OPTIONS':
            return
        super().check_throttles(request)

    def options(self, request, *args, **kwargs):
        return Response(status=status.HTTP_204_NO_CONTENT)

    def finalize_response(self, request, response, *args, **kwargs):
        response = super().finalize_response(request, response, *args, **kwargs)
        response['Access-Control-Allow-Origin'] = '*'
        response['Access-Control-Allow-Methods'] = self.allowed_methods_header
        response['Access-Control-Allow-Headers'] = 'Content-Type, Authorization'
        response['Access-Control-Max-Age'] = '86400'
        return response

    def success(self, data, status_code=status.HTTP_200_OK):
        return Response({'success': True, 'data': data}, status=status_code)

    def failure(self, message, status_code):
        return Response({'success': False, 'error': message}, status=status_code)

    def role_allowed(self, request) -> bool:
        return has_required_role(role_of(request.user), self.allowed_roles)


class ContractLayoutEdgeView(EdgeFunctionView):
    """
    GET|POST /api/edge-functions/get-contract-layout

    `contractId` comes from the query string or the JSON body.
    """
    allowed_roles = (ROLE_ADMIN, ROLE_COMPANY, ROLE_PROMOTER)

    def get(self, request):
        return self._layout(request, request.query_params.get('contractId'))

    def post(self, request):
        body = request.data if isinstance(request.data, dict) else {}
        return self._layout(request, body.get('contractId') or request.query_params.get('contractId'))

    def _layout(self, request, contract_id):
        if not self.role_allowed(request):
            return self.failure('Forbidden: Insufficient permissions', status.HTTP_403_FORBIDDEN)
        if not contract_id:
            return self.failure('Contract ID is required', status.HTTP_400_BAD_REQUEST)
        try:
            contract_uuid = uuid.UUID(str(contract_id))
        except ValueError:
            return self.failure('Invalid contract ID format', status.HTTP_400_BAD_REQUEST)

        user = request.user
        qs = Contract.objects.filter(tenant_id=user.tenant_id, id=contract_uuid)
        if role_of(user) == ROLE_COMPANY:
            qs = qs.filter(created_by=user.user_id)
        contract = qs.first()
        if contract is None:
            return self.failure('Contract not found', status.HTTP_404_NOT_FOUND)

        return self.success({
            'id': str(contract.id),
            'created_at': contract.created_at,
            'layout': normalize_layout(contract),
        })


class ImportMergePreviewSerializer(serializers.Serializer):
    fileType = serializers.ChoiceField(
        choices=['json', 'csv'],
        error_messages={'invalid_choice': "File type must be either 'json' or 'csv'"},
    )
    fileContent = serializers.CharField(
        min_length=1, trim_whitespace=False,
        error_messages={'blank': 'File content is required', 'min_length': 'File content is required'},
    )
    options = serializers.DictField(required=False)


def parse_import_rows(file_type, content):
    """Rows of a JSON (array or single object) or CSV-with-header file."""
    if file_type == 'json':
        parsed = json.loads(content)
        return parsed if isinstance(parsed, list) else [parsed]

    reader = csv.DictReader(io.StringIO(content))
    rows = []
    for record in reader:
        if not any((value or '').strip() for value in record.values() if isinstance(value, str)):
            continue
        rows.append({
            (key or '').strip(): (value or '').strip() if isinstance(value, str) else ''
            for key, value in record.items()
            if key is not None
        })
    return rows


def duplicate_key(item):
    if isinstance(item, dict):
        if item.get('id'):
            return f"id:{item['id']}"
        if item.get('email'):
            return f"email:{item['email']}"
    return f"row:{json.dumps(item, sort_keys=True, default=str)}"


def find_duplicates(rows):
    seen = set()
    duplicates = []
    for item in rows:
        key = duplicate_key(item)
        if key in seen:
            duplicates.append(item)
        else:
            seen.add(key)
    return duplicates


class ImportMergePreviewEdgeView(EdgeFunctionView):
    """POST /api/edge-functions/import-merge-preview"""
    allowed_roles = (ROLE_ADMIN, ROLE_COMPANY)
    allowed_methods_header = 'POST, OPTIONS'

    def post(self, request):
        if not self.role_allowed(request):
            return self.failure('Forbidden: Insufficient permissions', status.HTTP_403_FORBIDDEN)

        serializer = ImportMergePreviewSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data

        rows, duplicates, errors = [], [], []
        try:
            rows = parse_import_rows(data['fileType'], data['fileContent'])
            duplicates = find_duplicates(rows)
        except (ValueError, csv.Error) as e:
            logger.info("Import preview parse error for user %s: %s", request.user.user_id, e)
            errors.append(f"Error parsing file: {e}")

        return self.success({
            'preview': rows[:PREVIEW_ROWS],
            'totalItems': len(rows),
            'duplicates': duplicates,
            'errors': errors,
        })
