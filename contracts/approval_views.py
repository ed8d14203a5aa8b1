"""
Approval-by-link endpoints

The token in the URL is the only credential: these views run without
authentication and are rate limited by the `approval_link` scope.
"""
import logging

from rest_framework import status
from rest_framework.permissions import AllowAny
from rest_framework.response import Response
from rest_framework.views import APIView

from .serializers import ApproveTokenSerializer
from .services import ApprovalError, ApprovalService

logger = logging.getLogger(__name__)


def _approval_response(contract):
    return Response({
        'success': True,
        'contract_id': str(contract.id),
        'contract_status': contract.status,
    })


class ApprovalTokenView(APIView):
    """GET /api/v1/approvals/{token}/"""
    permission_classes = [AllowAny]
    authentication_classes = []
    throttle_scope = 'approval_link'

    def get(self, request, token):
        try:
            approval = ApprovalService.get_valid_token(token)
        except ApprovalError as e:
            return Response({'error': e.message}, status=e.status_code)

        contract = approval.contract
        return Response({
            'contract': {
                'id': str(contract.id),
                'reference_number': contract.reference_number,
                'contract_type': contract.contract_type,
                'status': contract.status,
                'first_party_name_en': contract.first_party_name_en,
                'first_party_name_ar': contract.first_party_name_ar,
                'second_party_name_en': contract.second_party_name_en,
                'second_party_name_ar': contract.second_party_name_ar,
                'promoter_name_en': contract.promoter_name_en,
                'promoter_name_ar': contract.promoter_name_ar,
                'start_date': contract.start_date,
                'end_date': contract.end_date,
            },
            'party': {
                'role': approval.party_role,
                'name': approval.party_name,
                'email': approval.party_email,
            },
            'expires_at': approval.expires_at,
        })


class ApprovalTokenApproveView(APIView):
    """POST /api/v1/approvals/{token}/approve/"""
    permission_classes = [AllowAny]
    authentication_classes = []
    throttle_scope = 'approval_link'

    def post(self, request, token):
        try:
            contract = ApprovalService.redeem(token)
        except ApprovalError as e:
            return Response({'error': e.message}, status=e.status_code)
        return _approval_response(contract)


class ApproveTokenView(APIView):
    """
    POST /api/v1/approvals/approve/

    Signed-in variant of the link approval: {token}.
    """
    throttle_scope = 'approval_link'

    def post(self, request):
        serializer = ApproveTokenSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        try:
            contract = ApprovalService.redeem(serializer.validated_data['token'], user=request.user)
        except ApprovalError as e:
            return Response({'error': e.message}, status=e.status_code)
        logger.info("User %s approved contract %s by token", request.user.user_id, contract.id)
        return _approval_response(contract)
