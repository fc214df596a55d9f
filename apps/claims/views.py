from rest_framework import status, serializers as drf_serializers
from rest_framework.decorators import api_view, permission_classes
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response
from rest_framework.pagination import PageNumberPagination
from django.http import HttpResponse
from django.shortcuts import get_object_or_404
from drf_spectacular.types import OpenApiTypes
from drf_spectacular.utils import extend_schema

from apps.accounts.services import client_meta
from apps.deals.services import (
    get_vendor_for_user,
    PinError,
    PinRateLimitedError,
    IncorrectPinError,
)
from .models import DealClaim, ClaimStatus
from .permissions import IsVendor, IsClaimOwner
from .serializers import (
    ClaimFilterSerializer,
    ClaimCodeInputSerializer,
    CompleteTransactionInputSerializer,
    PinVerificationInputSerializer,
    DealClaimSerializer,
    VendorClaimSerializer,
    ClaimVerificationSerializer,
    TransactionResultSerializer,
)
from .services import ClaimCodeService


# Response serializers for API documentation
class ErrorResponseSerializer(drf_serializers.Serializer):
    error = drf_serializers.CharField()


class RateLimitedResponseSerializer(ErrorResponseSerializer):
    next_attempt_at = drf_serializers.DateTimeField(allow_null=True)


class ClaimPagination(PageNumberPagination):
    """Custom pagination for claims."""
    page_size = 20
    page_size_query_param = 'page_size'
    max_page_size = 100


def _paginated(request, queryset, serializer_class):
    paginator = ClaimPagination()
    page = paginator.paginate_queryset(queryset, request)
    serializer = serializer_class(page, many=True)
    return paginator.get_paginated_response(serializer.data)


# =============================================================================
# Customer endpoints
# =============================================================================

@extend_schema(
    request=None,
    responses={201: DealClaimSerializer},
    description=(
        "Claim a deal. Returns a single-use claim code valid for 24 hours, "
        "a QR payload for the counter and, for online deals, the affiliate link."
    ),
    tags=['claims'],
)
@api_view(['POST'])
@permission_classes([IsAuthenticated])
def claim_deal(request, deal_id):
    """Issue a claim code for a deal."""
    ip_address, user_agent = client_meta(request)
    claim = ClaimCodeService.claim_deal(
        deal_id,
        request.user,
        ip_address=ip_address,
        user_agent=user_agent,
    )
    return Response(DealClaimSerializer(claim).data, status=status.HTTP_201_CREATED)


@extend_schema(
    request=PinVerificationInputSerializer,
    responses={
        200: DealClaimSerializer,
        400: ErrorResponseSerializer,
        429: RateLimitedResponseSerializer,
    },
    description=(
        "Redeem a deal in store with the vendor's verification PIN. "
        "The resulting claim is verified and ready for the vendor to complete."
    ),
    tags=['claims'],
)
@api_view(['POST'])
@permission_classes([IsAuthenticated])
def verify_pin(request, deal_id):
    """Verify a deal's PIN on behalf of the customer."""
    serializer = PinVerificationInputSerializer(data=request.data)
    serializer.is_valid(raise_exception=True)
    ip_address, user_agent = client_meta(request)

    try:
        claim = ClaimCodeService.verify_with_pin(
            deal_id,
            request.user,
            serializer.validated_data['pin'],
            ip_address=ip_address,
            user_agent=user_agent,
        )
    except PinRateLimitedError as e:
        return Response(
            {'error': str(e), 'next_attempt_at': e.next_attempt_at},
            status=status.HTTP_429_TOO_MANY_REQUESTS
        )
    except IncorrectPinError as e:
        return Response({'error': str(e)}, status=status.HTTP_400_BAD_REQUEST)
    except PinError as e:
        # Malformed or expired PIN
        return Response({'error': str(e)}, status=status.HTTP_400_BAD_REQUEST)

    return Response(DealClaimSerializer(claim).data)


@extend_schema(
    parameters=[ClaimFilterSerializer],
    responses={200: DealClaimSerializer(many=True)},
    description="Claims of the current user, newest first.",
    tags=['claims'],
)
@api_view(['GET'])
@permission_classes([IsAuthenticated])
def my_claims(request):
    """List the current user's claims."""
    filter_serializer = ClaimFilterSerializer(data=request.query_params)
    filter_serializer.is_valid(raise_exception=True)

    claims = ClaimCodeService.get_customer_claims(
        request.user,
        status=filter_serializer.validated_data.get('status'),
    )
    return _paginated(request, claims, DealClaimSerializer)


@extend_schema(
    responses={200: DealClaimSerializer},
    description="A single claim of the current user.",
    tags=['claims'],
)
@api_view(['GET'])
@permission_classes([IsAuthenticated])
def claim_detail(request, pk):
    """Retrieve one of the current user's claims."""
    claim = get_object_or_404(
        DealClaim.objects.select_related('deal', 'deal__vendor'),
        pk=pk
    )
    # Function views don't run object permissions automatically
    if not IsClaimOwner().has_object_permission(request, None, claim):
        return Response(
            {'error': 'You do not have permission to view this claim.'},
            status=status.HTTP_403_FORBIDDEN
        )
    return Response(DealClaimSerializer(claim).data)


@extend_schema(
    responses={(200, 'image/png'): OpenApiTypes.BINARY},
    description="QR code image of an open claim, to be scanned at the counter.",
    tags=['claims'],
)
@api_view(['GET'])
@permission_classes([IsAuthenticated])
def claim_qr_code(request, pk):
    """Render the QR code of one of the current user's claims."""
    claim = get_object_or_404(DealClaim, pk=pk)
    if not IsClaimOwner().has_object_permission(request, None, claim):
        return Response(
            {'error': 'You do not have permission to view this claim.'},
            status=status.HTTP_403_FORBIDDEN
        )
    if claim.status != ClaimStatus.CLAIMED:
        return Response(
            {'error': 'QR code is only available for claims awaiting verification.'},
            status=status.HTTP_400_BAD_REQUEST
        )
    return HttpResponse(
        ClaimCodeService.generate_qr_image(claim),
        content_type='image/png'
    )


# =============================================================================
# Vendor endpoints
# =============================================================================

@extend_schema(
    request=ClaimCodeInputSerializer,
    responses={200: ClaimVerificationSerializer},
    description="Verify a claim code presented by a customer at the counter.",
    tags=['vendors'],
)
@api_view(['POST'])
@permission_classes([IsAuthenticated, IsVendor])
def verify_claim_code(request):
    """Verify a claim code for the current vendor."""
    serializer = ClaimCodeInputSerializer(data=request.data)
    serializer.is_valid(raise_exception=True)
    ip_address, user_agent = client_meta(request)

    summary = ClaimCodeService.verify_claim_code(
        serializer.validated_data['claim_code'],
        get_vendor_for_user(request.user),
        ip_address=ip_address,
        user_agent=user_agent,
    )
    return Response(ClaimVerificationSerializer(summary).data)


@extend_schema(
    request=CompleteTransactionInputSerializer,
    responses={200: TransactionResultSerializer},
    description="Record the bill and the discount granted for a verified claim.",
    tags=['vendors'],
)
@api_view(['POST'])
@permission_classes([IsAuthenticated, IsVendor])
def complete_transaction(request):
    """Complete the transaction for a verified claim."""
    serializer = CompleteTransactionInputSerializer(data=request.data)
    serializer.is_valid(raise_exception=True)
    data = serializer.validated_data
    ip_address, user_agent = client_meta(request)

    result = ClaimCodeService.complete_transaction(
        data['claim_code'],
        data['bill_amount'],
        data['actual_discount'],
        vendor=get_vendor_for_user(request.user),
        ip_address=ip_address,
        user_agent=user_agent,
    )
    return Response(TransactionResultSerializer(result).data)


@extend_schema(
    parameters=[ClaimFilterSerializer],
    responses={200: VendorClaimSerializer(many=True)},
    description="Claims on the current vendor's deals, newest first.",
    tags=['vendors'],
)
@api_view(['GET'])
@permission_classes([IsAuthenticated, IsVendor])
def vendor_claims(request):
    """List claims on the current vendor's deals."""
    filter_serializer = ClaimFilterSerializer(data=request.query_params)
    filter_serializer.is_valid(raise_exception=True)

    claims = ClaimCodeService.get_vendor_claims(
        get_vendor_for_user(request.user),
        status=filter_serializer.validated_data.get('status'),
    )
    return _paginated(request, claims, VendorClaimSerializer)
