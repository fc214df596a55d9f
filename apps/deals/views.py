from rest_framework import viewsets, status, serializers
from rest_framework.decorators import api_view, permission_classes
from rest_framework.permissions import AllowAny, IsAuthenticated
from rest_framework.response import Response
from rest_framework.pagination import PageNumberPagination
from drf_spectacular.utils import extend_schema

from .models import Deal
from .permissions import IsVendor, IsPlatformAdmin
from .serializers import (
    DealFilterSerializer,
    DealSerializer,
    VendorDealSerializer,
    VendorSerializer,
    VendorRegistrationSerializer,
    DealCreateSerializer,
    ResetPinSerializer,
    RejectDealSerializer,
)

from apps.deals.services import (
    register_vendor,
    approve_vendor,
    get_vendor_for_user,
    create_deal,
    reset_deal_pin,
    approve_deal,
    reject_deal,
    generate_secure_pin,
    # Exceptions
    DealNotFoundError,
    InvalidDealError,
    VendorNotFoundError,
    VendorAlreadyExistsError,
    VendorNotApprovedError,
    DealAlreadyModeratedError,
    InvalidPinFormatError,
)


class DealPagination(PageNumberPagination):
    """Custom pagination for deals."""
    page_size = 20
    page_size_query_param = 'page_size'
    max_page_size = 100


class ErrorResponseSerializer(serializers.Serializer):
    error = serializers.CharField()


class DealWithPinResponseSerializer(serializers.Serializer):
    deal = VendorDealSerializer()
    verification_pin = serializers.CharField(allow_null=True)
    message = serializers.CharField()


class PinResponseSerializer(serializers.Serializer):
    pin = serializers.CharField()
    message = serializers.CharField()


class DealViewSet(viewsets.ReadOnlyModelViewSet):
    """
    Public catalogue of claimable deals.

    list: Approved, active deals inside their validity window
    retrieve: A single claimable deal
    """

    serializer_class = DealSerializer
    permission_classes = [AllowAny]
    pagination_class = DealPagination

    def get_queryset(self):
        filter_serializer = DealFilterSerializer(data=self.request.query_params)
        filter_serializer.is_valid(raise_exception=True)
        params = filter_serializer.validated_data

        queryset = Deal.objects.available().select_related('vendor')

        if 'category' in params:
            queryset = queryset.filter(category=params['category'])
        if 'deal_type' in params:
            queryset = queryset.filter(deal_type=params['deal_type'])
        if 'vendor' in params:
            queryset = queryset.filter(vendor_id=params['vendor'])
        if 'city' in params:
            queryset = queryset.filter(vendor__city__iexact=params['city'])

        return queryset


# =============================================================================
# Vendor endpoints
# =============================================================================

@extend_schema(
    request=VendorRegistrationSerializer,
    responses={201: VendorSerializer, 400: ErrorResponseSerializer},
    description="Create a vendor profile for the current user (pending admin approval).",
    tags=['vendors'],
)
@api_view(['POST'])
@permission_classes([IsAuthenticated])
def vendor_register(request):
    """Register the current user as a vendor."""
    serializer = VendorRegistrationSerializer(data=request.data)
    serializer.is_valid(raise_exception=True)

    try:
        vendor = register_vendor(user=request.user, **serializer.validated_data)
    except VendorAlreadyExistsError as e:
        return Response({'error': str(e)}, status=status.HTTP_400_BAD_REQUEST)

    return Response(VendorSerializer(vendor).data, status=status.HTTP_201_CREATED)


@extend_schema(
    methods=['GET'],
    responses={200: VendorDealSerializer(many=True)},
    description="List the current vendor's deals, including pending and rejected ones.",
    tags=['vendors'],
)
@extend_schema(
    methods=['POST'],
    request=DealCreateSerializer,
    responses={
        201: DealWithPinResponseSerializer,
        400: ErrorResponseSerializer,
        403: ErrorResponseSerializer,
    },
    description=(
        "Create a deal. Offline deals return their verification PIN once; "
        "store it safely, it cannot be retrieved later."
    ),
    tags=['vendors'],
)
@api_view(['GET', 'POST'])
@permission_classes([IsAuthenticated, IsVendor])
def vendor_deals(request):
    """List or create deals for the current vendor."""
    vendor = get_vendor_for_user(request.user)

    if request.method == 'GET':
        deals = Deal.objects.filter(vendor=vendor).select_related('vendor')
        return Response(VendorDealSerializer(deals, many=True).data)

    serializer = DealCreateSerializer(data=request.data)
    serializer.is_valid(raise_exception=True)
    data = serializer.validated_data.copy()
    pin = data.pop('verification_pin', '') or None

    try:
        deal, plain_pin = create_deal(vendor=vendor, verification_pin=pin, **data)
    except VendorNotApprovedError as e:
        return Response({'error': str(e)}, status=status.HTTP_403_FORBIDDEN)
    except (InvalidDealError, InvalidPinFormatError) as e:
        return Response({'error': str(e)}, status=status.HTTP_400_BAD_REQUEST)

    return Response({
        'deal': VendorDealSerializer(deal).data,
        'verification_pin': plain_pin,
        'message': 'Deal submitted for approval.',
    }, status=status.HTTP_201_CREATED)


@extend_schema(
    request=ResetPinSerializer,
    responses={
        200: PinResponseSerializer,
        400: ErrorResponseSerializer,
        404: ErrorResponseSerializer,
    },
    description="Replace a deal's verification PIN. The new PIN is shown once.",
    tags=['vendors'],
)
@api_view(['POST'])
@permission_classes([IsAuthenticated, IsVendor])
def vendor_reset_pin(request, pk):
    """Rotate the verification PIN of one of the vendor's deals."""
    serializer = ResetPinSerializer(data=request.data)
    serializer.is_valid(raise_exception=True)

    vendor = get_vendor_for_user(request.user)
    try:
        pin = reset_deal_pin(
            deal_id=pk,
            vendor=vendor,
            pin=serializer.validated_data.get('pin') or None,
        )
    except DealNotFoundError as e:
        return Response({'error': str(e)}, status=status.HTTP_404_NOT_FOUND)
    except InvalidPinFormatError as e:
        return Response({'error': str(e)}, status=status.HTTP_400_BAD_REQUEST)

    return Response({
        'pin': pin,
        'message': 'PIN updated. Store this PIN safely - it cannot be retrieved later.',
    })


@extend_schema(
    request=None,
    responses={200: PinResponseSerializer},
    description="Suggest a secure random PIN. Nothing is stored.",
    tags=['vendors'],
)
@api_view(['POST'])
@permission_classes([IsAuthenticated, IsVendor])
def vendor_generate_pin(request):
    """Generate a secure PIN suggestion."""
    return Response({
        'pin': generate_secure_pin(),
        'message': 'Secure PIN generated. It will be hashed when you attach it to a deal.',
    })


# =============================================================================
# Admin endpoints
# =============================================================================

@extend_schema(
    responses={200: VendorDealSerializer(many=True)},
    description="Deals waiting for moderation.",
    tags=['admin'],
)
@api_view(['GET'])
@permission_classes([IsAuthenticated, IsPlatformAdmin])
def pending_deals(request):
    """List deals pending approval."""
    deals = Deal.objects.pending_approval().select_related('vendor').order_by('created_at')
    return Response(VendorDealSerializer(deals, many=True).data)


@extend_schema(
    request=None,
    responses={
        200: VendorDealSerializer,
        400: ErrorResponseSerializer,
        404: ErrorResponseSerializer,
    },
    description="Approve a pending deal.",
    tags=['admin'],
)
@api_view(['POST'])
@permission_classes([IsAuthenticated, IsPlatformAdmin])
def approve(request, pk):
    """Approve a deal."""
    try:
        deal = approve_deal(deal_id=pk, admin=request.user)
    except DealNotFoundError as e:
        return Response({'error': str(e)}, status=status.HTTP_404_NOT_FOUND)
    except DealAlreadyModeratedError as e:
        return Response({'error': str(e)}, status=status.HTTP_400_BAD_REQUEST)

    return Response(VendorDealSerializer(deal).data)


@extend_schema(
    request=RejectDealSerializer,
    responses={
        200: VendorDealSerializer,
        400: ErrorResponseSerializer,
        404: ErrorResponseSerializer,
    },
    description="Reject a pending deal with an optional reason.",
    tags=['admin'],
)
@api_view(['POST'])
@permission_classes([IsAuthenticated, IsPlatformAdmin])
def reject(request, pk):
    """Reject a deal."""
    serializer = RejectDealSerializer(data=request.data)
    serializer.is_valid(raise_exception=True)

    try:
        deal = reject_deal(
            deal_id=pk,
            admin=request.user,
            reason=serializer.validated_data['reason'],
        )
    except DealNotFoundError as e:
        return Response({'error': str(e)}, status=status.HTTP_404_NOT_FOUND)
    except DealAlreadyModeratedError as e:
        return Response({'error': str(e)}, status=status.HTTP_400_BAD_REQUEST)

    return Response(VendorDealSerializer(deal).data)


@extend_schema(
    request=None,
    responses={200: VendorSerializer, 404: ErrorResponseSerializer},
    description="Approve a vendor profile so it can publish deals.",
    tags=['admin'],
)
@api_view(['POST'])
@permission_classes([IsAuthenticated, IsPlatformAdmin])
def approve_vendor_profile(request, pk):
    """Approve a vendor."""
    try:
        vendor = approve_vendor(vendor_id=pk)
    except VendorNotFoundError as e:
        return Response({'error': str(e)}, status=status.HTTP_404_NOT_FOUND)

    return Response(VendorSerializer(vendor).data)
