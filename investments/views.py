import logging

from django.conf import settings
from rest_framework import permissions, status, viewsets
from rest_framework.decorators import action, api_view, permission_classes
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response

from .accrual import investment_stats
from .exceptions import (
    InsufficientFundsError,
    InvalidStateError,
    InvestmentError,
    StorageError,
    ValidationError,
)
from .models import Investment, InvestmentPlan, Transaction
from .serializers import (
    InvestmentCreateSerializer,
    InvestmentPlanSerializer,
    InvestmentSerializer,
    SubscriptionPurchaseSerializer,
    TransactionRequestSerializer,
    TransactionSerializer,
)
from .services import purchase_subscription, submit_request, subscribe

logger = logging.getLogger(__name__)

ERROR_STATUS = [
    (ValidationError, status.HTTP_400_BAD_REQUEST),
    (InsufficientFundsError, status.HTTP_400_BAD_REQUEST),
    (InvalidStateError, status.HTTP_409_CONFLICT),
    (StorageError, status.HTTP_503_SERVICE_UNAVAILABLE),
]


def error_response(error):
    """Render an InvestmentError as ``{'error', 'code'}`` with a matching status"""
    for error_class, http_status in ERROR_STATUS:
        if isinstance(error, error_class):
            break
    else:
        http_status = status.HTTP_400_BAD_REQUEST
    return Response({'error': error.message, 'code': error.code}, status=http_status)


class InvestmentPlanViewSet(viewsets.ReadOnlyModelViewSet):
    """Plans open for investment"""

    queryset = InvestmentPlan.objects.filter(is_active=True)
    serializer_class = InvestmentPlanSerializer
    permission_classes = [permissions.AllowAny]


class InvestmentViewSet(viewsets.ReadOnlyModelViewSet):
    """ViewSet for user investments"""

    permission_classes = [IsAuthenticated]
    serializer_class = InvestmentSerializer
    filterset_fields = ['status']

    def get_queryset(self):
        return Investment.objects.filter(user=self.request.user).select_related('plan')

    def create(self, request, *args, **kwargs):
        serializer = InvestmentCreateSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        try:
            investment = subscribe(
                request.user,
                serializer.validated_data['plan'],
                serializer.validated_data['amount'],
            )
        except InvestmentError as e:
            return error_response(e)

        output_serializer = InvestmentSerializer(investment, context={'request': request})
        return Response(output_serializer.data, status=status.HTTP_201_CREATED)

    @action(detail=False, methods=['get'])
    def active(self, request):
        """Get user's active investments"""
        active_investments = self.get_queryset().filter(status='active')
        serializer = self.get_serializer(active_investments, many=True)
        return Response(serializer.data)

    @action(detail=False, methods=['get'])
    def stats(self, request):
        """Dashboard totals and the daily profit series"""
        try:
            return Response(investment_stats(request.user))
        except InvestmentError as e:
            return error_response(e)


class TransactionViewSet(viewsets.ReadOnlyModelViewSet):
    """ViewSet for user transactions"""

    permission_classes = [IsAuthenticated]
    serializer_class = TransactionSerializer
    filterset_fields = ['transaction_type', 'status']

    def get_queryset(self):
        return Transaction.objects.filter(user=self.request.user)

    @action(detail=False, methods=['get'])
    def recent(self, request):
        """Get recent transactions"""
        recent_transactions = self.get_queryset().order_by('-created_at')[:10]
        serializer = self.get_serializer(recent_transactions, many=True)
        return Response(serializer.data)

    @action(detail=False, methods=['post'], url_path='request')
    def submit(self, request):
        """Request a deposit or withdrawal; an admin settles it later"""
        serializer = TransactionRequestSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        try:
            entry = submit_request(
                request.user,
                serializer.validated_data['transaction_type'],
                serializer.validated_data['amount'],
                serializer.validated_data['description'],
            )
        except InvestmentError as e:
            return error_response(e)

        return Response(self.get_serializer(entry).data, status=status.HTTP_201_CREATED)


@api_view(['GET', 'POST'])
@permission_classes([IsAuthenticated])
def subscriptions(request):
    """List trading strategies, or buy one out of the balance"""
    if request.method == 'GET':
        strategies = getattr(settings, 'SUBSCRIPTION_STRATEGIES', {})
        return Response([
            {'name': name, 'price': price} for name, price in strategies.items()
        ])

    serializer = SubscriptionPurchaseSerializer(data=request.data)
    serializer.is_valid(raise_exception=True)
    try:
        entry = purchase_subscription(request.user, serializer.validated_data['strategy'])
    except InvestmentError as e:
        return error_response(e)
    return Response(TransactionSerializer(entry).data, status=status.HTTP_201_CREATED)
