import logging

from django.contrib.auth import get_user_model
from django.db import transaction
from django.db.models import Sum
from rest_framework import status, viewsets
from rest_framework.decorators import action, api_view, permission_classes
from rest_framework.permissions import IsAdminUser
from rest_framework.response import Response

from investments.exceptions import InvestmentError
from investments.models import AdminLog, Investment, InvestmentPlan, Transaction
from investments.serializers import AdminLogSerializer, InvestmentPlanSerializer, TransactionSerializer
from investments.services import (
    adjust_financials,
    approve_transaction,
    log_admin_action,
    rebuild_profile,
    reject_transaction,
)
from investments.views import error_response
from users.models import Notification

from .serializers import AdminUserSerializer, FinancialsSerializer, GlobalNotificationSerializer

logger = logging.getLogger(__name__)

User = get_user_model()


class AdminPlanViewSet(viewsets.ModelViewSet):
    """Admin ViewSet for managing investment plans; every change is audit-logged"""

    permission_classes = [IsAdminUser]
    serializer_class = InvestmentPlanSerializer
    queryset = InvestmentPlan.objects.all()
    filterset_fields = ['is_active']

    def perform_create(self, serializer):
        with transaction.atomic():
            plan = serializer.save()
            log_admin_action(self.request.user, 'create_plan', plan_id=plan.pk, name=plan.name)

    def perform_update(self, serializer):
        with transaction.atomic():
            plan = serializer.save()
            log_admin_action(
                self.request.user,
                'update_plan',
                plan_id=plan.pk,
                fields=sorted(serializer.validated_data),
            )

    def perform_destroy(self, instance):
        with transaction.atomic():
            log_admin_action(self.request.user, 'delete_plan', plan_id=instance.pk, name=instance.name)
            instance.delete()


class AdminTransactionViewSet(viewsets.ReadOnlyModelViewSet):
    """Admin ViewSet for the transaction ledger and pending requests"""

    permission_classes = [IsAdminUser]
    serializer_class = TransactionSerializer
    queryset = Transaction.objects.select_related('user')
    filterset_fields = ['status', 'transaction_type', 'user']

    @action(detail=True, methods=['post'])
    def approve(self, request, pk=None):
        """Approve a pending deposit or withdrawal"""
        entry = self.get_object()
        try:
            entry = approve_transaction(entry, request.user)
        except InvestmentError as e:
            return error_response(e)
        return Response(self.get_serializer(entry).data)

    @action(detail=True, methods=['post'])
    def reject(self, request, pk=None):
        """Reject a pending deposit or withdrawal"""
        entry = self.get_object()
        try:
            entry = reject_transaction(entry, request.user, request.data.get('reason', ''))
        except InvestmentError as e:
            return error_response(e)
        return Response(self.get_serializer(entry).data)

    @action(detail=False, methods=['get'])
    def stats(self, request):
        """Get transaction statistics"""
        transactions = Transaction.objects.all()
        return Response({
            'total_transactions': transactions.count(),
            'completed_transactions': transactions.filter(status='completed').count(),
            'pending_transactions': transactions.filter(status='pending').count(),
            'failed_transactions': transactions.filter(status='failed').count(),
        })


class AdminUserViewSet(viewsets.ReadOnlyModelViewSet):
    """Admin ViewSet for users and their cached financials"""

    permission_classes = [IsAdminUser]
    serializer_class = AdminUserSerializer
    queryset = User.objects.select_related('profile').order_by('-date_joined')
    filterset_fields = ['is_active', 'is_staff']

    @action(detail=True, methods=['post'])
    def financials(self, request, pk=None):
        """Overwrite balance, profit or bonus figures"""
        user = self.get_object()
        serializer = FinancialsSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        try:
            adjust_financials(user, request.user, **serializer.validated_data)
        except InvestmentError as e:
            return error_response(e)
        user = self.get_queryset().get(pk=user.pk)
        return Response(self.get_serializer(user).data)

    @action(detail=True, methods=['get', 'post'])
    def reconcile(self, request, pk=None):
        """Compare the profile with the ledger; POST with ``apply`` repairs it"""
        user = self.get_object()
        apply = request.method == 'POST' and str(request.data.get('apply', '')).lower() in ('1', 'true', 'yes')
        try:
            report = rebuild_profile(user, apply=apply, admin=request.user)
        except InvestmentError as e:
            return error_response(e)
        return Response({'user_id': user.pk, 'applied': apply, 'fields': report})

    @action(detail=True, methods=['get'])
    def transactions(self, request, pk=None):
        """Full ledger of one user"""
        user = self.get_object()
        transactions = Transaction.objects.filter(user=user)
        return Response(TransactionSerializer(transactions, many=True).data)


class AdminLogViewSet(viewsets.ReadOnlyModelViewSet):
    """Audit trail of admin actions"""

    permission_classes = [IsAdminUser]
    serializer_class = AdminLogSerializer
    queryset = AdminLog.objects.select_related('admin')
    filterset_fields = ['action', 'admin']


@api_view(['POST'])
@permission_classes([IsAdminUser])
def send_notification(request):
    """Send one notification to every active user"""
    serializer = GlobalNotificationSerializer(data=request.data)
    serializer.is_valid(raise_exception=True)
    data = serializer.validated_data

    with transaction.atomic():
        recipients = list(User.objects.filter(is_active=True).values_list('pk', flat=True))
        Notification.objects.bulk_create([
            Notification(
                user_id=user_id,
                title=data['title'],
                message=data['message'],
                notification_type=data['notification_type'],
            )
            for user_id in recipients
        ])
        log_admin_action(
            request.user,
            'send_notification',
            title=data['title'],
            notification_type=data['notification_type'],
            recipients=len(recipients),
        )

    logger.info("Admin %s sent notification '%s' to %s users", request.user.pk, data['title'], len(recipients))
    return Response({'sent': len(recipients)}, status=status.HTTP_201_CREATED)


@api_view(['GET'])
@permission_classes([IsAdminUser])
def dashboard_stats(request):
    completed = Transaction.objects.filter(status='completed')
    return Response({
        'total_users': User.objects.count(),
        'active_investments': Investment.objects.filter(status='active').count(),
        'total_invested': Investment.objects.filter(status='active').aggregate(total=Sum('amount'))['total'] or 0,
        'total_deposits': completed.filter(transaction_type='deposit').aggregate(total=Sum('amount'))['total'] or 0,
        'total_withdrawals': completed.filter(transaction_type='withdrawal').aggregate(total=Sum('amount'))['total'] or 0,
        'pending_deposits': Transaction.objects.filter(status='pending', transaction_type='deposit').count(),
        'pending_withdrawals': Transaction.objects.filter(status='pending', transaction_type='withdrawal').count(),
    })

