import logging

from django.utils import timezone
from rest_framework import mixins, status, viewsets
from rest_framework.decorators import action, api_view, permission_classes
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response

from investments.accrual import refresh_profile_profit
from investments.exceptions import InvestmentError
from investments.views import error_response
from referrals.services import apply_referral_code

from .models import Notification, Profile
from .serializers import NotificationSerializer, ProfileSerializer, UserSerializer

logger = logging.getLogger(__name__)


class NotificationViewSet(mixins.ListModelMixin,
                          mixins.RetrieveModelMixin,
                          mixins.DestroyModelMixin,
                          viewsets.GenericViewSet):
    serializer_class = NotificationSerializer
    permission_classes = [IsAuthenticated]
    filterset_fields = ['is_read', 'notification_type']

    def get_queryset(self):
        return Notification.objects.filter(user=self.request.user)

    @action(detail=True, methods=['post'])
    def mark_read(self, request, pk=None):
        notification = self.get_object()
        notification.mark_as_read()
        return Response(self.get_serializer(notification).data)

    @action(detail=False, methods=['post'])
    def mark_all_read(self, request):
        updated = self.get_queryset().filter(is_read=False).update(is_read=True, read_at=timezone.now())
        return Response({'updated': updated})

    @action(detail=False, methods=['get'])
    def unread_count(self, request):
        return Response({'unread': self.get_queryset().filter(is_read=False).count()})


@api_view(['POST'])
@permission_classes([IsAuthenticated])
def submit_referral_code(request):
    try:
        apply_referral_code(request.user, request.data.get('referral_code'))
    except InvestmentError as e:
        return error_response(e)
    return Response({'success': 'Referral code applied successfully.'})


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def get_user_profile(request):
    """
    Current user with their cached financials. Profit is recomputed first so
    the dashboard never shows a value older than this request.
    """
    user = request.user
    try:
        refresh_profile_profit(user)
    except InvestmentError as e:
        logger.warning("Serving cached profit for user %s: %s", user.pk, e)

    profile, _ = Profile.objects.get_or_create(user=user, defaults={'full_name': user.get_full_name()})
    return Response({
        'user': UserSerializer(user).data,
        'profile': ProfileSerializer(profile).data,
    }, status=status.HTTP_200_OK)
