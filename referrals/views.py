from rest_framework import permissions, viewsets
from rest_framework.decorators import action
from rest_framework.permissions import IsAdminUser, IsAuthenticated
from rest_framework.response import Response
from rest_framework.views import APIView

from .models import ReferralCode, Referral, ReferralEarning
from .serializers import ReferralCodeSerializer, ReferralSerializer, ReferralEarningSerializer
from .services import referral_stats


class ReferralCodeViewSet(viewsets.ReadOnlyModelViewSet):
    """ViewSet for the current user's referral code"""

    permission_classes = [IsAuthenticated]
    serializer_class = ReferralCodeSerializer

    def get_queryset(self):
        return ReferralCode.objects.filter(user=self.request.user)

    @action(detail=False, methods=['get'])
    def my_code(self, request):
        """Get current user's referral code, creating it on first use"""
        referral_code, _ = ReferralCode.objects.get_or_create(user=request.user)
        serializer = self.get_serializer(referral_code)
        return Response(serializer.data)

    @action(detail=True, methods=['post'])
    def regenerate(self, request, pk=None):
        """Regenerate referral code"""
        referral_code = self.get_object()
        referral_code.code = referral_code.generate_unique_code()
        referral_code.save(update_fields=['code', 'updated_at'])
        serializer = self.get_serializer(referral_code)
        return Response(serializer.data)


class ReferralViewSet(viewsets.ReadOnlyModelViewSet):
    """ViewSet for viewing referrals"""

    permission_classes = [IsAuthenticated]
    serializer_class = ReferralSerializer
    filterset_fields = ['status']

    def get_queryset(self):
        return Referral.objects.filter(referrer=self.request.user).select_related('referred_user')

    @action(detail=False, methods=['get'])
    def stats(self, request):
        """Get referral statistics"""
        return Response(referral_stats(request.user))


class ReferralEarningViewSet(viewsets.ReadOnlyModelViewSet):
    """ViewSet for viewing referral earnings"""

    permission_classes = [IsAuthenticated]
    serializer_class = ReferralEarningSerializer

    def get_queryset(self):
        return ReferralEarning.objects.filter(referral__referrer=self.request.user)


class ValidateReferralCodeView(APIView):
    """Validate referral code during registration"""

    permission_classes = [permissions.AllowAny]

    def post(self, request):
        code = (request.data.get('code') or '').strip().upper()

        if not code:
            return Response({'error': 'Referral code is required'}, status=400)

        try:
            referral_code = ReferralCode.objects.select_related('user').get(code=code, is_active=True)
        except ReferralCode.DoesNotExist:
            return Response({'valid': False, 'error': 'Invalid referral code'}, status=400)

        referrer = referral_code.user
        return Response({
            'valid': True,
            'referrer_name': referrer.get_full_name() or referrer.email
        })


# Admin ViewSets
class AdminReferralViewSet(viewsets.ReadOnlyModelViewSet):
    """Admin ViewSet for viewing all referrals"""

    permission_classes = [IsAdminUser]
    serializer_class = ReferralSerializer
    queryset = Referral.objects.select_related('referrer', 'referred_user')
    filterset_fields = ['status', 'referrer']


class AdminReferralEarningViewSet(viewsets.ReadOnlyModelViewSet):
    """Admin ViewSet for viewing all referral earnings"""

    permission_classes = [IsAdminUser]
    serializer_class = ReferralEarningSerializer
    queryset = ReferralEarning.objects.all()
