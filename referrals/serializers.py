from django.db.models import Sum
from rest_framework import serializers

from .models import ReferralCode, Referral, ReferralEarning


class ReferralCodeSerializer(serializers.ModelSerializer):
    """Serializer for ReferralCode model"""

    user_email = serializers.CharField(source='user.email', read_only=True)
    referrals_count = serializers.SerializerMethodField()
    total_earnings = serializers.SerializerMethodField()

    class Meta:
        model = ReferralCode
        fields = [
            'id', 'user', 'user_email', 'code', 'is_active',
            'referrals_count', 'total_earnings', 'created_at', 'updated_at'
        ]
        read_only_fields = ['user', 'code', 'created_at', 'updated_at']

    def get_referrals_count(self, obj):
        return obj.referrals.count()

    def get_total_earnings(self, obj):
        return ReferralEarning.objects.filter(
            referral__referral_code=obj
        ).aggregate(total=Sum('amount'))['total'] or 0


class ReferralSerializer(serializers.ModelSerializer):
    """Serializer for Referral model"""

    referrer_email = serializers.CharField(source='referrer.email', read_only=True)
    referred_user_email = serializers.CharField(source='referred_user.email', read_only=True)
    referred_user_name = serializers.SerializerMethodField()
    earnings = serializers.SerializerMethodField()

    class Meta:
        model = Referral
        fields = [
            'id', 'referrer', 'referrer_email', 'referred_user', 'referred_user_email',
            'referred_user_name', 'status', 'commission_rate', 'earnings',
            'created_at', 'activated_at'
        ]
        read_only_fields = fields

    def get_referred_user_name(self, obj):
        return obj.referred_user.get_full_name() or obj.referred_user.email

    def get_earnings(self, obj):
        return obj.earnings.aggregate(total=Sum('amount'))['total'] or 0


class ReferralEarningSerializer(serializers.ModelSerializer):
    """Serializer for ReferralEarning model"""

    referred_user_email = serializers.CharField(source='referral.referred_user.email', read_only=True)
    investment_amount = serializers.DecimalField(
        source='investment.amount', max_digits=14, decimal_places=2, read_only=True
    )

    class Meta:
        model = ReferralEarning
        fields = [
            'id', 'referral', 'referred_user_email', 'investment', 'investment_amount',
            'transaction', 'amount', 'commission_rate', 'created_at'
        ]
        read_only_fields = fields
