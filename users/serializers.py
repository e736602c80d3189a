from django.contrib.auth import get_user_model
from djoser.serializers import UserCreateSerializer as DjoserUserCreateSerializer
from rest_framework import serializers

from referrals.models import ReferralCode

from .models import Notification, Profile

User = get_user_model()


class NotificationSerializer(serializers.ModelSerializer):
    class Meta:
        model = Notification
        fields = ['id', 'title', 'message', 'notification_type', 'is_read', 'created_at', 'read_at']
        read_only_fields = ['title', 'message', 'notification_type', 'created_at', 'read_at']


class ProfileSerializer(serializers.ModelSerializer):
    """Cached financial figures; only the ledger services write them"""

    email = serializers.EmailField(source='user.email', read_only=True)
    total_assets = serializers.DecimalField(max_digits=16, decimal_places=2, read_only=True)

    class Meta:
        model = Profile
        fields = [
            'user', 'email', 'full_name', 'balance', 'profit', 'bonus',
            'ref_bonus', 'total_assets', 'created_at', 'updated_at'
        ]
        read_only_fields = [
            'user', 'balance', 'profit', 'bonus', 'ref_bonus',
            'created_at', 'updated_at'
        ]


class UserSerializer(serializers.ModelSerializer):
    referral_code = serializers.CharField(source='referral_code.code', read_only=True, default=None)
    referrer_name = serializers.SerializerMethodField()

    class Meta:
        model = User
        fields = [
            'id', 'email', 'first_name', 'last_name', 'phone',
            'is_active', 'is_staff', 'date_joined', 'last_login',
            'referral_code', 'referrer_name'
        ]
        read_only_fields = ['email', 'is_active', 'is_staff', 'date_joined', 'last_login']

    def get_referrer_name(self, obj):
        referral = getattr(obj, 'referred_by', None)
        if referral is None:
            return None
        referrer = referral.referrer
        return referrer.get_full_name() or referrer.email


class UserCreateSerializer(DjoserUserCreateSerializer):
    referral_code = serializers.CharField(write_only=True, required=False, allow_blank=True)

    class Meta(DjoserUserCreateSerializer.Meta):
        model = User
        fields = ['id', 'email', 'first_name', 'last_name', 'phone', 'password', 'referral_code']

    def validate_referral_code(self, value):
        value = value.strip().upper()
        if value and not ReferralCode.objects.filter(code=value, is_active=True).exists():
            raise serializers.ValidationError('Invalid referral code')
        return value

    def validate(self, attrs):
        code = attrs.pop('referral_code', '')
        attrs = super().validate(attrs)
        if code:
            attrs['referral_code'] = code
        return attrs

    def create(self, validated_data):
        from referrals.services import apply_referral_code

        code = validated_data.pop('referral_code', '')
        user = super().create(validated_data)
        if code:
            apply_referral_code(user, code)
        return user
