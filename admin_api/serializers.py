from django.contrib.auth import get_user_model
from rest_framework import serializers

from investments.services import FINANCIAL_FIELDS
from users.models import Notification

User = get_user_model()


class AdminUserSerializer(serializers.ModelSerializer):
    full_name = serializers.SerializerMethodField()
    balance = serializers.DecimalField(source='profile.balance', max_digits=14, decimal_places=2, read_only=True)
    profit = serializers.DecimalField(source='profile.profit', max_digits=14, decimal_places=2, read_only=True)
    bonus = serializers.DecimalField(source='profile.bonus', max_digits=14, decimal_places=2, read_only=True)
    ref_bonus = serializers.DecimalField(source='profile.ref_bonus', max_digits=14, decimal_places=2, read_only=True)

    class Meta:
        model = User
        fields = [
            'id', 'email', 'full_name', 'is_active', 'is_staff', 'date_joined',
            'balance', 'profit', 'bonus', 'ref_bonus'
        ]
        read_only_fields = fields

    def get_full_name(self, obj):
        return obj.get_full_name()


class FinancialsSerializer(serializers.Serializer):
    balance = serializers.DecimalField(max_digits=14, decimal_places=2, required=False)
    profit = serializers.DecimalField(max_digits=14, decimal_places=2, required=False)
    bonus = serializers.DecimalField(max_digits=14, decimal_places=2, required=False)
    ref_bonus = serializers.DecimalField(max_digits=14, decimal_places=2, required=False)

    def validate(self, data):
        if not any(field in data for field in FINANCIAL_FIELDS):
            raise serializers.ValidationError('Provide at least one of: ' + ', '.join(FINANCIAL_FIELDS))
        return data


class GlobalNotificationSerializer(serializers.Serializer):
    title = serializers.CharField(max_length=200)
    message = serializers.CharField()
    notification_type = serializers.ChoiceField(
        choices=[choice for choice, _ in Notification.NOTIFICATION_TYPES], default='info'
    )
