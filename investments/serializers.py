from rest_framework import serializers

from .accrual import compute_profit
from .exceptions import DataIntegrityError
from .models import AdminLog, Investment, InvestmentPlan, Transaction


class InvestmentPlanSerializer(serializers.ModelSerializer):
    """Serializer for InvestmentPlan model"""

    total_return_pct = serializers.DecimalField(max_digits=10, decimal_places=2, read_only=True)

    class Meta:
        model = InvestmentPlan
        fields = [
            'id', 'name', 'description', 'min_deposit', 'max_deposit',
            'daily_return_pct', 'duration_days', 'bonus_pct', 'total_return_pct',
            'is_active', 'created_at', 'updated_at'
        ]
        read_only_fields = ['created_at', 'updated_at']

    def validate(self, data):
        min_deposit = data.get('min_deposit', getattr(self.instance, 'min_deposit', None))
        max_deposit = data.get('max_deposit', getattr(self.instance, 'max_deposit', None))
        if min_deposit is not None and max_deposit is not None and min_deposit > max_deposit:
            raise serializers.ValidationError(
                {'max_deposit': 'Maximum deposit must not be below the minimum deposit'}
            )
        return data


class InvestmentSerializer(serializers.ModelSerializer):
    plan_name = serializers.CharField(source='plan.name', read_only=True, default=None)
    daily_return_pct = serializers.DecimalField(
        source='plan.daily_return_pct', max_digits=6, decimal_places=2, read_only=True, default=None
    )
    current_profit = serializers.SerializerMethodField()

    class Meta:
        model = Investment
        fields = [
            'id', 'plan', 'plan_name', 'daily_return_pct', 'amount', 'status',
            'current_profit', 'total_return', 'start_date', 'end_date', 'completed_at'
        ]
        read_only_fields = fields

    def get_current_profit(self, obj):
        if obj.status == 'completed':
            return obj.total_return
        try:
            return compute_profit(obj)
        except DataIntegrityError:
            return None


class InvestmentCreateSerializer(serializers.Serializer):
    """Input for subscribing to a plan"""

    plan = serializers.PrimaryKeyRelatedField(queryset=InvestmentPlan.objects.all())
    amount = serializers.DecimalField(max_digits=14, decimal_places=2)


class TransactionSerializer(serializers.ModelSerializer):
    user_email = serializers.CharField(source='user.email', read_only=True)

    class Meta:
        model = Transaction
        fields = [
            'id', 'user', 'user_email', 'transaction_type', 'amount', 'status',
            'description', 'investment', 'created_at', 'processed_at'
        ]
        read_only_fields = fields


class TransactionRequestSerializer(serializers.Serializer):
    """Input for a deposit or withdrawal request"""

    transaction_type = serializers.ChoiceField(choices=['deposit', 'withdrawal'])
    amount = serializers.DecimalField(max_digits=14, decimal_places=2)
    description = serializers.CharField(required=False, allow_blank=True, default='')


class SubscriptionPurchaseSerializer(serializers.Serializer):
    strategy = serializers.CharField()


class AdminLogSerializer(serializers.ModelSerializer):
    admin_email = serializers.CharField(source='admin.email', read_only=True, default=None)

    class Meta:
        model = AdminLog
        fields = ['id', 'admin', 'admin_email', 'action', 'details', 'created_at']
        read_only_fields = fields
