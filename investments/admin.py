from django.contrib import admin
from .models import InvestmentPlan, Investment, Transaction, AdminLog

admin.site.register(InvestmentPlan)
admin.site.register(Investment)


class ReadOnlyAdmin(admin.ModelAdmin):
    """Ledger rows are written by the services only; the admin site can browse them"""

    def has_add_permission(self, request):
        return False

    def has_change_permission(self, request, obj=None):
        return False

    def has_delete_permission(self, request, obj=None):
        return False


@admin.register(Transaction)
class TransactionAdmin(ReadOnlyAdmin):
    list_display = ['id', 'user', 'transaction_type', 'amount', 'status', 'created_at', 'processed_at']
    list_filter = ['transaction_type', 'status']
    search_fields = ['user__email', 'description']
    readonly_fields = [
        'user', 'investment', 'transaction_type', 'amount', 'status',
        'description', 'created_at', 'processed_at'
    ]


@admin.register(AdminLog)
class AdminLogAdmin(ReadOnlyAdmin):
    list_display = ['created_at', 'admin', 'action']
    list_filter = ['action']
    search_fields = ['admin__email', 'action']
    readonly_fields = ['admin', 'action', 'details', 'created_at']
