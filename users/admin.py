from django.contrib import admin
from .models import User, Profile, Notification

admin.site.register(User)
admin.site.register(Notification)


@admin.register(Profile)
class ProfileAdmin(admin.ModelAdmin):
    list_display = ['user', 'full_name', 'balance', 'profit', 'bonus', 'ref_bonus']
    search_fields = ['user__email', 'full_name']
    # balances change through the admin API so every edit is audit-logged
    readonly_fields = ['user', 'balance', 'profit', 'bonus', 'ref_bonus', 'created_at', 'updated_at']

    def has_add_permission(self, request):
        return False
