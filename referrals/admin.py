from django.contrib import admin
from .models import ReferralCode, Referral, ReferralEarning

admin.site.register(ReferralCode)
admin.site.register(Referral)
admin.site.register(ReferralEarning)
