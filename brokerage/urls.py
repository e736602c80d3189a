"""
URL configuration for the brokerage project.
"""
from django.contrib import admin
from django.urls import path, include
from rest_framework.routers import DefaultRouter
from rest_framework_simplejwt.views import TokenObtainPairView, TokenRefreshView
from users.views import NotificationViewSet, get_user_profile, submit_referral_code

router = DefaultRouter()
router.register(r'notifications', NotificationViewSet, basename='notification')

urlpatterns = [
    # ===== ADMIN =====
    path('superadmin/', admin.site.urls),

    # ===== AUTH =====
    path('api/auth/submit-referral/', submit_referral_code, name='submit_referral_code'),
    path('api/auth/', include('djoser.urls')),
    path('api/auth/', include('djoser.urls.jwt')),
    path('api/user/profile/', get_user_profile, name='get_user_profile'),
    path('api/token/', TokenObtainPairView.as_view(), name='token_obtain_pair'),
    path('api/token/refresh/', TokenRefreshView.as_view(), name='token_refresh'),

    # ===== INVESTMENTS =====
    path('api/investments/', include('investments.urls')),

    # ===== ADMIN API =====
    path('api/admin/', include('admin_api.urls')),

    # ===== REFERRALS =====
    path('api/referrals/', include('referrals.urls')),

    # ===== OTHER ROUTER URLS =====
    path('api/', include(router.urls)),
]
