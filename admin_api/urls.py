from django.urls import path, include
from rest_framework.routers import DefaultRouter
from referrals.views import AdminReferralViewSet, AdminReferralEarningViewSet
from . import views

router = DefaultRouter()
router.register(r'plans', views.AdminPlanViewSet, basename='admin-plan')
router.register(r'transactions', views.AdminTransactionViewSet, basename='admin-transaction')
router.register(r'users', views.AdminUserViewSet, basename='admin-user')
router.register(r'logs', views.AdminLogViewSet, basename='admin-log')
router.register(r'referrals', AdminReferralViewSet, basename='admin-referral')
router.register(r'referral-earnings', AdminReferralEarningViewSet, basename='admin-referral-earning')

urlpatterns = [
    path('', include(router.urls)),
    path('notifications/', views.send_notification, name='admin-send-notification'),
    path('dashboard/', views.dashboard_stats, name='admin-dashboard'),
]
