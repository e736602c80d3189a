from django.urls import path, include
from rest_framework.routers import DefaultRouter
from . import views

router = DefaultRouter()
router.register(r'plans', views.InvestmentPlanViewSet, basename='plan')
router.register(r'investments', views.InvestmentViewSet, basename='investment')
router.register(r'transactions', views.TransactionViewSet, basename='transaction')

urlpatterns = [
    path('', include(router.urls)),
    path('subscriptions/', views.subscriptions, name='subscriptions'),
]
