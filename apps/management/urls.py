from django.urls import path
from . import views

urlpatterns = [
    # Withdrawals
    path('withdrawals/pending/', views.PendingWithdrawalsView.as_view(), name='pending_withdrawals'),
    path('withdrawals/<int:transaction_id>/resolve/', views.ResolveWithdrawalView.as_view(), name='resolve_withdrawal'),

    # Freelancer verification
    path('freelancers/<int:user_id>/verify/', views.VerifyFreelancerView.as_view(), name='verify_freelancer'),

    # Commission
    path('commission/stats/', views.CommissionStatsView.as_view(), name='commission_stats'),
    path('commission/rate/', views.CommissionRateView.as_view(), name='commission_rate'),
    path('commission/transactions/', views.CommissionTransactionsView.as_view(), name='commission_transactions'),

    path('logs/', views.ManagementLogListView.as_view(), name='management_logs'),
]
