from django.urls import path
from .views import (
    PayForJobView, InitiatePaymentView, PaymentCallbackView, VerifyPaymentView,
    WalletView, TransactionHistoryView, WithdrawalRequestView
)

urlpatterns = [
    path('jobs/<int:job_id>/pay/', PayForJobView.as_view(), name='job_pay'),
    path('jobs/<int:job_id>/initiate/', InitiatePaymentView.as_view(), name='payment_initiate'),
    path('callback/', PaymentCallbackView.as_view(), name='payment_callback'),
    path('verify/<int:transaction_id>/', VerifyPaymentView.as_view(), name='payment_verify'),
    path('wallet/', WalletView.as_view(), name='wallet'),
    path('transactions/', TransactionHistoryView.as_view(), name='transactions'),
    path('withdraw/', WithdrawalRequestView.as_view(), name='withdraw'),
]
