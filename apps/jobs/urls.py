from django.urls import path
from .views import (
    JobCreateView, MyJobsView, AvailableJobsView, AssignedJobsView, JobDeleteView,
    JobCancelView, JobVisibilityView, WorkDoneView, JobOffersView, SubmitOfferView,
    RespondOfferView, WithdrawOfferView, MyOffersView
)

urlpatterns = [
    # Client
    path('create/', JobCreateView.as_view(), name='job_create'),
    path('mine/', MyJobsView.as_view(), name='my_jobs'),
    path('<int:pk>/delete/', JobDeleteView.as_view(), name='job_delete'),
    path('<int:pk>/cancel/', JobCancelView.as_view(), name='job_cancel'),
    path('<int:pk>/visibility/', JobVisibilityView.as_view(), name='job_visibility'),
    path('<int:pk>/offers/', JobOffersView.as_view(), name='job_offers'),
    path('offers/<int:pk>/respond/', RespondOfferView.as_view(), name='offer_respond'),

    # Freelancer
    path('available/', AvailableJobsView.as_view(), name='available_jobs'),
    path('assigned/', AssignedJobsView.as_view(), name='assigned_jobs'),
    path('<int:pk>/apply/', SubmitOfferView.as_view(), name='offer_submit'),
    path('<int:pk>/work-done/', WorkDoneView.as_view(), name='job_work_done'),
    path('offers/mine/', MyOffersView.as_view(), name='my_offers'),
    path('offers/<int:pk>/withdraw/', WithdrawOfferView.as_view(), name='offer_withdraw'),
]
