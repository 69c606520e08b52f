from rest_framework.views import APIView
from rest_framework import status
from rest_framework.permissions import IsAuthenticated
from drf_yasg.utils import swagger_auto_schema
from drf_yasg import openapi
from django.db.models import Count, Q
from django.db.transaction import on_commit
import logging

from core.utils import IsClient, IsFreelancer, paginate, success
from .models import Job, Offer
from .serializers import (
    JobSerializer, OfferSerializer, OfferSubmitSerializer, OfferResponseSerializer,
    JobCancelSerializer, JobVisibilitySerializer
)
from .offers import offers_for_job, respond_to_offer, submit_offer, withdraw_offer
from .state import cancel_job, create_job, delete_job, mark_work_done, set_job_visibility
from .utils import notify_work_done

logger = logging.getLogger(__name__)

page_params = [
    openapi.Parameter('page', openapi.IN_QUERY, type=openapi.TYPE_INTEGER),
    openapi.Parameter('limit', openapi.IN_QUERY, type=openapi.TYPE_INTEGER),
]
status_param = openapi.Parameter('status', openapi.IN_QUERY, type=openapi.TYPE_STRING)


def job_listing(**filters):
    # Pending offer counts come from one grouped query instead of one per row
    return Job.objects.filter(**filters).select_related('client', 'freelancer').annotate(
        pending_offer_count=Count('offers', filter=Q(offers__status='pending'))
    )


class JobCreateView(APIView):
    permission_classes = [IsAuthenticated, IsClient]

    @swagger_auto_schema(
        operation_description="Post a new job. Requires a complete client profile.",
        request_body=JobSerializer,
        responses={
            201: JobSerializer,
            400: 'Bad Request',
            401: 'Unauthorized',
            403: 'Forbidden'
        }
    )
    def post(self, request):
        serializer = JobSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        job = create_job(request.user, **serializer.validated_data)
        return success(JobSerializer(job).data, 'Job posted successfully', status.HTTP_201_CREATED)


class MyJobsView(APIView):
    permission_classes = [IsAuthenticated, IsClient]

    @swagger_auto_schema(
        operation_description="List jobs posted by the authenticated client.",
        manual_parameters=[status_param] + page_params,
        responses={200: JobSerializer(many=True), 401: 'Unauthorized', 403: 'Forbidden'}
    )
    def get(self, request):
        jobs = job_listing(client=request.user)
        job_status = request.query_params.get('status')
        if job_status:
            jobs = jobs.filter(status=job_status)
        return paginate(self, request, jobs, JobSerializer, key='jobs')


class AvailableJobsView(APIView):
    permission_classes = [IsAuthenticated, IsFreelancer]

    @swagger_auto_schema(
        operation_description="List open jobs available to freelancers, newest first.",
        manual_parameters=[
            openapi.Parameter('gender', openapi.IN_QUERY, type=openapi.TYPE_STRING, enum=['male', 'female']),
        ] + page_params,
        responses={200: JobSerializer(many=True), 401: 'Unauthorized', 403: 'Forbidden'}
    )
    def get(self, request):
        jobs = job_listing(status='open', is_active=True)
        gender = request.query_params.get('gender')
        if gender:
            jobs = jobs.filter(Q(gender_preference='any') | Q(gender_preference=gender))
        return paginate(self, request, jobs.order_by('-created_at'), JobSerializer, key='jobs')


class AssignedJobsView(APIView):
    permission_classes = [IsAuthenticated, IsFreelancer]

    @swagger_auto_schema(
        operation_description="List jobs assigned to the authenticated freelancer.",
        manual_parameters=[status_param] + page_params,
        responses={200: JobSerializer(many=True), 401: 'Unauthorized', 403: 'Forbidden'}
    )
    def get(self, request):
        jobs = job_listing(freelancer=request.user)
        job_status = request.query_params.get('status')
        if job_status:
            jobs = jobs.filter(status=job_status)
        return paginate(self, request, jobs.order_by('-updated_at'), JobSerializer, key='jobs')


class JobDeleteView(APIView):
    permission_classes = [IsAuthenticated, IsClient]

    @swagger_auto_schema(
        operation_description="Delete an open job owned by the authenticated client.",
        responses={200: 'Deleted', 400: 'Job not open', 403: 'Forbidden', 404: 'Not Found'}
    )
    def delete(self, request, pk):
        delete_job(pk, request.user)
        return success(message='Job deleted successfully')


class JobCancelView(APIView):
    permission_classes = [IsAuthenticated, IsClient]

    @swagger_auto_schema(
        operation_description="Cancel an open job. Pending offers on it are rejected.",
        request_body=JobCancelSerializer,
        responses={200: JobSerializer, 400: 'Job not open', 403: 'Forbidden', 404: 'Not Found'}
    )
    def post(self, request, pk):
        serializer = JobCancelSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        job = cancel_job(pk, request.user, serializer.validated_data.get('reason'))
        return success(JobSerializer(job).data, 'Job cancelled successfully')


class JobVisibilityView(APIView):
    permission_classes = [IsAuthenticated, IsClient]

    @swagger_auto_schema(
        operation_description="Show or hide a job from listings.",
        request_body=JobVisibilitySerializer,
        responses={200: JobSerializer, 403: 'Forbidden', 404: 'Not Found'}
    )
    def patch(self, request, pk):
        serializer = JobVisibilitySerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        job = set_job_visibility(pk, request.user, serializer.validated_data['is_active'])
        return success(JobSerializer(job).data, 'Job visibility updated')


class WorkDoneView(APIView):
    permission_classes = [IsAuthenticated, IsFreelancer]

    @swagger_auto_schema(
        operation_description="Mark an assigned job as done.",
        responses={200: JobSerializer, 403: 'Forbidden', 404: 'Not Found'}
    )
    def post(self, request, pk):
        job = mark_work_done(pk, request.user)
        on_commit(lambda: notify_work_done(job))
        return success(JobSerializer(job).data, 'Job marked as done')


class JobOffersView(APIView):
    permission_classes = [IsAuthenticated, IsClient]

    @swagger_auto_schema(
        operation_description="List offers on a job owned by the authenticated client.",
        manual_parameters=[status_param] + page_params,
        responses={200: OfferSerializer(many=True), 403: 'Forbidden', 404: 'Not Found'}
    )
    def get(self, request, pk):
        offers = offers_for_job(pk, request.user, request.query_params.get('status'))
        return paginate(self, request, offers, OfferSerializer, key='offers')


class SubmitOfferView(APIView):
    permission_classes = [IsAuthenticated, IsFreelancer]

    @swagger_auto_schema(
        operation_description=(
            "Send an offer on an open job. direct_apply accepts itself and assigns the job "
            "immediately; custom_offer waits for the client. Resubmitting within the cooldown is refused, "
            "after it the existing offer is updated."
        ),
        request_body=OfferSubmitSerializer,
        responses={
            201: OfferSerializer,
            200: OfferSerializer,
            400: 'Bad Request',
            403: 'Verification required',
            404: 'Not Found',
            429: 'Cooldown active'
        }
    )
    def post(self, request, pk):
        serializer = OfferSubmitSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        result = submit_offer(
            pk,
            request.user,
            offered_amount=serializer.validated_data.get('offered_amount'),
            message=serializer.validated_data.get('message'),
            offer_type=serializer.validated_data['offer_type'],
        )
        data = OfferSerializer(result.offer).data
        data['created'] = result.created
        if result.created:
            return success(data, 'Offer sent successfully', status.HTTP_201_CREATED)
        return success(data, 'Offer updated successfully')


class RespondOfferView(APIView):
    permission_classes = [IsAuthenticated, IsClient]

    @swagger_auto_schema(
        operation_description="Accept or reject a pending offer. Accepting assigns the job and rejects the other offers.",
        request_body=OfferResponseSerializer,
        responses={200: OfferSerializer, 400: 'Already resolved or job not open', 404: 'Not Found'}
    )
    def post(self, request, pk):
        serializer = OfferResponseSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        offer = respond_to_offer(
            pk,
            request.user,
            serializer.validated_data['action'],
            serializer.validated_data.get('response_message'),
        )
        return success(
            {'offer': OfferSerializer(offer).data, 'job': JobSerializer(offer.job).data},
            f"Offer {offer.status} successfully"
        )


class WithdrawOfferView(APIView):
    permission_classes = [IsAuthenticated, IsFreelancer]

    @swagger_auto_schema(
        operation_description="Withdraw one of your pending offers.",
        responses={200: OfferSerializer, 400: 'Offer not pending', 403: 'Forbidden', 404: 'Not Found'}
    )
    def post(self, request, pk):
        offer = withdraw_offer(pk, request.user)
        return success(OfferSerializer(offer).data, 'Offer withdrawn')


class MyOffersView(APIView):
    permission_classes = [IsAuthenticated, IsFreelancer]

    @swagger_auto_schema(
        operation_description="List offers sent by the authenticated freelancer.",
        manual_parameters=[status_param] + page_params,
        responses={200: OfferSerializer(many=True), 401: 'Unauthorized', 403: 'Forbidden'}
    )
    def get(self, request):
        offers = Offer.objects.filter(freelancer=request.user).select_related('job', 'freelancer')
        offer_status = request.query_params.get('status')
        if offer_status:
            offers = offers.filter(status=offer_status)
        return paginate(self, request, offers, OfferSerializer, key='offers')
