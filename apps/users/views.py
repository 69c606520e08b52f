from rest_framework.views import APIView
from rest_framework import status
from rest_framework.permissions import IsAuthenticated, AllowAny
from drf_yasg.utils import swagger_auto_schema
from drf_yasg import openapi
import logging

from core.exceptions import InvalidState
from core.utils import success
from .models import ClientProfile, FreelancerProfile
from .roles import get_role_info, switch_role, validate_role_switch
from .serializers import (
    UserSerializer, ClientProfileSerializer, FreelancerProfileSerializer,
    RoleCheckSerializer, RoleSwitchSerializer
)

logger = logging.getLogger(__name__)

role_result_schema = openapi.Schema(
    type=openapi.TYPE_OBJECT,
    properties={
        'can_switch': openapi.Schema(type=openapi.TYPE_BOOLEAN),
        'message': openapi.Schema(type=openapi.TYPE_STRING),
        'conflict_type': openapi.Schema(type=openapi.TYPE_STRING, enum=['open_jobs', 'active_jobs']),
        'conflict_count': openapi.Schema(type=openapi.TYPE_INTEGER),
        'conflicts': openapi.Schema(type=openapi.TYPE_ARRAY, items=openapi.Schema(type=openapi.TYPE_OBJECT)),
    }
)


class RoleCheckView(APIView):
    permission_classes = [AllowAny]

    @swagger_auto_schema(
        operation_description=(
            "Check whether the account behind a phone number may sign in with the requested role. "
            "Called by the identity flow before a role is assigned. Conflicting jobs are listed only to "
            "the account owner and admins."
        ),
        request_body=RoleCheckSerializer,
        responses={200: openapi.Response(description='Role check result', schema=role_result_schema)}
    )
    def post(self, request):
        serializer = RoleCheckSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        phone_number = serializer.validated_data['phone_number']
        result = validate_role_switch(phone_number, serializer.validated_data['requested_role'])
        data = result.as_dict()
        # Conflicting jobs are only listed to the account owner and admins
        user = request.user
        if not (user.is_authenticated and (user.is_platform_admin or user.phone_number == phone_number)):
            data.pop('conflicts', None)
        return success(data, result.message)


class RoleInfoView(APIView):
    permission_classes = [IsAuthenticated]

    @swagger_auto_schema(
        operation_description="Role, verification flag and open/active job conflicts for a phone number.",
        manual_parameters=[
            openapi.Parameter('phone_number', openapi.IN_QUERY, type=openapi.TYPE_STRING, description='Admins only'),
        ]
    )
    def get(self, request):
        # Only admins may look up other accounts
        phone_number = request.user.phone_number
        if request.user.is_platform_admin:
            phone_number = request.query_params.get('phone_number') or phone_number
        return success(get_role_info(phone_number))


class SwitchRoleView(APIView):
    permission_classes = [IsAuthenticated]

    @swagger_auto_schema(
        operation_description="Switch the authenticated user's role. Refused while open or active jobs remain.",
        request_body=RoleSwitchSerializer,
        responses={200: UserSerializer, 403: 'Forbidden', 409: 'Role conflict'}
    )
    def post(self, request):
        serializer = RoleSwitchSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        user = switch_role(request.user, serializer.validated_data['role'])
        return success(UserSerializer(user).data, f"Role switched to {user.role}")


class UserProfileView(APIView):
    permission_classes = [IsAuthenticated]

    def get_profile(self, user):
        if user.is_client:
            return ClientProfile.objects.filter(user=user).first(), ClientProfileSerializer
        if user.is_freelancer:
            return FreelancerProfile.objects.filter(user=user).first(), FreelancerProfileSerializer
        return None, None

    @swagger_auto_schema(operation_description="Account and role profile of the authenticated user.")
    def get(self, request):
        profile, serializer_class = self.get_profile(request.user)
        return success({
            'user': UserSerializer(request.user).data,
            'profile': serializer_class(profile).data if profile else None,
        })

    @swagger_auto_schema(
        operation_description="Create or update the profile for the user's current role.",
        request_body=openapi.Schema(
            type=openapi.TYPE_OBJECT,
            properties={
                'full_name': openapi.Schema(type=openapi.TYPE_STRING),
                'company': openapi.Schema(type=openapi.TYPE_STRING),
                'address': openapi.Schema(type=openapi.TYPE_STRING),
                'gender': openapi.Schema(type=openapi.TYPE_STRING, enum=['male', 'female', 'other']),
                'city': openapi.Schema(type=openapi.TYPE_STRING),
            }
        ),
        responses={200: 'Profile saved', 201: 'Profile created', 400: 'Bad Request'}
    )
    def put(self, request):
        profile, serializer_class = self.get_profile(request.user)
        if serializer_class is None:
            raise InvalidState('Admin accounts have no role profile')
        serializer = serializer_class(profile, data=request.data, partial=profile is not None)
        serializer.is_valid(raise_exception=True)
        saved = serializer.save(user=request.user)
        logger.info(f"Profile saved for user {request.user.id} ({request.user.role})")
        return success(
            serializer_class(saved).data,
            'Profile saved successfully',
            status.HTTP_200_OK if profile else status.HTTP_201_CREATED
        )
