from django.urls import path
from rest_framework.authtoken.views import obtain_auth_token
from .views import RoleCheckView, RoleInfoView, SwitchRoleView, UserProfileView

urlpatterns = [
    # Authentication
    path('auth/token/', obtain_auth_token, name='auth_token'),
    path('auth/role-check/', RoleCheckView.as_view(), name='role_check'),

    # Roles
    path('role/info/', RoleInfoView.as_view(), name='role_info'),
    path('role/switch/', SwitchRoleView.as_view(), name='role_switch'),

    # Profile
    path('profile/', UserProfileView.as_view(), name='user_profile'),
]
