from django.contrib import admin
from .models import User, ClientProfile, FreelancerProfile

@admin.register(User)
class UserAdmin(admin.ModelAdmin):
    list_display = ('username', 'email', 'phone_number', 'role', 'role_version', 'is_superuser', 'is_verified')
    list_filter = ('role', 'is_superuser', 'is_verified')
    search_fields = ('username', 'email', 'phone_number')
    readonly_fields = ('role_version',)

@admin.register(ClientProfile)
class ClientProfileAdmin(admin.ModelAdmin):
    list_display = ('user', 'full_name', 'is_profile_complete', 'total_jobs_posted', 'total_spent')
    search_fields = ('user__username', 'user__phone_number', 'full_name')

@admin.register(FreelancerProfile)
class FreelancerProfileAdmin(admin.ModelAdmin):
    list_display = ('user', 'full_name', 'freelancer_code', 'verification_status', 'completed_jobs', 'total_earnings')
    search_fields = ('user__username', 'user__phone_number', 'full_name', 'freelancer_code')
    list_filter = ('verification_status', 'gender')
