from django.contrib import admin
from .models import Job, Offer

@admin.register(Job)
class JobAdmin(admin.ModelAdmin):
    list_display = ('title', 'client', 'freelancer', 'category', 'amount', 'status', 'is_active', 'created_at')
    list_filter = ('status', 'category', 'is_active')
    search_fields = ('title', 'client__username', 'freelancer__username', 'city')
    readonly_fields = ('status', 'assigned_at', 'work_completed_at', 'payment_completed_at', 'cancelled_at')

@admin.register(Offer)
class OfferAdmin(admin.ModelAdmin):
    list_display = ('job', 'freelancer', 'offered_amount', 'original_amount', 'offer_type', 'status', 'created_at')
    list_filter = ('status', 'offer_type')
    search_fields = ('job__title', 'freelancer__username')
    readonly_fields = ('status', 'responded_at')
