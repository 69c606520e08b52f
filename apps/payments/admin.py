from django.contrib import admin
from .models import Transaction, Wallet, CommissionRate

@admin.register(Transaction)
class TransactionAdmin(admin.ModelAdmin):
    list_display = ('reference_id', 'type', 'amount', 'status', 'payment_method', 'job', 'freelancer', 'created_at')
    list_filter = ('type', 'status', 'payment_method')
    search_fields = ('reference_id', 'gateway_order_id', 'job__title', 'freelancer__username', 'client__username')

    # Ledger entries are written by settlement and withdrawals only
    def has_change_permission(self, request, obj=None):
        return False

    def has_delete_permission(self, request, obj=None):
        return False

@admin.register(Wallet)
class WalletAdmin(admin.ModelAdmin):
    list_display = ('user', 'balance', 'is_active', 'updated_at')
    search_fields = ('user__username', 'user__phone_number')
    readonly_fields = ('balance',)

@admin.register(CommissionRate)
class CommissionRateAdmin(admin.ModelAdmin):
    list_display = ('version', 'rate', 'changed_by', 'created_at')
    readonly_fields = ('version', 'rate', 'changed_by')
