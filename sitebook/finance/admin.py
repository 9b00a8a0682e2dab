from django.contrib import admin
from .models import Expense, Payment, MemberAdvance


class PaymentInline(admin.TabularInline):
    model = Payment
    extra = 0
    fields = ['type', 'payment_mode', 'amount', 'payment_date', 'reference_number']
    readonly_fields = ['type']


@admin.register(Expense)
class ExpenseAdmin(admin.ModelAdmin):
    list_display = ['id', 'project', 'party', 'category', 'rate', 'quantity', 'get_amount', 'status', 'expense_date']
    list_filter = ['status', 'expense_date', 'organization']
    search_fields = ['description', 'party__name', 'project__name']
    raw_id_fields = ['project', 'party', 'stage', 'member_advance', 'recorded_by']
    inlines = [PaymentInline]

    @admin.display(description='Amount')
    def get_amount(self, obj):
        return obj.amount


@admin.register(Payment)
class PaymentAdmin(admin.ModelAdmin):
    list_display = ['id', 'project', 'party', 'type', 'payment_mode', 'amount', 'payment_date']
    list_filter = ['type', 'payment_mode', 'payment_date', 'organization']
    search_fields = ['reference_number', 'party__name', 'project__name']
    raw_id_fields = ['project', 'party', 'expense', 'recorded_by']


@admin.register(MemberAdvance)
class MemberAdvanceAdmin(admin.ModelAdmin):
    list_display = ['id', 'project', 'member', 'amount', 'purpose', 'advance_date']
    list_filter = ['payment_mode', 'advance_date', 'organization']
    search_fields = ['purpose', 'member__name', 'project__name']
    raw_id_fields = ['project', 'member', 'recorded_by']
