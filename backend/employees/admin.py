from django.contrib import admin
from django.contrib.auth.admin import UserAdmin as BaseUserAdmin
from .models import User, EmployeeAllowance


class EmployeeAllowanceInline(admin.TabularInline):
    model = EmployeeAllowance
    fk_name = 'employee'
    extra = 0
    fields = ['allowance_type', 'name', 'amount', 'effective_from', 'effective_to']


@admin.register(User)
class UserAdmin(BaseUserAdmin):
    list_display = ['email', 'first_name', 'last_name', 'employee_number', 'role', 'employment_status', 'is_active']
    list_filter = ['role', 'employment_status', 'is_active']
    search_fields = ['email', 'first_name', 'last_name', 'employee_number', 'kra_pin']
    ordering = ['first_name', 'last_name']
    inlines = [EmployeeAllowanceInline]

    fieldsets = (
        (None, {'fields': ('email', 'password')}),
        ('Personal Info', {'fields': ('first_name', 'last_name')}),
        ('Employment', {'fields': ('employee_number', 'role', 'employment_status')}),
        ('Statutory', {'fields': ('kra_pin', 'nssf_number')}),
        ('Banking', {'fields': ('bank_name', 'bank_account_number')}),
        ('Payroll', {
            'fields': (
                'basic_salary', 'pension_contribution', 'prmf_contribution',
                'mortgage_interest', 'insurance_premium'
            )
        }),
        ('Permissions', {
            'fields': ('is_active', 'is_staff', 'is_superuser', 'groups', 'user_permissions'),
            'classes': ('collapse',)
        }),
        ('Important Dates', {'fields': ('last_login',)}),
    )

    add_fieldsets = (
        (None, {
            'classes': ('wide',),
            'fields': ('email', 'first_name', 'last_name', 'password1', 'password2'),
        }),
    )


@admin.register(EmployeeAllowance)
class EmployeeAllowanceAdmin(admin.ModelAdmin):
    list_display = ['employee', 'allowance_type', 'amount', 'effective_from', 'effective_to']
    list_filter = ['allowance_type']
    search_fields = ['employee__first_name', 'employee__last_name', 'employee__email']
    raw_id_fields = ['employee']
