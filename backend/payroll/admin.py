from django.contrib import admin
from .models import PayrollBatch, PayrollEntry, TaxTable, Disbursement, DisbursementLine


class PayrollEntryInline(admin.TabularInline):
    model = PayrollEntry
    fk_name = 'batch'
    extra = 0
    readonly_fields = [
        'position', 'employee_code', 'employee_name', 'gross_salary', 'paye', 'nssf', 'sha',
        'housing_levy', 'total_deductions', 'net_salary', 'status'
    ]
    exclude = ['employee', 'account_number', 'created_by', 'updated_by']
    can_delete = False

    def has_add_permission(self, request, obj=None):
        return False


@admin.register(PayrollBatch)
class PayrollBatchAdmin(admin.ModelAdmin):
    list_display = ['batch_id', 'name', 'status', 'total_employees', 'total_gross', 'total_net', 'prepared_by', 'created_at']
    list_filter = ['status', 'year']
    search_fields = ['batch_id', 'name']
    readonly_fields = [
        'batch_id', 'year', 'month', 'name', 'tax_config_version', 'skipped',
        'total_employees', 'total_gross', 'total_net', 'total_paye', 'total_nssf', 'total_sha',
        'total_housing_levy', 'total_deductions'
    ]
    inlines = [PayrollEntryInline]

    fieldsets = (
        (None, {'fields': ('batch_id', 'year', 'month', 'name', 'status', 'tax_config_version')}),
        ('Totals', {
            'fields': (
                'total_employees', 'total_gross', 'total_net', 'total_paye', 'total_nssf',
                'total_sha', 'total_housing_levy', 'total_deductions'
            ),
            'classes': ('collapse',)
        }),
        ('Skipped Employees', {
            'fields': ('skipped',),
            'classes': ('collapse',)
        }),
        ('Approval Workflow', {
            'fields': (
                'prepared_by', 'prepared_at',
                'hr_approved_by', 'hr_approved_at', 'hr_comments',
                'mgmt_approved_by', 'mgmt_approved_at', 'mgmt_comments'
            ),
            'classes': ('collapse',)
        }),
    )


@admin.register(TaxTable)
class TaxTableAdmin(admin.ModelAdmin):
    list_display = ['version', 'effective_from', 'effective_to', 'is_active', 'personal_relief']
    list_filter = ['is_active']

    fieldsets = (
        (None, {'fields': ('version', 'effective_from', 'effective_to', 'is_active')}),
        ('PAYE Tax Bands', {
            'fields': (
                ('band_1_limit', 'band_1_rate'),
                ('band_2_limit', 'band_2_rate'),
                ('band_3_limit', 'band_3_rate'),
                ('band_4_limit', 'band_4_rate'),
                'band_5_rate'
            )
        }),
        ('Reliefs', {
            'fields': ('personal_relief', 'insurance_relief_rate', 'insurance_relief_max')
        }),
        ('NSSF', {
            'fields': ('nssf_rate', 'nssf_upper_limit')
        }),
        ('Other Statutory', {
            'fields': ('sha_rate', 'housing_levy_rate')
        }),
        ('P9 Limits', {
            'fields': ('pension_max_deduction', 'prmf_max_deduction', 'mortgage_interest_max')
        }),
    )


class DisbursementLineInline(admin.TabularInline):
    model = DisbursementLine
    extra = 0
    readonly_fields = ['position', 'employee_code', 'employee_name', 'net_salary', 'account_number', 'status']
    exclude = ['created_by', 'updated_by']
    can_delete = False

    def has_add_permission(self, request, obj=None):
        return False


@admin.register(Disbursement)
class DisbursementAdmin(admin.ModelAdmin):
    list_display = ['report_id', 'batch', 'status', 'disbursement_method', 'total_net_amount', 'disbursement_date']
    list_filter = ['status', 'disbursement_method']
    search_fields = ['report_id', 'batch__batch_id']
    readonly_fields = [
        'batch', 'report_id', 'status', 'approved_by', 'approved_date', 'total_employees',
        'total_gross_amount', 'total_deductions', 'total_net_amount'
    ]
    inlines = [DisbursementLineInline]
