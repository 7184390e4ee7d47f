"""
Payroll models for HRS - Statutory Payroll
Persists payroll batches, disbursements and the versioned PAYE tax table.
"""
from django.db import models
from django.conf import settings
from decimal import Decimal
from core.models import BaseModel
from payroll.services.structures import (
    DisbursementEntry,
    DisbursementReport,
    EntryStatus,
    PayPeriod,
    PayrollLineItem,
    PayrollRun,
    ReportStatus,
    RunTotals,
    SkippedEmployee,
)
from payroll.services.tax_config import build_config


class PayrollBatch(BaseModel):
    """
    A persisted payroll run for one period.

    Line items and totals are written once, when the batch is created.
    Re-running a period creates a new batch; only the approval workflow
    fields change afterwards.
    """

    class Status(models.TextChoices):
        PENDING_HR = 'pending_hr', 'Pending HR Approval'
        PENDING_MANAGEMENT = 'pending_mgmt', 'Pending Management Approval'
        APPROVED = 'approved', 'Approved'
        REJECTED = 'rejected', 'Rejected'
        DISBURSING = 'disbursing', 'Disbursing'
        PAID = 'paid', 'Paid'
        FAILED = 'failed', 'Disbursement Failed'

    batch_id = models.CharField(max_length=50, unique=True)
    year = models.IntegerField()
    month = models.IntegerField()
    name = models.CharField(max_length=50, blank=True)
    status = models.CharField(
        max_length=20,
        choices=Status.choices,
        default=Status.PENDING_HR
    )
    tax_config_version = models.CharField(max_length=50, blank=True)
    skipped = models.JSONField(
        default=list,
        blank=True,
        help_text='Employees excluded from the run and why'
    )

    # Approval workflow
    prepared_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        related_name='payroll_prepared'
    )
    prepared_at = models.DateTimeField(null=True, blank=True)

    hr_approved_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='payroll_hr_approved'
    )
    hr_approved_at = models.DateTimeField(null=True, blank=True)
    hr_comments = models.TextField(blank=True)

    mgmt_approved_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='payroll_mgmt_approved'
    )
    mgmt_approved_at = models.DateTimeField(null=True, blank=True)
    mgmt_comments = models.TextField(blank=True)

    # Totals (copied from the run)
    total_employees = models.IntegerField(default=0)
    total_gross = models.DecimalField(max_digits=14, decimal_places=2, default=0)
    total_paye = models.DecimalField(max_digits=14, decimal_places=2, default=0)
    total_nssf = models.DecimalField(max_digits=14, decimal_places=2, default=0)
    total_sha = models.DecimalField(max_digits=14, decimal_places=2, default=0)
    total_housing_levy = models.DecimalField(max_digits=14, decimal_places=2, default=0)
    total_deductions = models.DecimalField(max_digits=14, decimal_places=2, default=0)
    total_net = models.DecimalField(max_digits=14, decimal_places=2, default=0)

    class Meta:
        ordering = ['-year', '-month', '-created_at']
        verbose_name_plural = 'Payroll Batches'

    def __str__(self):
        return f"{self.batch_id} ({self.name})"

    @property
    def period(self) -> PayPeriod:
        return PayPeriod(self.year, self.month)

    def save(self, *args, **kwargs):
        if not self.name:
            self.name = f"{self.period.month_name} {self.year}"
        super().save(*args, **kwargs)

    @classmethod
    def create_from_run(cls, run: PayrollRun, prepared_by=None, employees=None, prepared_at=None):
        """
        Persist a run with its line items.

        Args:
            run: The computed PayrollRun
            prepared_by: User preparing the payroll
            employees: Optional mapping of payroll id to User, to link entries
            prepared_at: Preparation timestamp

        Returns:
            The new PayrollBatch
        """
        employees = employees or {}
        totals = run.totals
        batch = cls.objects.create(
            batch_id=run.batch_id,
            year=run.period.year,
            month=run.period.month,
            tax_config_version=run.tax_config_version,
            skipped=[s.to_dict() for s in run.skipped],
            prepared_by=prepared_by,
            prepared_at=prepared_at,
            created_by=prepared_by,
            total_employees=totals.employees,
            total_gross=totals.gross_salary,
            total_paye=totals.paye,
            total_nssf=totals.nssf,
            total_sha=totals.sha,
            total_housing_levy=totals.housing_levy,
            total_deductions=totals.total_deductions,
            total_net=totals.net_salary,
        )
        PayrollEntry.objects.bulk_create([
            PayrollEntry(
                batch=batch,
                position=position,
                employee=employees.get(item.employee_id),
                employee_code=item.employee_id,
                employee_name=item.employee_name,
                account_number=item.account_number,
                gross_salary=item.gross_salary,
                paye=item.paye,
                nssf=item.nssf,
                sha=item.sha,
                housing_levy=item.housing_levy,
                total_deductions=item.total_deductions,
                net_salary=item.net_salary,
                status=item.status.value,
            )
            for position, item in enumerate(run.items)
        ])
        return batch

    def to_run(self) -> PayrollRun:
        """Re-derive the PayrollRun this batch was created from."""
        items = [entry.to_line_item(self.period) for entry in self.entries.order_by('position')]
        return PayrollRun(
            batch_id=self.batch_id,
            period=self.period,
            items=items,
            skipped=[SkippedEmployee(s['employeeId'], s['reason']) for s in self.skipped],
            totals=RunTotals.from_items(items),
            tax_config_version=self.tax_config_version,
        )


class PayrollEntry(BaseModel):
    """
    Individual payroll line for an employee in a batch.
    """

    batch = models.ForeignKey(
        PayrollBatch,
        on_delete=models.CASCADE,
        related_name='entries'
    )
    position = models.PositiveIntegerField(help_text='Roster order within the batch')
    employee = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.PROTECT,
        null=True,
        blank=True,
        related_name='payroll_entries'
    )
    employee_code = models.CharField(max_length=50)
    employee_name = models.CharField(max_length=255, blank=True)
    account_number = models.CharField(max_length=50, blank=True)

    gross_salary = models.DecimalField(max_digits=12, decimal_places=2, default=0)
    paye = models.DecimalField(
        max_digits=12,
        decimal_places=2,
        default=0,
        help_text='Pay As You Earn tax after reliefs'
    )
    nssf = models.DecimalField(
        max_digits=12,
        decimal_places=2,
        default=0,
        help_text='NSSF contribution (6%, max KES 2,160)'
    )
    sha = models.DecimalField(
        max_digits=12,
        decimal_places=2,
        default=0,
        help_text='Social Health Insurance Fund (2.75% of gross)'
    )
    housing_levy = models.DecimalField(
        max_digits=12,
        decimal_places=2,
        default=0,
        help_text='Affordable Housing Levy (1.5% of gross)'
    )
    total_deductions = models.DecimalField(max_digits=12, decimal_places=2, default=0)
    net_salary = models.DecimalField(max_digits=12, decimal_places=2, default=0)
    status = models.CharField(max_length=20, default='Processed')

    class Meta:
        unique_together = ['batch', 'employee_code']
        ordering = ['batch', 'position']
        verbose_name_plural = 'Payroll Entries'

    def __str__(self):
        return f"{self.employee_name or self.employee_code} - {self.batch}"

    def to_line_item(self, period: PayPeriod) -> PayrollLineItem:
        return PayrollLineItem(
            employee_id=self.employee_code,
            employee_name=self.employee_name,
            account_number=self.account_number,
            period=period,
            gross_salary=self.gross_salary,
            paye=self.paye,
            nssf=self.nssf,
            sha=self.sha,
            housing_levy=self.housing_levy,
            total_deductions=self.total_deductions,
            net_salary=self.net_salary,
        )


class TaxTable(BaseModel):
    """
    PAYE tax bands and statutory rates, versioned and effective-dated.
    Allows updating tax rates without code changes; the payroll run and
    the P9 card both resolve their configuration here.
    """

    version = models.CharField(max_length=50, unique=True)
    effective_from = models.DateField()
    effective_to = models.DateField(null=True, blank=True)
    is_active = models.BooleanField(default=True)

    # Tax bands (monthly amounts in KES)
    band_1_limit = models.DecimalField(
        max_digits=12,
        decimal_places=2,
        default=24000,
        help_text='Upper limit for 10% band'
    )
    band_1_rate = models.DecimalField(
        max_digits=5,
        decimal_places=4,
        default=Decimal('0.10')
    )

    band_2_limit = models.DecimalField(
        max_digits=12,
        decimal_places=2,
        default=32333,
        help_text='Upper limit for 25% band'
    )
    band_2_rate = models.DecimalField(
        max_digits=5,
        decimal_places=4,
        default=Decimal('0.25')
    )

    band_3_limit = models.DecimalField(
        max_digits=12,
        decimal_places=2,
        default=500000,
        help_text='Upper limit for 30% band'
    )
    band_3_rate = models.DecimalField(
        max_digits=5,
        decimal_places=4,
        default=Decimal('0.30')
    )

    band_4_limit = models.DecimalField(
        max_digits=12,
        decimal_places=2,
        default=800000,
        help_text='Upper limit for 32.5% band'
    )
    band_4_rate = models.DecimalField(
        max_digits=5,
        decimal_places=4,
        default=Decimal('0.325')
    )

    band_5_rate = models.DecimalField(
        max_digits=5,
        decimal_places=4,
        default=Decimal('0.35'),
        help_text='Rate for income above band 4'
    )

    # Reliefs
    personal_relief = models.DecimalField(
        max_digits=12,
        decimal_places=2,
        default=2400
    )
    insurance_relief_rate = models.DecimalField(
        max_digits=5,
        decimal_places=4,
        default=Decimal('0.15')
    )
    insurance_relief_max = models.DecimalField(
        max_digits=12,
        decimal_places=2,
        default=5000
    )

    # NSSF
    nssf_rate = models.DecimalField(
        max_digits=5,
        decimal_places=4,
        default=Decimal('0.06')
    )
    nssf_upper_limit = models.DecimalField(
        max_digits=12,
        decimal_places=2,
        default=36000,
        help_text='Upper earnings limit for NSSF contributions'
    )

    # SHIF and Housing Levy rates
    sha_rate = models.DecimalField(
        max_digits=5,
        decimal_places=4,
        default=Decimal('0.0275')
    )
    housing_levy_rate = models.DecimalField(
        max_digits=5,
        decimal_places=4,
        default=Decimal('0.015')
    )

    # P9 deduction limits (monthly)
    pension_max_deduction = models.DecimalField(
        max_digits=12,
        decimal_places=2,
        default=30000,
        help_text='Maximum pension contribution deductible from chargeable pay'
    )
    prmf_max_deduction = models.DecimalField(
        max_digits=12,
        decimal_places=2,
        default=15000,
        help_text='Maximum post-retirement medical fund contribution deductible'
    )
    mortgage_interest_max = models.DecimalField(
        max_digits=12,
        decimal_places=2,
        default=30000,
        help_text='Maximum mortgage interest deduction per month'
    )

    class Meta:
        ordering = ['-effective_from']

    def __str__(self):
        return f"Tax Table {self.version} from {self.effective_from}"

    @classmethod
    def get_active(cls, date=None):
        """Get the active tax table for a given date."""
        from django.utils import timezone
        if date is None:
            date = timezone.now().date()

        return cls.objects.filter(
            is_active=True,
            effective_from__lte=date
        ).filter(
            models.Q(effective_to__isnull=True) | models.Q(effective_to__gte=date)
        ).first()

    @classmethod
    def config_for(cls, date=None) -> dict:
        """
        Engine configuration effective on a date.

        Falls back to PAYROLL['TAX_CONFIG'] overrides on the built-in
        defaults when no table row is active.
        """
        tax_table = cls.get_active(date)
        if tax_table:
            return build_config(tax_table.as_config())
        return build_config(settings.PAYROLL.get('TAX_CONFIG'))

    def as_config(self) -> dict:
        return {
            'version': self.version,
            'bands': [
                (self.band_1_limit, self.band_1_rate),
                (self.band_2_limit, self.band_2_rate),
                (self.band_3_limit, self.band_3_rate),
                (self.band_4_limit, self.band_4_rate),
                (None, self.band_5_rate),
            ],
            'personal_relief': self.personal_relief,
            'insurance_relief_rate': self.insurance_relief_rate,
            'insurance_relief_max': self.insurance_relief_max,
            'nssf_rate': self.nssf_rate,
            'nssf_upper_limit': self.nssf_upper_limit,
            'sha_rate': self.sha_rate,
            'housing_levy_rate': self.housing_levy_rate,
            'pension_max_deduction': self.pension_max_deduction,
            'prmf_max_deduction': self.prmf_max_deduction,
            'mortgage_interest_max': self.mortgage_interest_max,
        }


class Disbursement(BaseModel):
    """
    Persisted disbursement report for an approved batch.
    """

    class Status(models.TextChoices):
        APPROVED = ReportStatus.APPROVED.value, 'Approved'
        DISBURSED = ReportStatus.DISBURSED.value, 'Disbursed'
        FAILED = ReportStatus.FAILED.value, 'Failed'

    batch = models.OneToOneField(
        PayrollBatch,
        on_delete=models.PROTECT,
        related_name='disbursement'
    )
    report_id = models.CharField(max_length=60, unique=True)
    status = models.CharField(
        max_length=20,
        choices=Status.choices,
        default=Status.APPROVED
    )
    approved_by = models.CharField(max_length=255)
    approved_date = models.DateField()
    disbursement_date = models.DateField()
    disbursement_method = models.CharField(max_length=50)
    total_employees = models.IntegerField()
    total_gross_amount = models.DecimalField(max_digits=14, decimal_places=2)
    total_deductions = models.DecimalField(max_digits=14, decimal_places=2)
    total_net_amount = models.DecimalField(max_digits=14, decimal_places=2)
    notes = models.TextField(blank=True)

    class Meta:
        ordering = ['-disbursement_date']

    def __str__(self):
        return f"{self.report_id} ({self.status})"

    @classmethod
    def create_from_report(cls, batch: PayrollBatch, report: DisbursementReport, created_by=None):
        disbursement = cls.objects.create(
            batch=batch,
            report_id=report.report_id,
            status=report.status.value,
            approved_by=report.approved_by,
            approved_date=report.approved_date,
            disbursement_date=report.disbursement_date,
            disbursement_method=report.disbursement_method,
            total_employees=report.total_employees,
            total_gross_amount=report.total_gross_amount,
            total_deductions=report.total_deductions,
            total_net_amount=report.total_net_amount,
            notes=report.notes,
            created_by=created_by,
        )
        DisbursementLine.objects.bulk_create([
            DisbursementLine(
                disbursement=disbursement,
                position=position,
                employee_code=entry.employee_id,
                employee_name=entry.employee_name,
                net_salary=entry.net_salary,
                account_number=entry.account_number,
                status=entry.disbursement_status.value,
            )
            for position, entry in enumerate(report.employees)
        ])
        return disbursement

    def to_report(self) -> DisbursementReport:
        return DisbursementReport(
            report_id=self.report_id,
            batch_id=self.batch.batch_id,
            period=self.batch.period,
            total_employees=self.total_employees,
            total_gross_amount=self.total_gross_amount,
            total_deductions=self.total_deductions,
            total_net_amount=self.total_net_amount,
            approved_by=self.approved_by,
            approved_date=self.approved_date,
            disbursement_date=self.disbursement_date,
            disbursement_method=self.disbursement_method,
            employees=[line.to_entry() for line in self.lines.order_by('position')],
            status=ReportStatus(self.status),
            notes=self.notes,
        )

    def sync_from_report(self, report: DisbursementReport, updated_by=None):
        """Write back statuses and notes changed by the engine."""
        lines = {line.employee_code: line for line in self.lines.all()}
        for entry in report.employees:
            line = lines[entry.employee_id]
            if line.status != entry.disbursement_status.value:
                line.status = entry.disbursement_status.value
                line.updated_by = updated_by
                line.save(update_fields=['status', 'updated_by', 'updated_at'])

        self.status = report.status.value
        self.notes = report.notes
        self.updated_by = updated_by
        self.save(update_fields=['status', 'notes', 'updated_by', 'updated_at'])


class DisbursementLine(BaseModel):
    """Per-employee payment within a disbursement."""

    class Status(models.TextChoices):
        PENDING = EntryStatus.PENDING.value, 'Pending'
        SUCCESS = EntryStatus.SUCCESS.value, 'Success'
        FAILED = EntryStatus.FAILED.value, 'Failed'

    disbursement = models.ForeignKey(
        Disbursement,
        on_delete=models.CASCADE,
        related_name='lines'
    )
    position = models.PositiveIntegerField()
    employee_code = models.CharField(max_length=50)
    employee_name = models.CharField(max_length=255, blank=True)
    net_salary = models.DecimalField(max_digits=12, decimal_places=2)
    account_number = models.CharField(max_length=50, blank=True)
    status = models.CharField(
        max_length=20,
        choices=Status.choices,
        default=Status.PENDING
    )

    class Meta:
        unique_together = ['disbursement', 'employee_code']
        ordering = ['disbursement', 'position']

    def __str__(self):
        return f"{self.employee_name or self.employee_code}: {self.net_salary} ({self.status})"

    def to_entry(self) -> DisbursementEntry:
        return DisbursementEntry(
            employee_id=self.employee_code,
            employee_name=self.employee_name,
            net_salary=self.net_salary,
            account_number=self.account_number,
            disbursement_status=EntryStatus(self.status),
        )
