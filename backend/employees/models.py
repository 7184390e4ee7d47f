"""
Employee models for HRS - Statutory Payroll
"""
from datetime import date
from decimal import Decimal

from django.contrib.auth.models import AbstractUser, BaseUserManager
from django.db import models
from core.models import BaseModel
from payroll.services.structures import CompensationStructure, EmployeeRecord
from payroll.services.structures import EmploymentStatus as RosterStatus


class UserManager(BaseUserManager):
    """Custom user manager for email-based authentication."""

    def create_user(self, email, password=None, **extra_fields):
        if not email:
            raise ValueError('Email address is required')
        email = self.normalize_email(email)
        user = self.model(email=email, **extra_fields)
        user.set_password(password)
        user.save(using=self._db)
        return user

    def create_superuser(self, email, password=None, **extra_fields):
        extra_fields.setdefault('is_staff', True)
        extra_fields.setdefault('is_superuser', True)
        extra_fields.setdefault('role', User.Role.ADMIN)
        return self.create_user(email, password, **extra_fields)

    def payroll_roster(self):
        """Employees in payroll order; status filtering is left to the run."""
        return self.filter(is_active=True).order_by('employee_number', 'first_name', 'last_name')


class User(AbstractUser, BaseModel):
    """
    Custom User model for HRS.
    Every employee on the payroll is a user; email is the login.
    """

    class Role(models.TextChoices):
        EMPLOYEE = 'employee', 'Employee'
        HR = 'hr', 'Human Resource'
        ACCOUNTS = 'accounts', 'Accounts'
        MANAGEMENT = 'management', 'Management'
        ADMIN = 'admin', 'System Administrator'

    class EmploymentStatus(models.TextChoices):
        ACTIVE = 'active', 'Active'
        ON_LEAVE = 'on_leave', 'On Leave'
        SUSPENDED = 'suspended', 'Suspended'
        TERMINATED = 'terminated', 'Terminated'

    # Remove username, use email instead
    username = None
    email = models.EmailField('email address', unique=True)

    employee_number = models.CharField(max_length=20, unique=True, blank=True, null=True)
    kra_pin = models.CharField(
        max_length=11,
        blank=True,
        help_text='KRA PIN (e.g., A012345678Z)'
    )
    nssf_number = models.CharField(max_length=20, blank=True)

    role = models.CharField(
        max_length=20,
        choices=Role.choices,
        default=Role.EMPLOYEE
    )
    employment_status = models.CharField(
        max_length=20,
        choices=EmploymentStatus.choices,
        default=EmploymentStatus.ACTIVE
    )

    # Banking Information
    bank_name = models.CharField(max_length=100, blank=True)
    bank_account_number = models.CharField(max_length=50, blank=True)

    # Payroll Information
    basic_salary = models.DecimalField(
        max_digits=12,
        decimal_places=2,
        null=True,
        blank=True,
        help_text='Monthly basic salary in KES'
    )
    pension_contribution = models.DecimalField(
        max_digits=12,
        decimal_places=2,
        default=Decimal('0'),
        help_text='Monthly defined contribution retirement scheme (deductible up to 30,000)'
    )
    prmf_contribution = models.DecimalField(
        max_digits=12,
        decimal_places=2,
        default=Decimal('0'),
        help_text='Monthly post-retirement medical fund contribution (deductible up to 15,000)'
    )
    mortgage_interest = models.DecimalField(
        max_digits=12,
        decimal_places=2,
        default=Decimal('0'),
        help_text='Monthly owner-occupied mortgage interest (deductible up to 30,000)'
    )
    insurance_premium = models.DecimalField(
        max_digits=12,
        decimal_places=2,
        default=Decimal('0'),
        help_text='Monthly insurance premium for insurance relief'
    )

    USERNAME_FIELD = 'email'
    REQUIRED_FIELDS = ['first_name', 'last_name']

    objects = UserManager()

    class Meta:
        ordering = ['first_name', 'last_name']
        verbose_name = 'Employee'
        verbose_name_plural = 'Employees'

    def __str__(self):
        return f"{self.get_full_name()} ({self.email})"

    def get_full_name(self):
        return f"{self.first_name} {self.last_name}".strip() or self.email

    @property
    def is_hr(self):
        return self.role in [self.Role.HR, self.Role.ADMIN]

    @property
    def is_accounts(self):
        return self.role in [self.Role.ACCOUNTS, self.Role.ADMIN]

    @property
    def is_management(self):
        return self.role in [self.Role.MANAGEMENT, self.Role.ADMIN]

    @property
    def payroll_id(self):
        return self.employee_number or str(self.pk)

    def compensation_structure(self, on_date=None) -> CompensationStructure:
        """
        Snapshot of pay components effective on a date.

        Allowances of the same category are summed.
        """
        on_date = on_date or date.today()
        allowances = {}
        for allowance in self.allowances.all():
            if not allowance.is_effective_on(on_date):
                continue
            category = allowance.allowance_type
            allowances[category] = allowances.get(category, Decimal('0')) + allowance.amount

        return CompensationStructure(
            basic_salary=self.basic_salary,
            allowances=allowances,
            pension_contribution=self.pension_contribution,
            prmf_contribution=self.prmf_contribution,
            mortgage_interest=self.mortgage_interest,
            insurance_premium=self.insurance_premium,
        )

    def to_employee_record(self, on_date=None) -> EmployeeRecord:
        return EmployeeRecord(
            id=self.payroll_id,
            name=self.get_full_name(),
            employment_status=RosterStatus.parse(self.employment_status),
            compensation=self.compensation_structure(on_date),
            tax_id=self.kra_pin,
            account_number=self.bank_account_number,
        )


class EmployeeAllowance(BaseModel):
    """
    Monthly allowances for employees.
    These are added to basic salary for gross pay calculation.
    """

    class AllowanceType(models.TextChoices):
        HOUSING = 'housing', 'House Allowance'
        TRANSPORT = 'transport', 'Transport Allowance'
        MEDICAL = 'medical', 'Medical Allowance'
        OTHER = 'other', 'Other Allowance'

    employee = models.ForeignKey(
        User,
        on_delete=models.CASCADE,
        related_name='allowances'
    )
    allowance_type = models.CharField(
        max_length=20,
        choices=AllowanceType.choices
    )
    name = models.CharField(
        max_length=100,
        blank=True,
        help_text='Custom name for "Other" allowance type'
    )
    amount = models.DecimalField(max_digits=12, decimal_places=2)
    effective_from = models.DateField()
    effective_to = models.DateField(null=True, blank=True)

    class Meta:
        ordering = ['employee', 'allowance_type']

    def __str__(self):
        name = self.name if self.allowance_type == self.AllowanceType.OTHER else self.get_allowance_type_display()
        return f"{self.employee.get_full_name()} - {name}: {self.amount}"

    def is_effective_on(self, on_date):
        """Checked in Python so a prefetched roster needs no further queries."""
        if self.effective_from > on_date:
            return False
        return self.effective_to is None or self.effective_to >= on_date
