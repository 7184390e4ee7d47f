"""
Value types exchanged with the payroll engine.

All types are frozen dataclasses holding Decimal amounts. Types that cross
an external contract expose to_dict() returning the camelCase payload with
whole-unit integers.
"""
import json
from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal, InvalidOperation
from enum import Enum
from typing import Dict, Optional, Tuple

from django.core.serializers.json import DjangoJSONEncoder

from .exceptions import InvalidCompensation, InvalidPeriod

ZERO = Decimal('0')

ALLOWANCE_CATEGORIES = ('housing', 'transport', 'medical', 'other')

MONTH_NAMES = [
    '', 'January', 'February', 'March', 'April', 'May', 'June',
    'July', 'August', 'September', 'October', 'November', 'December'
]


class EmploymentStatus(str, Enum):
    ACTIVE = 'Active'
    SUSPENDED = 'Suspended'
    TERMINATED = 'Terminated'
    ON_LEAVE = 'OnLeave'

    @classmethod
    def parse(cls, value):
        """Accept 'Active', 'On Leave', 'on_leave' and friends."""
        if isinstance(value, cls):
            return value
        key = str(value).replace(' ', '').replace('_', '').lower()
        for status in cls:
            if status.value.lower() == key:
                return status
        raise ValueError(f"Unknown employment status: {value!r}")


class LineItemStatus(str, Enum):
    PROCESSED = 'Processed'


class ReportStatus(str, Enum):
    APPROVED = 'Approved'
    DISBURSED = 'Disbursed'
    FAILED = 'Failed'


class EntryStatus(str, Enum):
    PENDING = 'Pending'
    SUCCESS = 'Success'
    FAILED = 'Failed'


def as_decimal(value, employee_id=None, field_name='amount') -> Optional[Decimal]:
    """Convert an input amount to Decimal, keeping None as None."""
    if value is None or value == '':
        return None
    if isinstance(value, bool):
        raise InvalidCompensation(employee_id, f"{field_name} is not a number")
    try:
        amount = Decimal(str(value))
    except (InvalidOperation, ValueError):
        raise InvalidCompensation(employee_id, f"{field_name} is not a number: {value!r}")
    if not amount.is_finite():
        raise InvalidCompensation(employee_id, f"{field_name} is not a finite number")
    return amount


def whole(amount: Decimal) -> int:
    return int(amount)


@dataclass(frozen=True)
class CompensationStructure:
    """Snapshot of an employee's monthly pay components."""
    basic_salary: Optional[Decimal]
    allowances: Dict[str, Decimal] = field(default_factory=dict)
    pension_contribution: Decimal = ZERO
    prmf_contribution: Decimal = ZERO
    mortgage_interest: Decimal = ZERO
    insurance_premium: Decimal = ZERO

    def __post_init__(self):
        # Amounts may arrive as int, float or str from forms and plain Python callers
        object.__setattr__(self, 'basic_salary', as_decimal(self.basic_salary, field_name='basic salary'))
        allowances = {category: ZERO for category in ALLOWANCE_CATEGORIES}
        for category, amount in (self.allowances or {}).items():
            allowances[category] = as_decimal(amount, field_name=f"{category} allowance") or ZERO
        object.__setattr__(self, 'allowances', allowances)
        for name in ('pension_contribution', 'prmf_contribution', 'mortgage_interest', 'insurance_premium'):
            amount = as_decimal(getattr(self, name), field_name=name.replace('_', ' '))
            object.__setattr__(self, name, ZERO if amount is None else amount)

    @classmethod
    def from_dict(cls, data: dict, employee_id=None) -> 'CompensationStructure':
        """Build from the camelCase input contract."""
        allowances = {
            category: as_decimal(amount, employee_id, f"{category} allowance")
            for category, amount in (data.get('allowances') or {}).items()
        }
        prmf = data.get('prmfContribution', data.get('postRetirementMedicalContribution'))
        return cls(
            basic_salary=as_decimal(data.get('basicSalary'), employee_id, 'basic salary'),
            allowances=allowances,
            pension_contribution=as_decimal(data.get('pensionContribution'), employee_id, 'pension contribution'),
            prmf_contribution=as_decimal(prmf, employee_id, 'PRMF contribution'),
            mortgage_interest=as_decimal(data.get('mortgageInterest'), employee_id, 'mortgage interest'),
            insurance_premium=as_decimal(data.get('insurancePremium'), employee_id, 'insurance premium'),
        )

    def validate(self, employee_id=None):
        """
        Raise InvalidCompensation when the structure cannot be paid.

        Missing allowance categories count as zero; a missing basic salary
        does not.
        """
        if self.basic_salary is None:
            raise InvalidCompensation(employee_id, 'basic salary is missing')
        if self.basic_salary < 0:
            raise InvalidCompensation(employee_id, f"basic salary is negative ({self.basic_salary})")

        for category, amount in self.allowances.items():
            if category not in ALLOWANCE_CATEGORIES:
                raise InvalidCompensation(employee_id, f"unknown allowance category '{category}'")
            if amount < 0:
                raise InvalidCompensation(employee_id, f"{category} allowance is negative ({amount})")

        for name in ('pension_contribution', 'prmf_contribution', 'mortgage_interest', 'insurance_premium'):
            if getattr(self, name) < 0:
                raise InvalidCompensation(employee_id, f"{name.replace('_', ' ')} is negative")

    @property
    def housing_allowance(self) -> Decimal:
        return self.allowances['housing']

    @property
    def total_allowances(self) -> Decimal:
        return sum(self.allowances.values(), ZERO)

    @property
    def gross_salary(self) -> Decimal:
        return self.basic_salary + self.total_allowances


@dataclass(frozen=True)
class EmployeeRecord:
    """An employee as supplied by the roster source."""
    id: str
    name: str
    employment_status: EmploymentStatus
    compensation: CompensationStructure
    tax_id: str = ''
    account_number: str = ''

    @classmethod
    def from_dict(cls, data: dict) -> 'EmployeeRecord':
        employee_id = str(data.get('id', ''))
        try:
            status = EmploymentStatus.parse(data.get('employmentStatus'))
        except ValueError as e:
            raise InvalidCompensation(employee_id, str(e))
        return cls(
            id=employee_id,
            name=data.get('name', ''),
            employment_status=status,
            compensation=CompensationStructure.from_dict(data, employee_id),
            tax_id=data.get('taxId', ''),
            account_number=data.get('accountNumber') or '',
        )

    @property
    def is_active(self) -> bool:
        return self.employment_status == EmploymentStatus.ACTIVE


@dataclass(frozen=True, order=True)
class PayPeriod:
    """Calendar month used as a payroll key."""
    year: int
    month: int

    def __post_init__(self):
        for name in ('year', 'month'):
            value = getattr(self, name)
            if isinstance(value, bool) or not isinstance(value, int):
                raise InvalidPeriod(f"{name} must be an integer, got {value!r}")
        if not 1900 <= self.year <= 9999:
            raise InvalidPeriod(f"Year out of range: {self.year}")
        if not 1 <= self.month <= 12:
            raise InvalidPeriod(f"Month out of range: {self.month}")

    def __str__(self):
        return f"{self.year:04d}-{self.month:02d}"

    @classmethod
    def parse(cls, value) -> 'PayPeriod':
        if isinstance(value, cls):
            return value
        if isinstance(value, date):
            return cls(value.year, value.month)
        try:
            year, month = str(value).split('-')
            return cls(int(year), int(month))
        except ValueError:
            raise InvalidPeriod(f"Period must be formatted YYYY-MM, got {value!r}")

    @property
    def month_name(self) -> str:
        return MONTH_NAMES[self.month]

    @property
    def first_day(self) -> date:
        return date(self.year, self.month, 1)


@dataclass(frozen=True)
class StatutoryDeductions:
    nssf: Decimal
    sha: Decimal
    housing_levy: Decimal

    @property
    def total(self) -> Decimal:
        return self.nssf + self.sha + self.housing_levy


@dataclass(frozen=True)
class TaxReliefs:
    personal_relief: Decimal
    insurance_relief: Decimal

    @property
    def total(self) -> Decimal:
        return self.personal_relief + self.insurance_relief


@dataclass(frozen=True)
class PayrollLineItem:
    """
    One employee's payslip figures for a period.

    total_deductions and net_salary are checked against the components at
    construction, so an inconsistent item cannot exist.
    """
    employee_id: str
    employee_name: str
    period: PayPeriod
    gross_salary: Decimal
    paye: Decimal
    nssf: Decimal
    sha: Decimal
    housing_levy: Decimal
    total_deductions: Decimal
    net_salary: Decimal
    account_number: str = ''
    status: LineItemStatus = LineItemStatus.PROCESSED

    def __post_init__(self):
        expected_deductions = self.paye + self.nssf + self.sha + self.housing_levy
        if self.total_deductions != expected_deductions:
            raise ValueError(
                f"Line item for {self.employee_id}: total deductions {self.total_deductions} "
                f"!= {expected_deductions}"
            )
        if self.net_salary != self.gross_salary - self.total_deductions:
            raise ValueError(f"Line item for {self.employee_id}: net salary does not balance")

    def to_dict(self) -> dict:
        return {
            'employeeId': self.employee_id,
            'period': str(self.period),
            'grossSalary': whole(self.gross_salary),
            'paye': whole(self.paye),
            'nssf': whole(self.nssf),
            'sha': whole(self.sha),
            'housingLevy': whole(self.housing_levy),
            'totalDeductions': whole(self.total_deductions),
            'netSalary': whole(self.net_salary),
            'status': self.status.value,
        }


@dataclass(frozen=True)
class SkippedEmployee:
    employee_id: str
    reason: str

    def to_dict(self) -> dict:
        return {'employeeId': self.employee_id, 'reason': self.reason}


@dataclass(frozen=True)
class RunTotals:
    employees: int = 0
    gross_salary: Decimal = ZERO
    paye: Decimal = ZERO
    nssf: Decimal = ZERO
    sha: Decimal = ZERO
    housing_levy: Decimal = ZERO
    total_deductions: Decimal = ZERO
    net_salary: Decimal = ZERO

    @classmethod
    def from_items(cls, items) -> 'RunTotals':
        items = list(items)
        return cls(
            employees=len(items),
            gross_salary=sum((i.gross_salary for i in items), ZERO),
            paye=sum((i.paye for i in items), ZERO),
            nssf=sum((i.nssf for i in items), ZERO),
            sha=sum((i.sha for i in items), ZERO),
            housing_levy=sum((i.housing_levy for i in items), ZERO),
            total_deductions=sum((i.total_deductions for i in items), ZERO),
            net_salary=sum((i.net_salary for i in items), ZERO),
        )

    def to_dict(self) -> dict:
        return {
            'employees': self.employees,
            'grossSalary': whole(self.gross_salary),
            'paye': whole(self.paye),
            'nssf': whole(self.nssf),
            'sha': whole(self.sha),
            'housingLevy': whole(self.housing_levy),
            'totalDeductions': whole(self.total_deductions),
            'netSalary': whole(self.net_salary),
        }


@dataclass(frozen=True)
class PayrollRun:
    """A complete, immutable payroll batch for one period."""
    batch_id: str
    period: PayPeriod
    items: Tuple[PayrollLineItem, ...]
    skipped: Tuple[SkippedEmployee, ...] = ()
    totals: RunTotals = RunTotals()
    tax_config_version: str = ''

    def __post_init__(self):
        object.__setattr__(self, 'items', tuple(self.items))
        object.__setattr__(self, 'skipped', tuple(self.skipped))

    def item_for(self, employee_id: str) -> Optional[PayrollLineItem]:
        for item in self.items:
            if item.employee_id == employee_id:
                return item
        return None

    def to_dict(self) -> dict:
        return {
            'batchId': self.batch_id,
            'period': str(self.period),
            'taxConfigVersion': self.tax_config_version,
            'items': [item.to_dict() for item in self.items],
            'skipped': [s.to_dict() for s in self.skipped],
            'totals': self.totals.to_dict(),
        }


# Column order of the P9 card; also the to_dict key order.
P9_COLUMNS = [
    ('basic_salary', 'basicSalary'),
    ('benefits_non_cash', 'benefitsNonCash'),
    ('value_of_quarters', 'valueOfQuarters'),
    ('total_gross_pay', 'totalGrossPay'),
    ('affordable_housing_levy', 'affordableHousingLevy'),
    ('social_health_insurance_fund', 'socialHealthInsuranceFund'),
    ('post_retirement_medical_fund', 'postRetirementMedicalFund'),
    ('defined_contribution_retirement_scheme', 'definedContributionRetirementScheme'),
    ('owner_occupied_interest', 'ownerOccupiedInterest'),
    ('total_deductions', 'totalDeductions'),
    ('chargeable_pay', 'chargeablePay'),
    ('tax_charged', 'taxCharged'),
    ('personal_relief', 'personalRelief'),
    ('insurance_relief', 'insuranceRelief'),
    ('paye_tax', 'payeTax'),
]


@dataclass(frozen=True)
class MonthlyTaxRow:
    month: str
    basic_salary: Decimal
    benefits_non_cash: Decimal
    value_of_quarters: Decimal
    total_gross_pay: Decimal
    affordable_housing_levy: Decimal
    social_health_insurance_fund: Decimal
    post_retirement_medical_fund: Decimal
    defined_contribution_retirement_scheme: Decimal
    owner_occupied_interest: Decimal
    total_deductions: Decimal
    chargeable_pay: Decimal
    tax_charged: Decimal
    personal_relief: Decimal
    insurance_relief: Decimal
    paye_tax: Decimal

    def to_dict(self) -> dict:
        data = {'month': self.month}
        for attr, key in P9_COLUMNS:
            data[key] = whole(getattr(self, attr))
        return data


@dataclass(frozen=True)
class Employer:
    name: str
    tax_id: str


@dataclass(frozen=True)
class P9Record:
    """Annual tax deduction card for one employee."""
    year: int
    employer_tax_id: str
    employer_name: str
    employee_tax_id: str
    employee_main_name: str
    employee_other_names: str
    monthly_data: Tuple[MonthlyTaxRow, ...]
    total_chargeable_pay: Decimal
    total_tax: Decimal

    def __post_init__(self):
        object.__setattr__(self, 'monthly_data', tuple(self.monthly_data))

    @property
    def totals(self) -> Dict[str, Decimal]:
        """Column sums for the totals row of the card."""
        return {
            attr: sum((getattr(row, attr) for row in self.monthly_data), ZERO)
            for attr, _ in P9_COLUMNS
        }

    def to_dict(self) -> dict:
        totals = self.totals
        return {
            'year': self.year,
            'employerTaxId': self.employer_tax_id,
            'employerName': self.employer_name,
            'employeeTaxId': self.employee_tax_id,
            'employeeMainName': self.employee_main_name,
            'employeeOtherNames': self.employee_other_names,
            'monthlyData': [row.to_dict() for row in self.monthly_data],
            'totals': {key: whole(totals[attr]) for attr, key in P9_COLUMNS},
            'totalChargeablePay': whole(self.total_chargeable_pay),
            'totalTax': whole(self.total_tax),
        }

    def to_json(self) -> str:
        return json.dumps(self.to_dict(), cls=DjangoJSONEncoder)


@dataclass(frozen=True)
class DisbursementApproval:
    approved_by: str
    approved_date: date
    disbursement_method: str = 'Bank Transfer'
    disbursement_date: Optional[date] = None
    notes: str = ''


@dataclass(frozen=True)
class DisbursementEntry:
    employee_id: str
    employee_name: str
    net_salary: Decimal
    account_number: str = ''
    disbursement_status: EntryStatus = EntryStatus.PENDING

    def to_dict(self) -> dict:
        data = {
            'employeeId': self.employee_id,
            'employeeName': self.employee_name,
            'netSalary': whole(self.net_salary),
            'disbursementStatus': self.disbursement_status.value,
        }
        if self.account_number:
            data['accountNumber'] = self.account_number
        return data


@dataclass(frozen=True)
class DisbursementReport:
    """Ledger handoff for an approved payroll batch."""
    report_id: str
    batch_id: str
    period: PayPeriod
    total_employees: int
    total_gross_amount: Decimal
    total_deductions: Decimal
    total_net_amount: Decimal
    approved_by: str
    approved_date: date
    disbursement_date: date
    disbursement_method: str
    employees: Tuple[DisbursementEntry, ...]
    status: ReportStatus = ReportStatus.APPROVED
    notes: str = ''

    def __post_init__(self):
        object.__setattr__(self, 'employees', tuple(self.employees))

    @property
    def is_terminal(self) -> bool:
        return self.status != ReportStatus.APPROVED

    def entry_for(self, employee_id: str) -> Optional[DisbursementEntry]:
        for entry in self.employees:
            if entry.employee_id == employee_id:
                return entry
        return None

    def _amount_with(self, status: EntryStatus) -> Decimal:
        return sum((e.net_salary for e in self.employees if e.disbursement_status == status), ZERO)

    @property
    def disbursed_amount(self) -> Decimal:
        return self._amount_with(EntryStatus.SUCCESS)

    @property
    def failed_amount(self) -> Decimal:
        return self._amount_with(EntryStatus.FAILED)

    @property
    def pending_count(self) -> int:
        return sum(1 for e in self.employees if e.disbursement_status == EntryStatus.PENDING)

    def to_dict(self) -> dict:
        data = {
            'id': self.report_id,
            'batchId': self.batch_id,
            'period': str(self.period),
            'totalEmployees': self.total_employees,
            'totalGrossAmount': whole(self.total_gross_amount),
            'totalDeductions': whole(self.total_deductions),
            'totalNetAmount': whole(self.total_net_amount),
            'approvedBy': self.approved_by,
            'approvedDate': self.approved_date.isoformat(),
            'disbursementDate': self.disbursement_date.isoformat(),
            'disbursementMethod': self.disbursement_method,
            'status': self.status.value,
            'employees': [e.to_dict() for e in self.employees],
        }
        if self.notes:
            data['notes'] = self.notes
        return data
