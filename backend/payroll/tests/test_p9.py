"""
Tests for the P9 tax deduction card.
"""
import json
from datetime import date
from decimal import Decimal
from django.test import TestCase
from payroll.services.exceptions import InvalidCompensation, InvalidPeriod
from payroll.services.p9 import AnnualTaxCertificateComputer, split_name
from payroll.services.structures import (
    CompensationStructure,
    EmployeeRecord,
    EmploymentStatus,
    Employer,
    PayPeriod,
)
from payroll.services.tax_config import build_config

EMPLOYER = Employer(name='Acme Kenya Ltd', tax_id='P051234567X')


def make_employee(basic_salary, allowances=None, name='Jane Wanjiku Doe', **kwargs):
    return EmployeeRecord(
        id='EMP001',
        name=name,
        employment_status=EmploymentStatus.ACTIVE,
        compensation=CompensationStructure(
            basic_salary=None if basic_salary is None else Decimal(basic_salary),
            allowances={k: Decimal(v) for k, v in (allowances or {}).items()},
            **{k: Decimal(v) for k, v in kwargs.items()}
        ),
        tax_id='A012345678Z',
    )


class AnnualTaxCertificateComputerTests(TestCase):

    def setUp(self):
        self.computer = AnnualTaxCertificateComputer()

    def test_pension_clamped_to_limit(self):
        """A 50,000 pension contribution is deductible only up to 30,000."""
        employee = make_employee(100000, {'housing': 20000}, pension_contribution=50000)
        record = self.computer.compute(employee, 2024, EMPLOYER)

        for row in record.monthly_data:
            self.assertEqual(row.defined_contribution_retirement_scheme, Decimal('30000'))

        row = record.monthly_data[0]
        self.assertEqual(row.total_gross_pay, Decimal('120000'))
        self.assertEqual(row.affordable_housing_levy, Decimal('1800'))
        self.assertEqual(row.social_health_insurance_fund, Decimal('3300'))
        self.assertEqual(row.total_deductions, Decimal('35100'))
        self.assertEqual(row.chargeable_pay, Decimal('84900'))
        # 2400 + 2083.25 + 52567 * 30% = 20253.35
        self.assertEqual(row.tax_charged, Decimal('20253'))
        self.assertEqual(row.paye_tax, Decimal('17853'))

    def test_annual_totals(self):
        employee = make_employee(100000, {'housing': 20000}, pension_contribution=50000)
        record = self.computer.compute(employee, 2024, EMPLOYER)

        self.assertEqual(len(record.monthly_data), 12)
        self.assertEqual(record.total_chargeable_pay, Decimal('1018800'))
        self.assertEqual(record.total_tax, Decimal('214236'))
        self.assertEqual(record.totals['paye_tax'], record.total_tax)
        self.assertEqual(record.totals['chargeable_pay'], record.total_chargeable_pay)

    def test_other_deductions_clamped(self):
        employee = make_employee(200000, prmf_contribution=20000, mortgage_interest=40000)
        row = self.computer.compute(employee, 2024, EMPLOYER).monthly_data[5]
        self.assertEqual(row.post_retirement_medical_fund, Decimal('15000'))
        self.assertEqual(row.owner_occupied_interest, Decimal('30000'))

    def test_value_of_quarters(self):
        # limited to 30% of basic salary
        row = self.computer.compute(make_employee(50000, {'housing': 20000}), 2024, EMPLOYER).monthly_data[0]
        self.assertEqual(row.value_of_quarters, Decimal('15000'))
        row = self.computer.compute(make_employee(100000, {'housing': 20000}), 2024, EMPLOYER).monthly_data[0]
        self.assertEqual(row.value_of_quarters, Decimal('20000'))

    def test_low_earner_pays_no_tax(self):
        row = self.computer.compute(make_employee(20000), 2024, EMPLOYER).monthly_data[0]
        self.assertEqual(row.chargeable_pay, Decimal('19150'))
        self.assertEqual(row.tax_charged, Decimal('1915'))
        self.assertEqual(row.paye_tax, Decimal('0'))

    def test_deductions_above_gross_pay(self):
        """Chargeable pay goes negative but tax stays at zero."""
        record = self.computer.compute(make_employee(10000, pension_contribution=30000), 2024, EMPLOYER)
        row = record.monthly_data[0]
        # 10000 - (150 AHL + 275 SHIF + 30000 pension)
        self.assertEqual(row.total_deductions, Decimal('30425'))
        self.assertEqual(row.chargeable_pay, Decimal('-20425'))
        self.assertEqual(row.chargeable_pay, row.total_gross_pay - row.total_deductions)
        self.assertEqual(row.tax_charged, Decimal('0'))
        self.assertEqual(row.paye_tax, Decimal('0'))
        self.assertEqual(record.total_chargeable_pay, Decimal('-245100'))
        self.assertEqual(record.total_tax, Decimal('0'))

    def test_plain_integer_amounts(self):
        employee = EmployeeRecord(
            id='EMP002',
            name='John Otieno',
            employment_status=EmploymentStatus.ACTIVE,
            compensation=CompensationStructure(basic_salary=50000, allowances={'housing': 5000},
                                               prmf_contribution=0, pension_contribution=0),
        )
        row = self.computer.compute(employee, 2024, EMPLOYER).monthly_data[0]
        self.assertEqual(row.total_gross_pay, Decimal('55000'))
        self.assertEqual(row.post_retirement_medical_fund, Decimal('0'))

    def test_row_columns_add_up(self):
        employee = make_employee(
            '87654.40', {'housing': '12345.60', 'transport': 3000},
            pension_contribution='4999.50', insurance_premium=9000,
        )
        for row in self.computer.compute(employee, 2024, EMPLOYER).monthly_data:
            self.assertEqual(row.total_gross_pay, row.basic_salary + row.benefits_non_cash)
            self.assertEqual(
                row.total_deductions,
                row.affordable_housing_levy + row.social_health_insurance_fund
                + row.post_retirement_medical_fund + row.defined_contribution_retirement_scheme
                + row.owner_occupied_interest,
            )
            self.assertEqual(row.chargeable_pay, row.total_gross_pay - row.total_deductions)
            self.assertEqual(row.insurance_relief, Decimal('1350'))
            self.assertEqual(
                row.paye_tax,
                max(row.tax_charged - row.personal_relief - row.insurance_relief, Decimal('0')),
            )

    def test_employee_and_employer_identity(self):
        record = self.computer.compute(make_employee(50000), 2024, EMPLOYER)
        self.assertEqual(record.employee_main_name, 'Jane')
        self.assertEqual(record.employee_other_names, 'Wanjiku Doe')
        self.assertEqual(record.employee_tax_id, 'A012345678Z')
        self.assertEqual(record.employer_name, 'Acme Kenya Ltd')
        self.assertEqual(record.employer_tax_id, 'P051234567X')
        self.assertEqual(record.monthly_data[0].month, 'January')
        self.assertEqual(record.monthly_data[11].month, 'December')

    def test_recomputation_is_identical(self):
        employee = make_employee(100000, {'housing': 20000}, pension_contribution=50000)
        first = self.computer.compute(employee, 2024, EMPLOYER)
        second = AnnualTaxCertificateComputer().compute(employee, 2024, EMPLOYER)
        self.assertEqual(first, second)
        self.assertEqual(first.to_json(), second.to_json())

    def test_json_contract(self):
        record = self.computer.compute(make_employee(100000, {'housing': 20000}, pension_contribution=50000),
                                       2024, EMPLOYER)
        data = json.loads(record.to_json())
        self.assertEqual(data['year'], 2024)
        self.assertEqual(data['employeeMainName'], 'Jane')
        self.assertEqual(data['totalTax'], 214236)
        self.assertEqual(data['monthlyData'][0]['definedContributionRetirementScheme'], 30000)
        self.assertEqual(data['monthlyData'][0]['month'], 'January')
        self.assertEqual(data['totals']['payeTax'], 214236)

    def test_config_resolved_per_month(self):
        later = build_config({'version': 'MID-YEAR', 'personal_relief': 3000})

        def resolver(on_date):
            return later if on_date >= date(2024, 7, 1) else None

        computer = AnnualTaxCertificateComputer(config_resolver=resolver)
        record = computer.compute(make_employee(100000, {'housing': 20000}, pension_contribution=50000),
                                  2024, EMPLOYER)
        self.assertEqual(record.monthly_data[5].paye_tax, Decimal('17853'))
        self.assertEqual(record.monthly_data[6].paye_tax, Decimal('17253'))
        self.assertEqual(record.total_tax, Decimal('210636'))

    def test_shares_band_table_with_payroll(self):
        computer = AnnualTaxCertificateComputer({'bands': [(10000, '0.10'), (None, '0.20')], 'personal_relief': 0})
        row = computer.compute_month(make_employee(15000).compensation, PayPeriod(2024, 1), computer.config)
        # chargeable 15000 - 225 AHL - 413 SHIF = 14362
        self.assertEqual(row.chargeable_pay, Decimal('14362'))
        self.assertEqual(row.tax_charged, Decimal('1872'))

    def test_invalid_year(self):
        with self.assertRaises(InvalidPeriod):
            self.computer.compute(make_employee(50000), 0, EMPLOYER)

    def test_missing_basic_salary(self):
        with self.assertRaises(InvalidCompensation):
            self.computer.compute(make_employee(None), 2024, EMPLOYER)


class SplitNameTests(TestCase):

    def test_split(self):
        self.assertEqual(split_name('Jane Wanjiku Doe'), ('Jane', 'Wanjiku Doe'))
        self.assertEqual(split_name('Cher'), ('Cher', ''))
        self.assertEqual(split_name('  '), ('', ''))
