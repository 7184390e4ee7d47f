from datetime import date
from decimal import Decimal
from django.test import TestCase
from payroll.services.exceptions import InvalidCompensation, InvalidPeriod
from payroll.services.structures import (
    CompensationStructure,
    EmployeeRecord,
    EmploymentStatus,
    PayPeriod,
    PayrollLineItem,
)


class PayPeriodTests(TestCase):

    def test_formatting(self):
        self.assertEqual(str(PayPeriod(2024, 3)), '2024-03')
        self.assertEqual(PayPeriod(2024, 3).month_name, 'March')
        self.assertEqual(PayPeriod(2024, 3).first_day, date(2024, 3, 1))

    def test_parse(self):
        self.assertEqual(PayPeriod.parse('2024-12'), PayPeriod(2024, 12))
        self.assertEqual(PayPeriod.parse(date(2024, 7, 19)), PayPeriod(2024, 7))

    def test_invalid_month(self):
        with self.assertRaises(InvalidPeriod):
            PayPeriod(2024, 13)
        with self.assertRaises(InvalidPeriod):
            PayPeriod(2024, 0)
        with self.assertRaises(InvalidPeriod):
            PayPeriod.parse('2024-13')

    def test_malformed_period(self):
        with self.assertRaises(InvalidPeriod):
            PayPeriod.parse('December 2024')
        with self.assertRaises(InvalidPeriod):
            PayPeriod(2024, True)

    def test_periods_order(self):
        self.assertLess(PayPeriod(2024, 12), PayPeriod(2025, 1))


class EmploymentStatusTests(TestCase):

    def test_parse_variants(self):
        self.assertEqual(EmploymentStatus.parse('Active'), EmploymentStatus.ACTIVE)
        self.assertEqual(EmploymentStatus.parse('on_leave'), EmploymentStatus.ON_LEAVE)
        self.assertEqual(EmploymentStatus.parse('On Leave'), EmploymentStatus.ON_LEAVE)
        self.assertEqual(EmploymentStatus.parse('TERMINATED'), EmploymentStatus.TERMINATED)

    def test_unknown_status(self):
        with self.assertRaises(ValueError):
            EmploymentStatus.parse('Retired')


class CompensationStructureTests(TestCase):

    def test_missing_allowances_count_as_zero(self):
        structure = CompensationStructure(basic_salary=Decimal('50000'), allowances={'housing': Decimal('5000')})
        self.assertEqual(structure.allowances['transport'], Decimal('0'))
        self.assertEqual(structure.gross_salary, Decimal('55000'))

    def test_from_dict(self):
        structure = CompensationStructure.from_dict({
            'basicSalary': 80000,
            'allowances': {'housing': 20000, 'transport': '10000'},
            'pensionContribution': 5000,
            'postRetirementMedicalContribution': 2000,
        })
        self.assertEqual(structure.basic_salary, Decimal('80000'))
        self.assertEqual(structure.total_allowances, Decimal('30000'))
        self.assertEqual(structure.prmf_contribution, Decimal('2000'))
        self.assertEqual(structure.mortgage_interest, Decimal('0'))

    def test_non_numeric_amount(self):
        with self.assertRaises(InvalidCompensation):
            CompensationStructure.from_dict({'basicSalary': 'lots'}, employee_id='EMP009')

    def test_negative_optional_contribution(self):
        structure = CompensationStructure(basic_salary=Decimal('1000'), insurance_premium=Decimal('-1'))
        with self.assertRaises(InvalidCompensation):
            structure.validate('EMP001')


class EmployeeRecordTests(TestCase):

    def test_from_dict(self):
        record = EmployeeRecord.from_dict({
            'id': 'EMP001',
            'name': 'Jane Doe',
            'employmentStatus': 'Active',
            'basicSalary': 50000,
            'taxId': 'A012345678Z',
            'accountNumber': '0123456789',
        })
        self.assertTrue(record.is_active)
        self.assertEqual(record.tax_id, 'A012345678Z')
        self.assertEqual(record.account_number, '0123456789')

    def test_unknown_status_is_invalid_compensation(self):
        with self.assertRaises(InvalidCompensation) as cm:
            EmployeeRecord.from_dict({'id': 'EMP002', 'employmentStatus': 'Retired', 'basicSalary': 1})
        self.assertEqual(cm.exception.employee_id, 'EMP002')


class PayrollLineItemTests(TestCase):

    def test_inconsistent_totals_rejected(self):
        with self.assertRaises(ValueError):
            PayrollLineItem(
                employee_id='EMP001', employee_name='', period=PayPeriod(2024, 1),
                gross_salary=Decimal('100'), paye=Decimal('10'), nssf=Decimal('6'),
                sha=Decimal('3'), housing_levy=Decimal('2'),
                total_deductions=Decimal('20'), net_salary=Decimal('79'),
            )
