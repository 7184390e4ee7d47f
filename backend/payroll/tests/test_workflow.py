"""
Tests for batch preparation, approval and disbursement persistence.
"""
from datetime import date
from decimal import Decimal
from django.test import TestCase, override_settings
from core.models import AuditLog
from employees.models import EmployeeAllowance, User
from payroll.models import Disbursement, PayrollBatch, TaxTable
from payroll.services.exceptions import EmptyRoster, UnknownDisbursementEntry, WorkflowError
from payroll.services.workflow import PayrollWorkflow, issue_p9


def make_user(email, employee_number, basic_salary=None, **kwargs):
    first_name, last_name = email.split('@')[0].split('.')
    return User.objects.create_user(
        email=email,
        password='pass1234',
        first_name=first_name.title(),
        last_name=last_name.title(),
        employee_number=employee_number,
        basic_salary=basic_salary,
        **kwargs
    )


class WorkflowTestMixin:

    def setUp(self):
        self.hr = make_user('hanna.hr@example.com', 'HR001', Decimal('50000'), role=User.Role.HR)
        self.manager = make_user('mark.manager@example.com', 'MG001', Decimal('60000'), role=User.Role.MANAGEMENT)
        self.accounts = make_user('ann.accounts@example.com', 'AC001', Decimal('40000'), role=User.Role.ACCOUNTS)

        self.jane = make_user('jane.doe@example.com', 'EMP001', Decimal('80000'),
                              kra_pin='A012345678Z', bank_account_number='0011223344')
        for allowance_type, amount in [('housing', 20000), ('transport', 10000), ('medical', 5000), ('other', 5000)]:
            EmployeeAllowance.objects.create(
                employee=self.jane,
                allowance_type=allowance_type,
                amount=Decimal(amount),
                effective_from=date(2024, 1, 1),
            )
        self.john = make_user('john.otieno@example.com', 'EMP002', Decimal('20000'))
        self.suspended = make_user('sam.suspended@example.com', 'EMP003', Decimal('90000'),
                                   employment_status=User.EmploymentStatus.SUSPENDED)

    def prepare(self, batch_id='PAY-2024-12-TEST'):
        return PayrollWorkflow.prepare(2024, 12, prepared_by=self.hr, batch_id=batch_id)

    def approve(self, workflow):
        workflow.approve_hr(self.hr)
        workflow.approve_management(self.manager)
        return workflow


class PrepareTests(WorkflowTestMixin, TestCase):

    def test_batch_persisted_pending_hr(self):
        batch = self.prepare().batch
        self.assertEqual(batch.status, PayrollBatch.Status.PENDING_HR)
        self.assertEqual(batch.name, 'December 2024')
        self.assertEqual(batch.tax_config_version, 'KE-2024-12')
        self.assertEqual(batch.total_employees, 5)
        self.assertFalse(batch.entries.filter(employee_code='EMP003').exists())

    def test_entry_figures(self):
        entry = self.prepare().batch.entries.get(employee_code='EMP001')
        self.assertEqual(entry.employee, self.jane)
        self.assertEqual(entry.employee_name, 'Jane Doe')
        self.assertEqual(entry.account_number, '0011223344')
        self.assertEqual(entry.gross_salary, Decimal('120000'))
        self.assertEqual(entry.nssf, Decimal('2160'))
        self.assertEqual(entry.paye, Decimal('28383'))
        self.assertEqual(entry.net_salary, Decimal('84357'))

    def test_totals_match_entries(self):
        batch = self.prepare().batch
        entries = list(batch.entries.all())
        self.assertEqual(batch.total_gross, sum(e.gross_salary for e in entries))
        self.assertEqual(batch.total_net, sum(e.net_salary for e in entries))
        self.assertEqual(batch.total_deductions, sum(e.total_deductions for e in entries))

    def test_to_run_round_trips(self):
        batch = PayrollBatch.objects.get(pk=self.prepare().batch.pk)
        run = batch.to_run()
        self.assertEqual(run.batch_id, 'PAY-2024-12-TEST')
        self.assertEqual([i.employee_id for i in run.items], ['AC001', 'EMP001', 'EMP002', 'HR001', 'MG001'])
        self.assertEqual(run.totals.net_salary, batch.total_net)

    def test_employee_without_salary_is_skipped(self):
        make_user('nora.nosalary@example.com', 'EMP004')
        batch = self.prepare().batch
        self.assertEqual(batch.skipped, [{'employeeId': 'EMP004', 'reason': 'basic salary is missing'}])
        self.assertEqual(batch.total_employees, 5)

    def test_several_batches_per_period(self):
        self.prepare('PAY-2024-12-A')
        self.prepare('PAY-2024-12-B')
        self.assertEqual(PayrollBatch.objects.filter(year=2024, month=12).count(), 2)

    def test_no_active_employees(self):
        User.objects.update(employment_status=User.EmploymentStatus.ON_LEAVE)
        with self.assertRaises(EmptyRoster):
            self.prepare()
        self.assertFalse(PayrollBatch.objects.exists())

    def test_uses_active_tax_table(self):
        TaxTable.objects.create(version='KE-2025-01', effective_from=date(2024, 12, 1), personal_relief=3000)
        batch = self.prepare().batch
        self.assertEqual(batch.tax_config_version, 'KE-2025-01')
        self.assertEqual(batch.entries.get(employee_code='EMP001').paye, Decimal('27783'))

    def test_audit_logged(self):
        self.prepare()
        log = AuditLog.objects.get(action=AuditLog.ActionType.CREATE, model_name='PayrollBatch')
        self.assertEqual(log.user, self.hr)
        self.assertEqual(log.object_id, 'PAY-2024-12-TEST')


class ApprovalTests(WorkflowTestMixin, TestCase):

    def test_full_approval(self):
        workflow = self.prepare()
        batch = workflow.approve_hr(self.hr, 'Checked')
        self.assertEqual(batch.status, PayrollBatch.Status.PENDING_MANAGEMENT)
        self.assertEqual(batch.hr_approved_by, self.hr)
        batch = workflow.approve_management(self.manager)
        self.assertEqual(batch.status, PayrollBatch.Status.APPROVED)
        self.assertIsNotNone(batch.mgmt_approved_at)

    def test_management_cannot_skip_hr(self):
        workflow = self.prepare()
        with self.assertRaises(WorkflowError):
            workflow.approve_management(self.manager)

    def test_role_required(self):
        workflow = self.prepare()
        with self.assertRaises(WorkflowError):
            workflow.approve_hr(self.jane)

    def test_reject(self):
        workflow = self.prepare()
        batch = workflow.reject(self.hr, 'Wrong allowances')
        self.assertEqual(batch.status, PayrollBatch.Status.REJECTED)
        self.assertIn('Wrong allowances', batch.hr_comments)
        with self.assertRaises(WorkflowError):
            workflow.approve_hr(self.hr)

    def test_approved_batch_cannot_be_rejected(self):
        workflow = self.approve(self.prepare())
        with self.assertRaises(WorkflowError):
            workflow.reject(self.manager, 'Too late')

    def test_workflow_error_is_value_error(self):
        workflow = self.prepare()
        with self.assertRaises(ValueError):
            workflow.approve_management(self.manager)


class DisbursementWorkflowTests(WorkflowTestMixin, TestCase):

    def test_requires_approval(self):
        workflow = self.prepare()
        with self.assertRaises(WorkflowError):
            workflow.create_disbursement(self.accounts)

    def test_requires_accounts_role(self):
        workflow = self.approve(self.prepare())
        with self.assertRaises(WorkflowError):
            workflow.create_disbursement(self.jane)

    def test_create_disbursement(self):
        workflow = self.approve(self.prepare())
        disbursement = workflow.create_disbursement(self.accounts, disbursement_date=date(2024, 12, 28))

        self.assertEqual(workflow.batch.status, PayrollBatch.Status.DISBURSING)
        self.assertEqual(disbursement.report_id, 'DISB-PAY-2024-12-TEST')
        self.assertEqual(disbursement.status, Disbursement.Status.APPROVED)
        self.assertEqual(disbursement.approved_by, 'Ann Accounts')
        self.assertEqual(disbursement.disbursement_method, 'Bank Transfer')
        self.assertEqual(disbursement.total_net_amount, workflow.batch.total_net)
        self.assertEqual(disbursement.lines.count(), 5)

        report = disbursement.to_report()
        self.assertEqual(report.disbursement_date, date(2024, 12, 28))
        self.assertEqual(report.entry_for('EMP001').net_salary, Decimal('84357'))

    def test_all_paid(self):
        workflow = self.approve(self.prepare())
        workflow.create_disbursement(self.accounts)
        for code in ['AC001', 'EMP001', 'EMP002', 'HR001', 'MG001']:
            workflow.record_disbursement(code, 'Success', updated_by=self.accounts)

        batch = PayrollBatch.objects.get(pk=workflow.batch.pk)
        self.assertEqual(batch.status, PayrollBatch.Status.PAID)
        self.assertEqual(batch.disbursement.status, Disbursement.Status.DISBURSED)

    def test_one_failure_fails_batch(self):
        workflow = self.approve(self.prepare())
        workflow.create_disbursement(self.accounts)
        workflow.record_disbursement('EMP002', 'Failed')
        for code in ['AC001', 'EMP001', 'HR001', 'MG001']:
            workflow.record_disbursement(code, 'Success')

        batch = PayrollBatch.objects.get(pk=workflow.batch.pk)
        self.assertEqual(batch.status, PayrollBatch.Status.FAILED)
        self.assertEqual(batch.disbursement.lines.get(employee_code='EMP002').status, 'Failed')

    def test_repeated_update_is_idempotent(self):
        workflow = self.approve(self.prepare())
        workflow.create_disbursement(self.accounts)
        workflow.record_disbursement('EMP001', 'Success')
        logged = AuditLog.objects.filter(model_name='Disbursement').count()

        workflow.record_disbursement('EMP001', 'Success')
        self.assertEqual(AuditLog.objects.filter(model_name='Disbursement').count(), logged)
        self.assertEqual(workflow.batch.status, PayrollBatch.Status.DISBURSING)

    def test_unknown_employee(self):
        workflow = self.approve(self.prepare())
        workflow.create_disbursement(self.accounts)
        with self.assertRaises(UnknownDisbursementEntry):
            workflow.record_disbursement('EMP003', 'Success')

    def test_record_without_disbursement(self):
        workflow = self.approve(self.prepare())
        with self.assertRaises(WorkflowError):
            workflow.record_disbursement('EMP001', 'Success')

    def test_fail_disbursement(self):
        workflow = self.approve(self.prepare())
        workflow.create_disbursement(self.accounts)
        workflow.record_disbursement('EMP001', 'Success')
        disbursement = workflow.fail_disbursement('Bank rejected file', updated_by=self.accounts)

        self.assertEqual(disbursement.status, Disbursement.Status.FAILED)
        self.assertIn('Bank rejected file', disbursement.notes)
        self.assertEqual(disbursement.lines.get(employee_code='EMP001').status, 'Success')
        self.assertEqual(disbursement.lines.get(employee_code='EMP002').status, 'Failed')
        self.assertEqual(workflow.batch.status, PayrollBatch.Status.FAILED)


@override_settings(PAYROLL={
    'EMPLOYER_NAME': 'Acme Kenya Ltd',
    'EMPLOYER_TAX_ID': 'P051234567X',
    'TAX_CONFIG': {},
})
class IssueP9Tests(WorkflowTestMixin, TestCase):

    def test_issue_p9(self):
        record = issue_p9(self.jane, 2024, issued_by=self.hr)

        self.assertEqual(record.employer_name, 'Acme Kenya Ltd')
        self.assertEqual(record.employer_tax_id, 'P051234567X')
        self.assertEqual(record.employee_tax_id, 'A012345678Z')
        self.assertEqual(record.employee_main_name, 'Jane')
        self.assertEqual(record.employee_other_names, 'Doe')
        # 120000 gross less 1800 AHL and 3300 SHIF
        self.assertEqual(record.monthly_data[0].chargeable_pay, Decimal('114900'))
        self.assertEqual(record.total_tax, Decimal('322236'))
        self.assertTrue(AuditLog.objects.filter(action=AuditLog.ActionType.GENERATE, object_id='EMP001').exists())

    def test_tax_table_change_mid_year(self):
        TaxTable.objects.create(version='KE-2024-01', effective_from=date(2024, 1, 1), effective_to=date(2024, 6, 30))
        TaxTable.objects.create(version='KE-2024-07', effective_from=date(2024, 7, 1), personal_relief=3000)
        record = issue_p9(self.jane, 2024)

        self.assertEqual(record.monthly_data[5].paye_tax, Decimal('26853'))
        self.assertEqual(record.monthly_data[6].paye_tax, Decimal('26253'))

    def test_repeatable(self):
        self.assertEqual(issue_p9(self.jane, 2024).to_json(), issue_p9(self.jane, 2024).to_json())


class TaxTableTests(TestCase):

    def test_falls_back_to_defaults(self):
        self.assertEqual(TaxTable.config_for(date(2024, 12, 1))['version'], 'KE-2024-12')

    def test_resolves_by_effective_date(self):
        TaxTable.objects.create(version='KE-2025-01', effective_from=date(2025, 1, 1), personal_relief=3000)
        self.assertEqual(TaxTable.config_for(date(2024, 12, 31))['version'], 'KE-2024-12')
        config = TaxTable.config_for(date(2025, 1, 1))
        self.assertEqual(config['version'], 'KE-2025-01')
        self.assertEqual(config['personal_relief'], Decimal('3000'))

    def test_inactive_table_ignored(self):
        TaxTable.objects.create(version='DRAFT', effective_from=date(2024, 1, 1), is_active=False)
        self.assertIsNone(TaxTable.get_active(date(2024, 6, 1)))

    @override_settings(PAYROLL={'TAX_CONFIG': {'version': 'SETTINGS-1', 'personal_relief': 2500}})
    def test_settings_overrides_used_without_table(self):
        config = TaxTable.config_for(date(2024, 6, 1))
        self.assertEqual(config['version'], 'SETTINGS-1')
        self.assertEqual(config['personal_relief'], Decimal('2500'))

    def test_table_config_matches_defaults(self):
        table = TaxTable.objects.create(version='KE-COPY', effective_from=date(2024, 1, 1))
        config = TaxTable.config_for(date(2024, 6, 1))
        self.assertEqual(config['bands'], TaxTable.config_for(date(2023, 1, 1))['bands'])
        self.assertEqual(config['version'], table.version)
