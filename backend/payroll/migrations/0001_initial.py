import uuid
from decimal import Decimal

import django.db.models.deletion
from django.conf import settings
from django.db import migrations, models


def base_fields():
    return [
        ('id', models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
        ('created_at', models.DateTimeField(auto_now_add=True)),
        ('updated_at', models.DateTimeField(auto_now=True)),
        ('created_by', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='%(class)s_created', to=settings.AUTH_USER_MODEL)),
        ('updated_by', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='%(class)s_updated', to=settings.AUTH_USER_MODEL)),
    ]


def rate(default):
    return models.DecimalField(decimal_places=4, default=Decimal(default), max_digits=5)


def amount(default, help_text=''):
    return models.DecimalField(decimal_places=2, default=default, help_text=help_text, max_digits=12)


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
    ]

    operations = [
        migrations.CreateModel(
            name='PayrollBatch',
            fields=base_fields() + [
                ('batch_id', models.CharField(max_length=50, unique=True)),
                ('year', models.IntegerField()),
                ('month', models.IntegerField()),
                ('name', models.CharField(blank=True, max_length=50)),
                ('status', models.CharField(choices=[('pending_hr', 'Pending HR Approval'), ('pending_mgmt', 'Pending Management Approval'), ('approved', 'Approved'), ('rejected', 'Rejected'), ('disbursing', 'Disbursing'), ('paid', 'Paid'), ('failed', 'Disbursement Failed')], default='pending_hr', max_length=20)),
                ('tax_config_version', models.CharField(blank=True, max_length=50)),
                ('skipped', models.JSONField(blank=True, default=list, help_text='Employees excluded from the run and why')),
                ('prepared_at', models.DateTimeField(blank=True, null=True)),
                ('hr_approved_at', models.DateTimeField(blank=True, null=True)),
                ('hr_comments', models.TextField(blank=True)),
                ('mgmt_approved_at', models.DateTimeField(blank=True, null=True)),
                ('mgmt_comments', models.TextField(blank=True)),
                ('total_employees', models.IntegerField(default=0)),
                ('total_gross', models.DecimalField(decimal_places=2, default=0, max_digits=14)),
                ('total_paye', models.DecimalField(decimal_places=2, default=0, max_digits=14)),
                ('total_nssf', models.DecimalField(decimal_places=2, default=0, max_digits=14)),
                ('total_sha', models.DecimalField(decimal_places=2, default=0, max_digits=14)),
                ('total_housing_levy', models.DecimalField(decimal_places=2, default=0, max_digits=14)),
                ('total_deductions', models.DecimalField(decimal_places=2, default=0, max_digits=14)),
                ('total_net', models.DecimalField(decimal_places=2, default=0, max_digits=14)),
                ('prepared_by', models.ForeignKey(null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='payroll_prepared', to=settings.AUTH_USER_MODEL)),
                ('hr_approved_by', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='payroll_hr_approved', to=settings.AUTH_USER_MODEL)),
                ('mgmt_approved_by', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='payroll_mgmt_approved', to=settings.AUTH_USER_MODEL)),
            ],
            options={
                'verbose_name_plural': 'Payroll Batches',
                'ordering': ['-year', '-month', '-created_at'],
            },
        ),
        migrations.CreateModel(
            name='PayrollEntry',
            fields=base_fields() + [
                ('position', models.PositiveIntegerField(help_text='Roster order within the batch')),
                ('employee_code', models.CharField(max_length=50)),
                ('employee_name', models.CharField(blank=True, max_length=255)),
                ('account_number', models.CharField(blank=True, max_length=50)),
                ('gross_salary', amount(0)),
                ('paye', amount(0, 'Pay As You Earn tax after reliefs')),
                ('nssf', amount(0, 'NSSF contribution (6%, max KES 2,160)')),
                ('sha', amount(0, 'Social Health Insurance Fund (2.75% of gross)')),
                ('housing_levy', amount(0, 'Affordable Housing Levy (1.5% of gross)')),
                ('total_deductions', amount(0)),
                ('net_salary', amount(0)),
                ('status', models.CharField(default='Processed', max_length=20)),
                ('batch', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='entries', to='payroll.payrollbatch')),
                ('employee', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.PROTECT, related_name='payroll_entries', to=settings.AUTH_USER_MODEL)),
            ],
            options={
                'verbose_name_plural': 'Payroll Entries',
                'ordering': ['batch', 'position'],
                'unique_together': {('batch', 'employee_code')},
            },
        ),
        migrations.CreateModel(
            name='TaxTable',
            fields=base_fields() + [
                ('version', models.CharField(max_length=50, unique=True)),
                ('effective_from', models.DateField()),
                ('effective_to', models.DateField(blank=True, null=True)),
                ('is_active', models.BooleanField(default=True)),
                ('band_1_limit', amount(24000, 'Upper limit for 10% band')),
                ('band_1_rate', rate('0.10')),
                ('band_2_limit', amount(32333, 'Upper limit for 25% band')),
                ('band_2_rate', rate('0.25')),
                ('band_3_limit', amount(500000, 'Upper limit for 30% band')),
                ('band_3_rate', rate('0.30')),
                ('band_4_limit', amount(800000, 'Upper limit for 32.5% band')),
                ('band_4_rate', rate('0.325')),
                ('band_5_rate', models.DecimalField(decimal_places=4, default=Decimal('0.35'), help_text='Rate for income above band 4', max_digits=5)),
                ('personal_relief', amount(2400)),
                ('insurance_relief_rate', rate('0.15')),
                ('insurance_relief_max', amount(5000)),
                ('nssf_rate', rate('0.06')),
                ('nssf_upper_limit', amount(36000, 'Upper earnings limit for NSSF contributions')),
                ('sha_rate', rate('0.0275')),
                ('housing_levy_rate', rate('0.015')),
                ('pension_max_deduction', amount(30000, 'Maximum pension contribution deductible from chargeable pay')),
                ('prmf_max_deduction', amount(15000, 'Maximum post-retirement medical fund contribution deductible')),
                ('mortgage_interest_max', amount(30000, 'Maximum mortgage interest deduction per month')),
            ],
            options={
                'ordering': ['-effective_from'],
            },
        ),
        migrations.CreateModel(
            name='Disbursement',
            fields=base_fields() + [
                ('report_id', models.CharField(max_length=60, unique=True)),
                ('status', models.CharField(choices=[('Approved', 'Approved'), ('Disbursed', 'Disbursed'), ('Failed', 'Failed')], default='Approved', max_length=20)),
                ('approved_by', models.CharField(max_length=255)),
                ('approved_date', models.DateField()),
                ('disbursement_date', models.DateField()),
                ('disbursement_method', models.CharField(max_length=50)),
                ('total_employees', models.IntegerField()),
                ('total_gross_amount', models.DecimalField(decimal_places=2, max_digits=14)),
                ('total_deductions', models.DecimalField(decimal_places=2, max_digits=14)),
                ('total_net_amount', models.DecimalField(decimal_places=2, max_digits=14)),
                ('notes', models.TextField(blank=True)),
                ('batch', models.OneToOneField(on_delete=django.db.models.deletion.PROTECT, related_name='disbursement', to='payroll.payrollbatch')),
            ],
            options={
                'ordering': ['-disbursement_date'],
            },
        ),
        migrations.CreateModel(
            name='DisbursementLine',
            fields=base_fields() + [
                ('position', models.PositiveIntegerField()),
                ('employee_code', models.CharField(max_length=50)),
                ('employee_name', models.CharField(blank=True, max_length=255)),
                ('net_salary', models.DecimalField(decimal_places=2, max_digits=12)),
                ('account_number', models.CharField(blank=True, max_length=50)),
                ('status', models.CharField(choices=[('Pending', 'Pending'), ('Success', 'Success'), ('Failed', 'Failed')], default='Pending', max_length=20)),
                ('disbursement', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='lines', to='payroll.disbursement')),
            ],
            options={
                'ordering': ['disbursement', 'position'],
                'unique_together': {('disbursement', 'employee_code')},
            },
        ),
    ]
