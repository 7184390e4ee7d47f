"""
Core models and mixins for HRS - Statutory Payroll
"""
from django.db import models
from django.conf import settings
import uuid


class BaseModel(models.Model):
    """
    Abstract base model with common fields for all models.
    Provides audit trail functionality.
    """
    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)
    created_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='%(class)s_created'
    )
    updated_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='%(class)s_updated'
    )

    class Meta:
        abstract = True


class AuditLog(models.Model):
    """
    Audit log for payroll batches, approvals, disbursements and certificates.
    Required for compliance and governance.
    """

    class ActionType(models.TextChoices):
        CREATE = 'create', 'Create'
        UPDATE = 'update', 'Update'
        APPROVE = 'approve', 'Approve'
        REJECT = 'reject', 'Reject'
        GENERATE = 'generate', 'Generate'

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    timestamp = models.DateTimeField(auto_now_add=True)
    user = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        related_name='audit_logs'
    )
    action = models.CharField(max_length=20, choices=ActionType.choices)
    model_name = models.CharField(max_length=100)
    object_id = models.CharField(max_length=100, blank=True)
    object_repr = models.CharField(max_length=255, blank=True)
    changes = models.JSONField(default=dict, blank=True)

    class Meta:
        ordering = ['-timestamp']
        indexes = [
            models.Index(fields=['user', 'timestamp'], name='core_auditl_user_id_2f3a1c_idx'),
            models.Index(fields=['model_name', 'timestamp'], name='core_auditl_model_n_8d41e7_idx'),
            models.Index(fields=['action', 'timestamp'], name='core_auditl_action_5b7c02_idx'),
        ]

    def __str__(self):
        return f"{self.user} - {self.action} - {self.model_name} at {self.timestamp}"

    @classmethod
    def log(cls, user, action, model_name, object_id='', object_repr='', changes=None):
        """Helper method to create audit log entries."""
        return cls.objects.create(
            user=user,
            action=action,
            model_name=model_name,
            object_id=str(object_id),
            object_repr=object_repr[:255] if object_repr else '',
            changes=changes or {},
        )
