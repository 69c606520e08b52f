from django.db import models
from django.conf import settings


class ManagementLog(models.Model):
    """Audit trail of admin actions (withdrawal resolution, verification, commission changes)."""
    admin = models.ForeignKey(settings.AUTH_USER_MODEL, on_delete=models.SET_NULL, null=True, related_name='management_logs')
    action = models.CharField(max_length=100)
    target = models.CharField(max_length=100)
    details = models.JSONField(default=dict, blank=True)
    timestamp = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ['-timestamp']

    def __str__(self):
        admin = self.admin.username if self.admin else 'deleted admin'
        return f"{admin} - {self.action} on {self.target} at {self.timestamp}"

    @classmethod
    def record(cls, admin, action, target, **details):
        return cls.objects.create(admin=admin, action=action, target=target, details=details)
