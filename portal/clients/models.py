from django.db import models
from portal.core.models import User


class Client(models.Model):
    """Agency clients; each may own one client portal login"""
    name = models.CharField(max_length=200)
    email = models.EmailField(unique=True)
    company = models.CharField(max_length=200, blank=True, null=True)
    phone = models.CharField(max_length=20, blank=True, null=True)
    domain = models.CharField(max_length=255, blank=True, null=True)
    avatar = models.URLField(max_length=500, blank=True, null=True)
    user = models.OneToOneField(User, on_delete=models.SET_NULL, null=True, blank=True, related_name='client_profile')
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    def __str__(self):
        return self.name

    def save(self, *args, **kwargs):
        if self.email:
            self.email = self.email.strip().lower()
        super().save(*args, **kwargs)

    class Meta:
        db_table = 'clients'
        ordering = ['-created_at', '-id']
        indexes = [
            models.Index(fields=['-created_at'], name='idx_client_created'),
        ]
