import os
import re
import uuid

from django.core.validators import MinValueValidator, MaxValueValidator
from django.db import models
from django.utils import timezone

YOUTUBE_URL_PATTERN = re.compile(r'^.*(youtu.be/|v/|u/\w/|embed/|watch\?v=|&v=)([^#&?]*).*')
YOUTUBE_ID_LENGTH = 11


def extract_youtube_id(url):
    """Return the 11-character video id from a YouTube URL, or None"""
    match = YOUTUBE_URL_PATTERN.match((url or '').strip())
    if match and len(match.group(2)) == YOUTUBE_ID_LENGTH:
        return match.group(2)
    return None


def resource_file_path(instance, filename):
    ext = os.path.splitext(filename)[1].lower()
    return f"resources/{uuid.uuid4().hex}{ext}"


class Resource(models.Model):
    """Downloadable file or external link shared with every client"""
    TYPE_FILE = 'file'
    TYPE_LINK = 'link'

    TYPE_CHOICES = [
        (TYPE_FILE, 'File'),
        (TYPE_LINK, 'Link'),
    ]

    title = models.CharField(max_length=255)
    description = models.TextField(blank=True, null=True)
    type = models.CharField(max_length=10, choices=TYPE_CHOICES, default=TYPE_LINK)
    url = models.CharField(max_length=1000, blank=True, default='')
    file = models.FileField(upload_to=resource_file_path, max_length=500, blank=True, null=True)
    created_at = models.DateTimeField(auto_now_add=True)

    def __str__(self):
        return self.title

    class Meta:
        db_table = 'resources'
        ordering = ['-created_at', '-id']


class Video(models.Model):
    title = models.CharField(max_length=255)
    description = models.TextField(blank=True, null=True)
    youtube_id = models.CharField(max_length=YOUTUBE_ID_LENGTH)
    created_at = models.DateTimeField(auto_now_add=True)

    def __str__(self):
        return self.title

    @property
    def embed_url(self):
        return f"https://www.youtube.com/embed/{self.youtube_id}"

    @property
    def thumbnail_url(self):
        return f"https://img.youtube.com/vi/{self.youtube_id}/hqdefault.jpg"

    class Meta:
        db_table = 'videos'
        ordering = ['-created_at', '-id']


class Offer(models.Model):
    title = models.CharField(max_length=255)
    description = models.TextField(blank=True, null=True)
    discount_percentage = models.PositiveSmallIntegerField(
        null=True, blank=True,
        validators=[MinValueValidator(0), MaxValueValidator(100)]
    )
    valid_until = models.DateField()
    code = models.CharField(max_length=50, blank=True, null=True)
    created_at = models.DateTimeField(auto_now_add=True)

    def __str__(self):
        return self.title

    @property
    def is_expired(self):
        return self.valid_until < timezone.localdate()

    class Meta:
        db_table = 'offers'
        ordering = ['-created_at', '-id']
        indexes = [
            models.Index(fields=['valid_until'], name='idx_offer_valid_until'),
        ]


class Update(models.Model):
    """Agency announcement; visible to clients once published"""
    title = models.CharField(max_length=255)
    content = models.TextField()
    image_url = models.URLField(max_length=1000, blank=True, null=True)
    is_published = models.BooleanField(default=False)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    def __str__(self):
        return self.title

    class Meta:
        db_table = 'updates'
        ordering = ['-created_at', '-id']
        indexes = [
            models.Index(fields=['is_published', '-created_at'], name='idx_update_published'),
        ]


class WeeklyProduct(models.Model):
    title = models.CharField(max_length=255)
    description = models.TextField(blank=True, null=True)
    is_published = models.BooleanField(default=False)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    def __str__(self):
        return self.title

    class Meta:
        db_table = 'weekly_products'
        ordering = ['-created_at', '-id']


class ProductLink(models.Model):
    product = models.ForeignKey(WeeklyProduct, on_delete=models.CASCADE, related_name='links')
    title = models.CharField(max_length=255)
    url = models.URLField(max_length=1000)
    created_at = models.DateTimeField(auto_now_add=True)

    def __str__(self):
        return f"{self.product.title} - {self.title}"

    class Meta:
        db_table = 'product_links'
        ordering = ['id']
