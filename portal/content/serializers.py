from django.db import transaction
from rest_framework import serializers

from .models import Resource, Video, Offer, Update, WeeklyProduct, ProductLink, extract_youtube_id, YOUTUBE_ID_LENGTH


def _required_text(value, label):
    if not value or not value.strip():
        raise serializers.ValidationError(f"{label} is required")
    return value.strip()


class ResourceSerializer(serializers.ModelSerializer):
    file = serializers.FileField(write_only=True, required=False, allow_null=True)

    class Meta:
        model = Resource
        fields = ['id', 'title', 'description', 'type', 'url', 'file', 'created_at']
        read_only_fields = ['created_at']

    def validate_title(self, value):
        return _required_text(value, "Title")

    def validate(self, attrs):
        resource_type = attrs.get('type', getattr(self.instance, 'type', Resource.TYPE_LINK))
        if resource_type == Resource.TYPE_LINK:
            url = attrs.get('url', getattr(self.instance, 'url', ''))
            if not url or not url.strip():
                raise serializers.ValidationError({'url': 'URL is required for link resources'})
            attrs['url'] = url.strip()
            attrs['file'] = None
        else:
            has_existing_file = bool(self.instance and self.instance.file)
            if not attrs.get('file') and not has_existing_file:
                raise serializers.ValidationError({'file': 'A file is required for file resources'})
        return attrs

    def _sync_file_url(self, resource):
        if resource.type == Resource.TYPE_FILE and resource.file and resource.url != resource.file.url:
            resource.url = resource.file.url
            resource.save(update_fields=['url'])
        return resource

    def create(self, validated_data):
        return self._sync_file_url(super().create(validated_data))

    def update(self, instance, validated_data):
        old_file = instance.file.name if instance.file else None
        replacing_file = 'file' in validated_data
        instance = super().update(instance, validated_data)
        if old_file and replacing_file and (not instance.file or instance.file.name != old_file):
            instance.file.storage.delete(old_file)
        return self._sync_file_url(instance)


class VideoSerializer(serializers.ModelSerializer):
    youtube_url = serializers.CharField(write_only=True, required=False, allow_blank=True)
    youtube_id = serializers.CharField(required=False, max_length=YOUTUBE_ID_LENGTH)
    embed_url = serializers.CharField(read_only=True)
    thumbnail_url = serializers.CharField(read_only=True)

    class Meta:
        model = Video
        fields = [
            'id', 'title', 'description', 'youtube_url', 'youtube_id',
            'embed_url', 'thumbnail_url', 'created_at'
        ]
        read_only_fields = ['created_at']

    def validate_title(self, value):
        return _required_text(value, "Title")

    def validate(self, attrs):
        youtube_url = attrs.pop('youtube_url', '')
        if youtube_url:
            video_id = extract_youtube_id(youtube_url)
            if video_id is None:
                raise serializers.ValidationError({'youtube_url': 'Invalid YouTube URL'})
            attrs['youtube_id'] = video_id
        elif 'youtube_id' in attrs:
            if len(attrs['youtube_id']) != YOUTUBE_ID_LENGTH:
                raise serializers.ValidationError({'youtube_id': 'YouTube video id must be 11 characters'})
        elif self.instance is None:
            raise serializers.ValidationError({'youtube_url': 'A YouTube URL is required'})
        return attrs


class OfferSerializer(serializers.ModelSerializer):
    is_expired = serializers.BooleanField(read_only=True)

    class Meta:
        model = Offer
        fields = [
            'id', 'title', 'description', 'discount_percentage', 'valid_until',
            'code', 'is_expired', 'created_at'
        ]
        read_only_fields = ['created_at']

    def validate_title(self, value):
        return _required_text(value, "Title")

    def validate_code(self, value):
        return value.strip() if value else value


class UpdateSerializer(serializers.ModelSerializer):
    class Meta:
        model = Update
        fields = ['id', 'title', 'content', 'image_url', 'is_published', 'created_at', 'updated_at']
        read_only_fields = ['created_at', 'updated_at']

    def validate_title(self, value):
        return _required_text(value, "Title")

    def validate_content(self, value):
        return _required_text(value, "Content")


class PublishSerializer(serializers.Serializer):
    is_published = serializers.BooleanField(required=False)


class ProductLinkSerializer(serializers.ModelSerializer):
    class Meta:
        model = ProductLink
        fields = ['id', 'title', 'url', 'created_at']
        read_only_fields = ['id', 'created_at']

    def validate_title(self, value):
        return _required_text(value, "Link title")


class WeeklyProductSerializer(serializers.ModelSerializer):
    links = ProductLinkSerializer(many=True, required=False)

    class Meta:
        model = WeeklyProduct
        fields = ['id', 'title', 'description', 'is_published', 'links', 'created_at', 'updated_at']
        read_only_fields = ['created_at', 'updated_at']

    def validate_title(self, value):
        return _required_text(value, "Title")

    def _replace_links(self, product, links):
        product.links.all().delete()
        ProductLink.objects.bulk_create([
            ProductLink(product=product, title=link['title'], url=link['url'])
            for link in links
        ])

    def create(self, validated_data):
        links = validated_data.pop('links', [])
        with transaction.atomic():
            product = WeeklyProduct.objects.create(**validated_data)
            self._replace_links(product, links)
        return product

    def update(self, instance, validated_data):
        links = validated_data.pop('links', None)
        with transaction.atomic():
            instance = super().update(instance, validated_data)
            if links is not None:
                self._replace_links(instance, links)
                # Drop links prefetched before the replace
                instance._prefetched_objects_cache = {}
        return instance
