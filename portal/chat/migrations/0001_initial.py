# Generated manually
import django.db.models.deletion
import portal.chat.models
from django.conf import settings
from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        ('clients', '0001_initial'),
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
    ]

    operations = [
        migrations.CreateModel(
            name='ChatMessage',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('is_from_client', models.BooleanField(default=False)),
                ('message', models.TextField(blank=True, default='')),
                ('attachment', models.FileField(blank=True, max_length=500, null=True, upload_to=portal.chat.models.chat_attachment_path)),
                ('attachment_name', models.CharField(blank=True, default='', max_length=255)),
                ('attachment_type', models.CharField(blank=True, choices=[('', 'None'), ('image', 'Image'), ('file', 'File')], default='', max_length=10)),
                ('is_read', models.BooleanField(default=False)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('client', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='messages', to='clients.client')),
                ('sender', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='chat_messages', to=settings.AUTH_USER_MODEL)),
            ],
            options={
                'db_table': 'client_messages',
                'ordering': ['created_at'],
                'indexes': [
                    models.Index(fields=['client', 'created_at'], name='idx_message_client_created'),
                    models.Index(fields=['client', 'is_from_client', 'is_read'], name='idx_message_unread'),
                ],
            },
        ),
    ]
