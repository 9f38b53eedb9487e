import django.db.models.deletion
from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = []

    operations = [
        migrations.CreateModel(
            name='Storage',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('name', models.CharField(max_length=255, unique=True)),
                ('driver', models.CharField(choices=[('Local', 'Local filesystem'), ('AmazonS3', 'Amazon S3 compatible')], default='Local', max_length=32)),
                ('configuration', models.JSONField(blank=True, default=dict, help_text='Driver configuration: bucket, basePath, endpoint, ...')),
            ],
            options={
                'verbose_name': 'Storage',
                'verbose_name_plural': 'Storages',
                'ordering': ['name'],
            },
        ),
        migrations.CreateModel(
            name='File',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('identifier', models.CharField(help_text='Path inside the storage: /folder/file.ext', max_length=1024)),
                ('mime_type', models.CharField(blank=True, default='', max_length=255)),
                ('size_bytes', models.BigIntegerField(default=0)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('modified_at', models.DateTimeField(auto_now=True)),
                ('storage', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='files', to='files.storage')),
            ],
            options={
                'verbose_name': 'File',
                'verbose_name_plural': 'Files',
                'ordering': ['storage', 'identifier'],
                'constraints': [models.UniqueConstraint(fields=('storage', 'identifier'), name='files_storage_identifier_unique')],
            },
        ),
        migrations.CreateModel(
            name='FileMetadata',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('title', models.CharField(blank=True, default='', max_length=255)),
                ('alternative', models.TextField(blank=True, default='')),
                ('width', models.PositiveIntegerField(default=0)),
                ('height', models.PositiveIntegerField(default=0)),
                ('modified_at', models.DateTimeField(auto_now=True)),
                ('file', models.OneToOneField(on_delete=django.db.models.deletion.CASCADE, related_name='metadata', to='files.file')),
            ],
            options={
                'verbose_name': 'File metadata',
                'verbose_name_plural': 'File metadata',
            },
        ),
        migrations.CreateModel(
            name='ProcessedFile',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('identifier', models.CharField(max_length=1024)),
                ('task_type', models.CharField(default='Image.Preview', max_length=64)),
                ('configuration', models.JSONField(blank=True, default=dict)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('modified_at', models.DateTimeField(auto_now=True)),
                ('original_file', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='processed_files', to='files.file')),
                ('storage', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='processed_files', to='files.storage')),
            ],
            options={
                'verbose_name': 'Processed file',
                'verbose_name_plural': 'Processed files',
                'ordering': ['original_file', 'identifier'],
                'constraints': [models.UniqueConstraint(fields=('storage', 'identifier'), name='processed_files_storage_identifier_unique')],
            },
        ),
    ]
