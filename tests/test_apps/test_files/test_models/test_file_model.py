"""Tests for file registry models."""

import pytest
from django.db import IntegrityError

from server.apps.files.models import File, ProcessedFile, Storage


@pytest.mark.django_db
def test_file_creation(logo):
    """Test creating a file record."""
    assert logo.id is not None
    assert logo.identifier == '/images/logo.png'
    assert logo.is_derived is False
    assert logo.original_file is None
    assert str(logo) == f'{logo.storage_id}:/images/logo.png'


@pytest.mark.django_db
def test_file_helpers(logo):
    """Test filename and extension helpers."""
    assert logo.get_filename() == 'logo.png'
    assert logo.get_extension() == 'png'


@pytest.mark.django_db
def test_identifier_unique_per_storage(logo, local_storage):
    """Test the same identifier may exist once per storage."""
    File.objects.create(storage=local_storage, identifier=logo.identifier)

    with pytest.raises(IntegrityError):
        File.objects.create(storage=logo.storage, identifier=logo.identifier)


@pytest.mark.django_db
def test_processed_file_is_derived(logo_thumbnails, logo):
    """Test processed files point back to their original."""
    thumbnail = logo_thumbnails[0]

    assert thumbnail.is_derived is True
    assert thumbnail.original_file == logo
    assert list(logo.processed_files.order_by('identifier')) == sorted(
        logo_thumbnails,
        key=lambda processed: processed.identifier,
    )


def test_storage_driver_flags():
    """Test only AmazonS3 storages hold remote objects."""
    remote = Storage(name='s3', driver=Storage.Driver.AMAZON_S3)
    local = Storage(name='fs', driver=Storage.Driver.LOCAL)

    assert remote.is_remote_object_storage is True
    assert local.is_remote_object_storage is False
    assert str(remote) == 's3 (AmazonS3)'


def test_processed_file_str(memory_storage):
    """Test processed file string representation."""
    thumbnail = ProcessedFile(
        storage=memory_storage,
        identifier='/_processed_/a.png',
        task_type='Image.CropScaleMask',
    )

    assert str(thumbnail) == 'None:/_processed_/a.png (Image.CropScaleMask)'
