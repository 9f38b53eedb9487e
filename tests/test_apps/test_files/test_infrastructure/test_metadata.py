"""Tests for metadata utilities."""

from server.apps.files.infrastructure.metadata import (
    detect_mime_type,
    get_file_extension,
)


def test_detect_mime_type():
    """Test MIME type detection from identifier."""
    assert detect_mime_type('/docs/test.pdf') == 'application/pdf'
    assert detect_mime_type('/test.txt') == 'text/plain'
    assert detect_mime_type('/images/test.jpg') == 'image/jpeg'
    assert detect_mime_type('/images/test.png') == 'image/png'


def test_detect_mime_type_unknown():
    """Test MIME type detection for unknown extension."""
    result = detect_mime_type('/test.unknown')
    assert result == 'application/octet-stream'


def test_detect_mime_type_prefers_recorded():
    """Test the registry's MIME type wins over guessing."""
    assert detect_mime_type('/test.bin', 'Image/WebP') == 'image/webp'


def test_get_file_extension():
    """Test file extension extraction."""
    assert get_file_extension('/test.pdf') == 'pdf'
    assert get_file_extension('test.TXT') == 'txt'  # Lowercase
    assert get_file_extension('/folder/test') == ''  # No extension
    assert get_file_extension('test.tar.gz') == 'gz'  # Last extension
