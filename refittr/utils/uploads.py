"""Shared helpers for validating and persisting dashboard documents."""

from __future__ import annotations

import os
from dataclasses import dataclass
from typing import Optional

from flask import current_app
from werkzeug.datastructures import FileStorage
from werkzeug.utils import secure_filename

from refittr.utils.storage import (
    StorageError,
    generate_object_name,
    get_storage,
    object_path_from_url,
)


MB = 1024 * 1024

# Content type detected from magic bytes -> accepted extensions.
SAFE_MIME_TYPES = {
    'image/jpeg': ['.jpg', '.jpeg'],
    'image/png': ['.png'],
    'image/gif': ['.gif'],
    'image/webp': ['.webp'],
    'application/pdf': ['.pdf'],
}


class UploadValidationError(ValueError):
    """The file breaks its bucket's type or size rules."""


@dataclass(frozen=True)
class BucketRule:
    content_types: frozenset
    max_bytes: int
    type_message: str
    size_message: str

    @property
    def extensions(self):
        return sorted({ext.lstrip('.') for ct in self.content_types for ext in SAFE_MIME_TYPES[ct]})


BUCKET_RULES = {
    'builder-logos': BucketRule(
        frozenset({'image/jpeg', 'image/png', 'image/gif', 'image/webp'}),
        5 * MB,
        'Please select an image file',
        'Image must be smaller than 5MB',
    ),
    'floor-plans': BucketRule(
        frozenset({'application/pdf'}),
        10 * MB,
        'Please select a PDF file',
        'File must be smaller than 10MB',
    ),
    'exterior-photos': BucketRule(
        frozenset({'image/jpeg', 'image/png', 'image/webp'}),
        5 * MB,
        'Please select a valid image file (JPG, PNG, or WebP)',
        'Image must be smaller than 5MB',
    ),
    'spec-sheets': BucketRule(
        frozenset({'application/pdf', 'image/jpeg', 'image/png', 'image/webp'}),
        10 * MB,
        'Please select a PDF or image file',
        'File must be smaller than 10MB',
    ),
}


def detect_content_type(header: bytes) -> Optional[str]:
    """Identify a supported format from its leading bytes."""
    if header.startswith(b'%PDF'):
        return 'application/pdf'
    if header.startswith(b'\xff\xd8\xff'):
        return 'image/jpeg'
    if header.startswith(b'\x89PNG\r\n\x1a\n'):
        return 'image/png'
    if header.startswith(b'GIF89a') or header.startswith(b'GIF87a'):
        return 'image/gif'
    if header.startswith(b'RIFF') and b'WEBP' in header[:32]:
        return 'image/webp'
    return None


def _stream_size(file: FileStorage) -> int:
    stream = file.stream
    original_pos = stream.tell()
    stream.seek(0, os.SEEK_END)
    size = stream.tell()
    stream.seek(original_pos)
    return size


def validate_upload(file: Optional[FileStorage], bucket: str):
    """Check ``file`` against the rules of ``bucket``.

    Returns ``(extension, content_type)``. The extension must agree with the
    content detected from magic bytes, which stops renamed files.
    """

    rule = BUCKET_RULES.get(bucket)
    if rule is None:
        raise UploadValidationError(f'Unknown storage bucket: {bucket}')

    if file is None or not getattr(file, 'filename', None):
        raise UploadValidationError('No file provided')

    filename = secure_filename(file.filename)
    if not filename or '.' not in filename:
        raise UploadValidationError('The uploaded file must include a valid filename and extension.')
    ext = '.' + filename.rsplit('.', 1)[1].lower()

    stream = file.stream
    original_pos = stream.tell()
    stream.seek(0)
    header = stream.read(64)
    stream.seek(original_pos)

    content_type = detect_content_type(header)
    if content_type not in rule.content_types:
        raise UploadValidationError(rule.type_message)
    if ext not in SAFE_MIME_TYPES[content_type]:
        raise UploadValidationError(
            f'File extension {ext} does not match content type {content_type}.'
        )

    if _stream_size(file) > rule.max_bytes:
        raise UploadValidationError(rule.size_message)

    return ext.lstrip('.'), content_type


def upload_to_bucket(file: FileStorage, bucket: str) -> str:
    """Validate and store ``file`` in ``bucket``; return its public URL.

    Raises UploadValidationError for bad input and StorageError when the
    backend fails.
    """

    ext, content_type = validate_upload(file, bucket)
    object_name = generate_object_name(ext)

    stream = file.stream
    stream.seek(0)
    data = stream.read()

    url = get_storage().upload(bucket, object_name, data, content_type)
    current_app.logger.info('Uploaded %s (%d bytes) to %s', object_name, len(data), bucket)
    return url


def remove_from_bucket(url: Optional[str], bucket: str) -> bool:
    """Best-effort removal of the object behind ``url``.

    Failures are logged and reported as ``False``; the caller's record change
    goes ahead regardless.
    """

    path = object_path_from_url(url, bucket)
    if not path:
        return False
    try:
        get_storage().remove(bucket, [path])
    except StorageError as exc:
        current_app.logger.warning('Could not remove %s from %s: %s', path, bucket, exc)
        return False
    return True
