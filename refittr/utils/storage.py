"""Object storage clients.

Uploaded documents live in named buckets (``builder-logos``, ``floor-plans``,
``exterior-photos``, ``spec-sheets``). Three interchangeable backends share one
small interface::

    upload(bucket, path, data, content_type) -> public URL
    remove(bucket, paths) -> None

- SupabaseStorage: hosted storage REST API, authenticated with the
  service-role key. The key never leaves the server.
- CloudinaryStorage: buckets map to folders under CLOUDINARY_FOLDER.
- LocalStorage: files on disk, served by the main blueprint (development).

The factory builds one client per application and keeps it in
``app.extensions``; handlers reach it through :func:`get_storage`. Tests pass
their own client to ``create_app``.
"""

from __future__ import annotations

import io
import os
import random
import string
import time
from pathlib import Path
from typing import Iterable, Optional
from urllib.parse import quote, unquote, urlparse

import requests
from flask import current_app


EXTENSION_KEY = 'refittr_storage'
IMAGE_EXTENSIONS = {'png', 'jpg', 'jpeg', 'gif', 'webp'}


class StorageError(RuntimeError):
    """Raised when the storage backend rejects or fails an operation."""


class StorageConfigurationError(StorageError):
    """Raised when storage credentials are missing."""


def generate_object_name(extension: str) -> str:
    """Collision-resistant object name: ``<epoch-ms>-<9 random chars>.<ext>``."""

    alphabet = string.ascii_lowercase + string.digits
    token = ''.join(random.choice(alphabet) for _ in range(9))
    name = f"{int(time.time() * 1000)}-{token}"
    extension = (extension or '').lstrip('.').lower()
    return f"{name}.{extension}" if extension else name


def object_path_from_url(url: Optional[str], bucket: str) -> Optional[str]:
    """Return the object path inside ``bucket`` referenced by a public URL.

    Works for every backend because each one keeps the bucket name as a path
    segment directly above the object path.
    """

    if not url or not bucket:
        return None
    try:
        parts = [unquote(p) for p in urlparse(url).path.split('/') if p]
    except ValueError:
        return None
    if bucket not in parts:
        return None
    index = len(parts) - 1 - parts[::-1].index(bucket)
    remainder = parts[index + 1:]
    return '/'.join(remainder) or None


class LocalStorage:
    """Filesystem storage under ``root/<bucket>/<path>``."""

    def __init__(self, root: str, url_prefix: str = '/uploads'):
        self.root = Path(root).resolve()
        self.url_prefix = url_prefix.rstrip('/')

    def resolve(self, bucket: str, path: str) -> Path:
        base = (self.root / bucket).resolve()
        candidate = (base / path).resolve()
        if os.path.commonpath([str(base), str(candidate)]) != str(base):
            raise StorageError('Object path escapes its bucket.')
        return candidate

    def upload(self, bucket: str, path: str, data: bytes, content_type: str) -> str:
        target = self.resolve(bucket, path)
        if target.exists():
            raise StorageError(f'Object {bucket}/{path} already exists.')
        try:
            target.parent.mkdir(parents=True, exist_ok=True)
            target.write_bytes(data)
        except OSError as exc:
            raise StorageError(str(exc)) from exc
        return f"{self.url_prefix}/{bucket}/{quote(path)}"

    def remove(self, bucket: str, paths: Iterable[str]) -> None:
        for path in paths:
            target = self.resolve(bucket, path)
            try:
                target.unlink(missing_ok=True)
            except OSError as exc:
                raise StorageError(str(exc)) from exc


class SupabaseStorage:
    """Hosted object storage reached over its REST API."""

    def __init__(
        self,
        base_url: Optional[str],
        service_key: Optional[str],
        cache_control: str = '3600',
        timeout: float = 30.0,
        session: Optional[requests.Session] = None,
    ):
        self.base_url = (base_url or '').rstrip('/')
        self._service_key = service_key
        self.cache_control = cache_control
        self.timeout = timeout
        self.http = session or requests.Session()

    def _headers(self, **extra) -> dict:
        if not self.base_url or not self._service_key:
            raise StorageConfigurationError(
                'SUPABASE_URL and SUPABASE_SERVICE_ROLE_KEY must be set to use hosted storage.'
            )
        headers = {
            'Authorization': f'Bearer {self._service_key}',
            'apikey': self._service_key,
        }
        headers.update(extra)
        return headers

    @staticmethod
    def _raise_for(response: requests.Response, action: str) -> None:
        if response.ok:
            return
        try:
            detail = response.json().get('message') or response.text
        except ValueError:
            detail = response.text
        raise StorageError(f'{action} failed ({response.status_code}): {detail}')

    def public_url(self, bucket: str, path: str) -> str:
        return f"{self.base_url}/storage/v1/object/public/{bucket}/{quote(path)}"

    def upload(self, bucket: str, path: str, data: bytes, content_type: str) -> str:
        headers = self._headers(**{
            'Content-Type': content_type or 'application/octet-stream',
            'cache-control': f'max-age={self.cache_control}',
            'x-upsert': 'false',
        })
        try:
            response = self.http.post(
                f"{self.base_url}/storage/v1/object/{bucket}/{quote(path)}",
                data=data,
                headers=headers,
                timeout=self.timeout,
            )
        except requests.RequestException as exc:
            raise StorageError(f'Upload failed: {exc}') from exc
        self._raise_for(response, 'Upload')
        return self.public_url(bucket, path)

    def remove(self, bucket: str, paths: Iterable[str]) -> None:
        prefixes = [p for p in paths if p]
        if not prefixes:
            return
        try:
            response = self.http.delete(
                f"{self.base_url}/storage/v1/object/{bucket}",
                json={'prefixes': prefixes},
                headers=self._headers(),
                timeout=self.timeout,
            )
        except requests.RequestException as exc:
            raise StorageError(f'Remove failed: {exc}') from exc
        self._raise_for(response, 'Remove')


class CloudinaryStorage:
    """Cloudinary media storage; a bucket is a folder under ``folder``."""

    def __init__(self, cloudinary_url: Optional[str], folder: str = 'refittr'):
        self.cloudinary_url = cloudinary_url
        self.folder = folder.strip('/')

    def _configure(self):
        if not self.cloudinary_url:
            raise StorageConfigurationError('CLOUDINARY_URL is not configured. Persistent uploads are disabled.')

        import cloudinary
        import cloudinary.uploader

        cloudinary.config(cloudinary_url=self.cloudinary_url)
        return cloudinary.uploader

    def _public_id(self, bucket: str, path: str):
        # Image public ids drop the extension; raw assets keep it.
        stem, _, ext = path.rpartition('.')
        if ext.lower() in IMAGE_EXTENSIONS and stem:
            return f"{self.folder}/{bucket}/{stem}", 'image'
        return f"{self.folder}/{bucket}/{path}", 'raw'

    def upload(self, bucket: str, path: str, data: bytes, content_type: str) -> str:
        uploader = self._configure()
        public_id, resource_type = self._public_id(bucket, path)
        try:
            result = uploader.upload(
                io.BytesIO(data),
                public_id=public_id,
                resource_type=resource_type,
                overwrite=False,
            )
        except Exception as exc:
            raise StorageError(f'Upload failed: {exc}') from exc

        secure_url = result.get('secure_url') or result.get('url')
        if not secure_url:
            raise StorageError('Cloudinary upload did not return a public URL.')
        return secure_url

    def remove(self, bucket: str, paths: Iterable[str]) -> None:
        uploader = self._configure()
        for path in paths:
            public_id, resource_type = self._public_id(bucket, path)
            try:
                result = uploader.destroy(public_id, resource_type=resource_type)
            except Exception as exc:
                raise StorageError(f'Remove failed: {exc}') from exc
            if result.get('result') not in ('ok', 'not found'):
                raise StorageError(f"Remove failed: {result.get('result')}")


def create_storage(app):
    """Build the storage client selected by ``STORAGE_BACKEND``."""

    backend = (app.config.get('STORAGE_BACKEND') or 'local').lower()
    if backend == 'supabase':
        return SupabaseStorage(
            app.config.get('SUPABASE_URL'),
            app.config.get('SUPABASE_SERVICE_ROLE_KEY'),
            cache_control=app.config.get('STORAGE_CACHE_CONTROL', '3600'),
            timeout=app.config.get('STORAGE_TIMEOUT_SECONDS', 30.0),
        )
    if backend == 'cloudinary':
        return CloudinaryStorage(app.config.get('CLOUDINARY_URL'), app.config.get('CLOUDINARY_FOLDER', 'refittr'))
    if backend != 'local':
        app.logger.warning('Unknown STORAGE_BACKEND=%s; using local storage', backend)
    return LocalStorage(app.config['UPLOAD_FOLDER'])


def init_storage(app, storage=None) -> None:
    app.extensions[EXTENSION_KEY] = storage if storage is not None else create_storage(app)


def get_storage():
    return current_app.extensions[EXTENSION_KEY]
