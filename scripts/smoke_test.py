"""Smoke test a running Refittr deployment.

Usage:
    BASE_URL=https://refittr.example.com ADMIN_EMAIL=... ADMIN_PASSWORD=... python scripts/smoke_test.py

Checks the health endpoints and public pages, then signs in and reads the
dashboard statistics through the JSON API. Nothing is written.
"""

from __future__ import annotations

import os
import re
import sys

import requests


def check(label: str, ok: bool, detail: str = '') -> bool:
    print(f"{'OK  ' if ok else 'FAIL'} {label}{(' - ' + detail) if detail else ''}")
    return ok


def main() -> int:
    base_url = os.environ.get('BASE_URL', 'http://127.0.0.1:5000').rstrip('/')
    email = os.environ.get('ADMIN_EMAIL')
    password = os.environ.get('ADMIN_PASSWORD')
    session = requests.Session()
    results = []

    for path in ('/health', '/health/ready', '/', '/about'):
        resp = session.get(base_url + path, timeout=15)
        results.append(check(f'GET {path}', resp.status_code == 200, str(resp.status_code)))

    resp = session.get(base_url + '/api/dashboard/stats', timeout=15)
    results.append(check('API requires login', resp.status_code == 401, str(resp.status_code)))

    if not email or not password:
        print('ADMIN_EMAIL/ADMIN_PASSWORD not set; skipping signed-in checks')
    else:
        login_page = session.get(base_url + '/login', timeout=15)
        match = re.search(r'name="csrf_token"[^>]*value="([^"]+)"', login_page.text)
        token = match.group(1) if match else ''
        resp = session.post(
            base_url + '/login',
            data={'email': email, 'password': password, 'csrf_token': token},
            allow_redirects=False,
            timeout=15,
        )
        results.append(check('Sign in', resp.status_code == 302, resp.headers.get('Location', '')))

        resp = session.get(base_url + '/api/dashboard/stats', timeout=15)
        ok = resp.status_code == 200
        results.append(check('Dashboard stats', ok, resp.text[:200] if ok else str(resp.status_code)))

    failed = results.count(False)
    print(f'{len(results) - failed}/{len(results)} checks passed')
    return 1 if failed else 0


if __name__ == '__main__':
    sys.exit(main())
