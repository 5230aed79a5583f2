"""
WSGI Entry Point for the Refittr dashboard

This module serves as the entry point for WSGI servers (like Gunicorn)
to run the Flask application in production environments.

PRODUCTION REQUIREMENTS:
- All environment variables must be set BEFORE this module is imported
- Missing environment variables cause immediate failure with clear messages
"""

import os
import sys

# Load .env ONLY for local development. In production, environment variables
# must be provided by the platform. Never rely on a committed file.
if os.environ.get('FLASK_ENV', '').lower() != 'production' and os.environ.get('FLASK_CONFIG', '').lower() != 'production':
    from dotenv import load_dotenv

    load_dotenv(override=False)

from refittr import create_app

# Determine configuration name.
# - Local/dev defaults to development.
# - Production platforms must explicitly set FLASK_CONFIG=production.
config_name = (os.getenv('FLASK_CONFIG') or os.getenv('FLASK_ENV') or 'development').lower()

print(f'Initializing Refittr with config: {config_name}', file=sys.stderr)

if config_name == 'production':
    required_vars = {
        'SECRET_KEY': 'Required for session signing and CSRF protection',
        'DATABASE_URL': 'Required for PostgreSQL connection',
    }
    backend = os.getenv('STORAGE_BACKEND', 'supabase').lower()
    if backend == 'supabase':
        required_vars['SUPABASE_URL'] = 'Required for document and logo storage'
        required_vars['SUPABASE_SERVICE_ROLE_KEY'] = 'Required for server-side storage writes'
    elif backend == 'cloudinary':
        required_vars['CLOUDINARY_URL'] = 'Required for document and logo storage'

    missing_vars = [
        f'  - {var_name}: {description}'
        for var_name, description in required_vars.items()
        if not os.getenv(var_name)
    ]

    if missing_vars:
        error_msg = (
            "\n" + "=" * 70 + "\n"
            "DEPLOYMENT FAILED: Missing required environment variables\n"
            + "=" * 70 + "\n\n"
            + "\n".join(missing_vars)
            + "\n\n"
            "Set these in the hosting platform's environment settings and redeploy.\n"
            + "=" * 70 + "\n"
        )
        print(error_msg, file=sys.stderr)
        raise RuntimeError('Missing required environment variables in production')

    print('All required environment variables present', file=sys.stderr)

try:
    app = create_app(config_name)
    print('Flask application created successfully', file=sys.stderr)
except Exception as exc:
    print(f'\n{"=" * 70}', file=sys.stderr)
    print('FATAL: Application initialization failed', file=sys.stderr)
    print(f'{"=" * 70}', file=sys.stderr)
    print(f'\nError: {exc}', file=sys.stderr)
    print('\nCommon causes:', file=sys.stderr)
    print('  1. Database connection failure (check DATABASE_URL)', file=sys.stderr)
    print('  2. Storage backend misconfigured (check STORAGE_BACKEND and its credentials)', file=sys.stderr)
    print('  3. Invalid environment variable values', file=sys.stderr)
    print(f'\n{"=" * 70}\n', file=sys.stderr)
    raise
