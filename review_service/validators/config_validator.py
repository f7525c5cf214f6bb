"""
Configuration Validator
Validates the loaded settings at application startup and fails fast if any of
them is missing or invalid.

NOTE: This module uses print() for validation messages because it runs before
the logger is trusted. The logger depends on validated config values.
"""

import sys
from datetime import datetime
from urllib.parse import urlparse

from review_service.core.config import Config, config as default_config
from review_service.core.errors import ConfigurationError


def _log(message: str):
    """Print log message with timestamp in consistent format"""
    timestamp = datetime.now().strftime('%Y-%m-%d %H:%M:%S')
    print(f"[{timestamp}] INFO - {message}")


def is_valid_url(url: str) -> bool:
    """Validates a URL format"""
    try:
        result = urlparse(url)
        return all([result.scheme, result.netloc])
    except ValueError:
        return False


def is_valid_port(port) -> bool:
    """Validates a port number"""
    try:
        port_num = int(port)
        return 0 < port_num <= 65535
    except (ValueError, TypeError):
        return False


def is_valid_log_level(level: str) -> bool:
    valid_levels = ['DEBUG', 'INFO', 'WARNING', 'ERROR', 'CRITICAL']
    return bool(level) and level.upper() in valid_levels


def is_valid_environment(env: str) -> bool:
    valid_envs = ['development', 'local', 'production', 'test', 'staging']
    return bool(env) and env.lower() in valid_envs


# Configuration validation rules, keyed by environment variable name
VALIDATION_RULES = {
    'ENVIRONMENT': {
        'attribute': 'environment',
        'validator': is_valid_environment,
        'error_message': 'ENVIRONMENT must be one of: development, local, production, test, staging',
    },
    'PORT': {
        'attribute': 'port',
        'validator': is_valid_port,
        'error_message': 'PORT must be a valid port number (1-65535)',
    },
    'SERVICE_NAME': {
        'attribute': 'service_name',
        'validator': lambda v: bool(v),
        'error_message': 'SERVICE_NAME must be a non-empty string',
    },
    'APP_URL': {
        'attribute': 'app_url',
        'validator': is_valid_url,
        'error_message': 'APP_URL must be an absolute URL',
    },
    'MONGODB_DATABASE': {
        'attribute': 'mongodb_database',
        'validator': lambda v: bool(v),
        'error_message': 'MONGODB_DATABASE must be a non-empty string',
    },
    'MONGODB_PORT': {
        'attribute': 'mongodb_port',
        'validator': is_valid_port,
        'error_message': 'MONGODB_PORT must be a valid port number',
    },
    'LOG_LEVEL': {
        'attribute': 'log_level',
        'validator': is_valid_log_level,
        'error_message': 'LOG_LEVEL must be one of: DEBUG, INFO, WARNING, ERROR, CRITICAL',
    },
    'LOG_FORMAT': {
        'attribute': 'log_format',
        'validator': lambda v: bool(v) and v.lower() in ['json', 'console'],
        'error_message': 'LOG_FORMAT must be either json or console',
    },
    'FILESYSTEM_DISK': {
        'attribute': 'filesystem_disk',
        'validator': lambda v: v in ['local', 'public', 's3'],
        'error_message': 'FILESYSTEM_DISK must be one of: local, public, s3',
    },
    'STATISTICS_PAGE_SIZE': {
        'attribute': 'statistics_page_size',
        'validator': lambda v: 0 < v <= 1000,
        'error_message': 'STATISTICS_PAGE_SIZE must be between 1 and 1000',
    },
    'STATISTICS_MAX_ITERATIONS': {
        'attribute': 'statistics_max_iterations',
        'validator': lambda v: v > 0,
        'error_message': 'STATISTICS_MAX_ITERATIONS must be a positive integer',
    },
}


def validate_config(settings: Config = None):
    """
    Validates the settings according to the rules.

    Raises:
        ConfigurationError: if any value is missing or invalid
    """
    settings = settings or default_config
    errors = []
    warnings = []

    _log('[CONFIG] Validating environment configuration...')

    for key, rule in VALIDATION_RULES.items():
        value = getattr(settings, rule['attribute'], None)
        if not rule['validator'](value):
            errors.append(f"{key}: {rule['error_message']} (current value: {str(value)[:100]})")

    if settings.filesystem_disk == 's3' and not settings.aws_bucket:
        errors.append("AWS_BUCKET is required when FILESYSTEM_DISK is s3")

    if not settings.cloudfront_distribution_id:
        warnings.append("CLOUDFRONT_DISTRIBUTION_ID not set, CDN invalidations will be skipped")
    if not settings.google_translate_api_key:
        warnings.append("GOOGLE_TRANSLATE_API_KEY not set, translation requests will fail")

    for warning in warnings:
        _log(f"[CONFIG] {warning}")

    if errors:
        timestamp = datetime.now().strftime('%Y-%m-%d %H:%M:%S')
        print(f'[{timestamp}] ERROR - [CONFIG] Configuration validation failed:', file=sys.stderr)
        for error in errors:
            print(f'[{timestamp}] ERROR -   {error}', file=sys.stderr)
        raise ConfigurationError(
            "Configuration validation failed",
            details={"errors": errors},
        )

    _log('[CONFIG] All required environment variables are valid')
