"""
Prometheus metrics configuration
"""
import os

from prometheus_client import (CONTENT_TYPE_LATEST, Counter, Gauge, Histogram,
                               Info, generate_latest)
from prometheus_client.multiprocess import MultiProcessCollector
from prometheus_client.registry import REGISTRY, CollectorRegistry

from app.core.config import get_settings

if os.environ.get('PROMETHEUS_MULTIPROC_DIR'):
    _exposition_registry = CollectorRegistry()
    MultiProcessCollector(_exposition_registry)
else:
    _exposition_registry = REGISTRY

# ============================================================================
# HTTP Request Metrics
# ============================================================================

http_requests_total = Counter(
    'http_requests_total',
    'Total number of HTTP requests',
    ['method', 'endpoint', 'status_code']
)

http_request_duration_seconds = Histogram(
    'http_request_duration_seconds',
    'HTTP request duration in seconds',
    ['method', 'endpoint', 'status_code'],
    buckets=(0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0)
)

http_errors_total = Counter(
    'http_errors_total',
    'Total number of HTTP errors',
    ['method', 'endpoint', 'status_code', 'error_type']
)

# ============================================================================
# Auth Metrics
# ============================================================================

auth_events_total = Counter(
    'auth_events_total',
    'Authentication events',
    ['event', 'outcome']  # event: 'register', 'login', 'password_reset_request', 'password_reset'
)

password_reset_rate_limited_total = Counter(
    'password_reset_rate_limited_total',
    'Password reset requests rejected by the per-email rate limiter'
)

password_reset_limiter_entries = Gauge(
    'password_reset_limiter_entries',
    'Emails currently tracked by the password reset rate limiter'
)

emails_sent_total = Counter(
    'emails_sent_total',
    'Outgoing emails',
    ['template', 'status']  # status: 'sent', 'failed'
)

# ============================================================================
# CRM Entity Metrics
# ============================================================================

crm_operations_total = Counter(
    'crm_operations_total',
    'Create/update/delete operations on CRM entities',
    ['entity', 'operation']  # entity: 'person', 'dynamic_field', 'interaction', 'tag'
)

# ============================================================================
# Database Metrics
# ============================================================================

db_queries_total = Counter(
    'db_queries_total',
    'Total number of database queries',
    ['operation', 'table']  # operation: 'select', 'insert', 'update', 'delete'
)

db_query_duration_seconds = Histogram(
    'db_query_duration_seconds',
    'Database query duration in seconds',
    ['operation', 'table'],
    buckets=(0.001, 0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5)
)

# ============================================================================
# System Info
# ============================================================================

app_info = Info(
    'app_info',
    'Application information'
)

_settings = get_settings()
app_info.info({
    'app_name': _settings.app_name,
    'app_env': _settings.app_env,
    'version': '0.1.0'
})


def get_metrics() -> bytes:
    """
    Get Prometheus metrics in text format

    Returns:
        bytes: Metrics in Prometheus text format
    """
    return generate_latest(_exposition_registry)


def get_metrics_content_type() -> str:
    return CONTENT_TYPE_LATEST
