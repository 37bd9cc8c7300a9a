"""
Gunicorn configuration for the Luxora Times API.

Usage:
    gunicorn -c gunicorn.conf.py luxora.main:app

The response cache and per-source quota counters live in process memory, so
one worker is the default. Raising GUNICORN_WORKERS multiplies the effective
upstream quota usage by the worker count.
"""

import os

# Server socket
bind = os.getenv("GUNICORN_BIND", "0.0.0.0:8000")
backlog = 2048

# Worker processes
workers = int(os.getenv("GUNICORN_WORKERS", "1"))
worker_class = "uvicorn.workers.UvicornWorker"

# Worker memory limits
max_requests = int(os.getenv("GUNICORN_MAX_REQUESTS", "1000"))
max_requests_jitter = int(os.getenv("GUNICORN_MAX_REQUESTS_JITTER", "100"))

# Timeout
timeout = int(os.getenv("GUNICORN_TIMEOUT", "60"))
keepalive = 5
graceful_timeout = 30

# Process naming
proc_name = "luxora-api"

# Logging
errorlog = "-"
accesslog = "-"
loglevel = os.getenv("GUNICORN_LOG_LEVEL", "info")
access_log_format = '%(h)s %(l)s %(u)s %(t)s "%(r)s" %(s)s %(b)s "%(f)s" "%(a)s" %(D)s'

# Each worker builds its own caches and HTTP client in the lifespan
preload_app = False
