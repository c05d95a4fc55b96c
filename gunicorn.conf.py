"""Gunicorn configuration for the SmartPOS ASGI app."""

import os

# Start with `gunicorn smartpos.main:app`; the ASGI worker is forced here.
worker_class = "uvicorn.workers.UvicornWorker"

bind = f"0.0.0.0:{os.getenv('PORT', '8000')}"

# Each worker holds its own pool registry, so keep the count small.
workers = int(os.getenv("WEB_CONCURRENCY", "2"))
timeout = int(os.getenv("GUNICORN_TIMEOUT", "120"))
graceful_timeout = int(os.getenv("GUNICORN_GRACEFUL_TIMEOUT", "30"))
