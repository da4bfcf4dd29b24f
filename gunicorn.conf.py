"""
Gunicorn configuration for the Users API.

Run with:  gunicorn -c gunicorn.conf.py app.main:app

Port and log level come from the application's Settings (environment or
.env), so the server and the app never disagree. WORKERS sets the number of
worker processes (default: 2).
"""
import os

from app.core.config import Settings

_settings = Settings()

bind = f"0.0.0.0:{_settings.PORT}"

# Each worker opens its own pool: up to DB_POOL_SIZE + DB_MAX_OVERFLOW connections.
workers = int(os.environ.get("WORKERS", "2"))
worker_class = "uvicorn.workers.UvicornWorker"

# The app builds its pool in the lifespan, so workers must not share a preloaded one.
preload_app = False

keepalive = 5
timeout = 120
graceful_timeout = 30

loglevel = _settings.LOG_LEVEL.lower()
accesslog = "-"
errorlog = "-"
access_log_format = '%(h)s "%(r)s %(s)s" %(b)sB %(D)sµs'
