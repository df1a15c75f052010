# gunicorn.conf.py
import multiprocessing
import os

wsgi_app = os.getenv("GUNICORN_APP", "server:app")
bind = os.getenv("GUNICORN_BIND", "0.0.0.0:8000")
worker_class = "uvicorn.workers.UvicornWorker"

# Layout requests are CPU-bound and short; one worker per core plus one
workers = int(os.getenv("GUNICORN_WORKERS", multiprocessing.cpu_count() + 1))
threads = int(os.getenv("GUNICORN_THREADS", 1))

# Connection and request handling
worker_connections = int(os.getenv("GUNICORN_WORKER_CONNECTIONS", 1000))
keepalive = int(os.getenv("GUNICORN_KEEPALIVE", 5))

# Timeouts
timeout = int(os.getenv("GUNICORN_TIMEOUT", 30))
graceful_timeout = int(os.getenv("GUNICORN_GRACEFUL_TIMEOUT", 10))

# Lifecycle
max_requests = int(os.getenv("GUNICORN_MAX_REQUESTS", 5000))
max_requests_jitter = int(os.getenv("GUNICORN_MAX_REQUESTS_JITTER", 250))

# Logging
accesslog = os.getenv("GUNICORN_ACCESSLOG", "-")
errorlog = os.getenv("GUNICORN_ERRORLOG", "-")
loglevel = os.getenv("GUNICORN_LOGLEVEL", "info")
