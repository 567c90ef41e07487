import os

# Run with: gunicorn -c deploy/gunicorn.conf.py libdesk.main:app
bind = os.getenv("LIBDESK_BIND", "127.0.0.1:8000")
# Each worker starts its own scheduler, so more than one sends duplicate reminders.
workers = int(os.getenv("LIBDESK_WORKERS", "1"))
worker_class = "uvicorn.workers.UvicornWorker"
timeout = 60
graceful_timeout = 30
keepalive = 5
loglevel = "info"
accesslog = "-"
errorlog = "-"
