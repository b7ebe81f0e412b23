"""Gunicorn configuration for production."""

# Server socket
bind = '0.0.0.0:8080'

# Worker processes
# Each request runs its own event loop; threads keep slow Hijri lookups
# from blocking other requests.
workers = 2
worker_class = 'gthread'
threads = 4
# A cold ledger of N months needs about N seconds of Hijri lookups
timeout = 120
keepalive = 2

# Logging
accesslog = '-'
errorlog = '-'
loglevel = 'info'

# Process naming
proc_name = 'hawl-calculator'

# Server mechanics
daemon = False
pidfile = None
umask = 0
user = None
group = None
tmp_upload_dir = None
