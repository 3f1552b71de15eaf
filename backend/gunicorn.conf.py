import os

# gunicorn -c backend/gunicorn.conf.py "authsvc:create_app()"

# Bind & workers
bind = f"0.0.0.0:{os.getenv('PORT', '8080')}"
workers = int(os.getenv("GUNICORN_WORKERS", "2"))
threads = 1
timeout = 60
graceful_timeout = 30
keepalive = 5

# Logs to stdout/stderr
accesslog = "-"
errorlog = "-"
loglevel = os.getenv("LOG_LEVEL", "info").lower()

# Trust proxy headers (ProxyFix handles them inside the app)
forwarded_allow_ips = "*"
proxy_protocol = False
