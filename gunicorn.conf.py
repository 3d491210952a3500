# gunicorn.conf.py
# Serve with: gunicorn -c gunicorn.conf.py
import multiprocessing, os

wsgi_app = "dashaforecast.main:app"
bind = f"0.0.0.0:{os.getenv('PORT', '5000')}"

# period math is short and CPU-bound; one sync worker per core
workers = int(os.getenv("WEB_CONCURRENCY", max(2, multiprocessing.cpu_count())))
worker_class = "sync"
threads = 1
preload_app = True
max_requests = int(os.getenv("GUNICORN_MAX_REQUESTS", "2000"))
max_requests_jitter = 200

timeout = int(os.getenv("GUNICORN_TIMEOUT", "30"))
graceful_timeout = 15
keepalive = 2
forwarded_allow_ips = os.getenv("FORWARDED_ALLOW_IPS", "127.0.0.1")

accesslog = "-"
errorlog = "-"
loglevel = os.getenv("LOGLEVEL", "info")

# X-Request-ID is echoed so /api/dasha and /api/windows calls can be traced
access_log_format = (
    '%(h)s "%(r)s" %(s)s %(b)sB %(M)sms '
    'req_id:%({X-Request-ID}i)s ua:"%(a)s"'
)
