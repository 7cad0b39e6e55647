import os

bind = f"0.0.0.0:{os.getenv('PORT', 8000)}"
# The notification worker and dedup store live in-process; run more workers only with DEDUP_BACKEND=redis
workers = int(os.getenv('WEB_CONCURRENCY', 1))
worker_class = "uvicorn.workers.UvicornWorker"
worker_connections = 1000
max_requests = 1000
max_requests_jitter = 100
graceful_timeout = int(os.getenv('GRACEFUL_TIMEOUT', 30))
wsgi_app = "app.main:app"
