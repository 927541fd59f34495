# The view cache lives in the worker; one worker keeps every poll on the cache a write just cleared.
wsgi_app = "attendance_desk.main:app"
bind = "127.0.0.1:8000"
workers = 1
worker_class = "uvicorn.workers.UvicornWorker"
timeout = 60
graceful_timeout = 30
keepalive = 5
loglevel = "info"
accesslog = "-"
errorlog = "-"
