# Gunicorn configuration for the Weekly Revenue Forecast API
# Analyses run inside the request, so the timeout bounds a single upload + run

# Worker processes
workers = 2
worker_class = "uvicorn.workers.UvicornWorker"

# Timeout settings
timeout = 120
keepalive = 5
worker_tmp_dir = "/dev/shm"  # Use shared memory for better performance

# Logging
accesslog = "-"
errorlog = "-"
loglevel = "info"

# Process naming
proc_name = "weekly-revenue-forecast"

# Server socket
bind = "0.0.0.0:10000"

# Worker lifecycle
max_requests = 1000
max_requests_jitter = 100
preload_app = True

# Security
limit_request_line = 4094
limit_request_fields = 100
limit_request_field_size = 8190
