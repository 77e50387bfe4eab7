import multiprocessing

# Gunicorn production configuration
workers = multiprocessing.cpu_count() * 2 + 1
# Staff terminals hold a thread for up to ORDER_WAIT_MAX seconds on /pos/orders/<id>/wait
threads = 8
worker_class = 'gthread'

# Must stay above ORDER_WAIT_MAX
timeout = 60
max_requests = 1000
max_requests_jitter = 100
keepalive = 5

accesslog = '-'
errorlog = '-'
loglevel = 'info'
capture_output = True
