import os
bind = f"0.0.0.0:{os.getenv('PORT','3000')}"
workers = int(os.getenv("WEB_CONCURRENCY", "2"))
threads = 4
timeout = int(float(os.getenv("OPENAI_TIMEOUT", "30"))) + 30  # proposal call is the slow path
graceful_timeout = 30
keepalive = 5
accesslog = "-"
