import os

class Config:
    SECRET_KEY = os.environ.get('SECRET_KEY') or 'you-will-never-guess'
    HOST = os.environ.get('HOST', '0.0.0.0')
    PORT = int(os.environ.get('PORT', '3000'))
    DEBUG = os.environ.get('DEBUG', '0') == '1'
    # Comma separated; '*' lets any LAN device open the page
    CORS_ORIGINS = os.environ.get('CORS_ORIGINS', '*')
    SESSION_DEFAULT_NAME = os.environ.get('SESSION_DEFAULT_NAME', 'Classroom Session')
    # Identity probing: ping timeout (ms) and ARP/neighbour query timeout (sec)
    PROBE_TIMEOUT_MS = int(os.environ.get('PROBE_TIMEOUT_MS', '200'))
    NEIGHBOR_QUERY_TIMEOUT_SEC = float(os.environ.get('NEIGHBOR_QUERY_TIMEOUT_SEC', '2'))
    EXPORT_FILENAME_PREFIX = os.environ.get('EXPORT_FILENAME_PREFIX', 'grading_results')
