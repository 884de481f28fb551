"""HTTP middleware."""
from .request_logging import log_requests
