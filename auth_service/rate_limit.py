"""
Per-IP rate limiting using slowapi.

These limits sit in front of the per-email OTP limits and stop a single
client from hammering the endpoints across many addresses:

  • strict  – 5/min  (endpoints that send an OTP email)
  • auth    – 10/min (OTP verification and login – prevents brute-force)
  • default – 60/min (everything else)

The limiter keys on client IP by default.
"""

from slowapi import Limiter
from slowapi.util import get_remote_address

# Named rate strings for use in @limiter.limit() decorators
STRICT = "5/minute"
AUTH = "10/minute"
DEFAULT = "60/minute"

limiter = Limiter(key_func=get_remote_address, default_limits=[DEFAULT])
