# fibersync/core/limiter.py
"""Shared slowapi limiter, attached to app.state in main.py."""
from slowapi import Limiter
from slowapi.util import get_remote_address

limiter = Limiter(key_func=get_remote_address)
