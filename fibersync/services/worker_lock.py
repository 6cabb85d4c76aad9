# fibersync/services/worker_lock.py
"""
Named run locks kept in the worker_locks table, so only one process runs
a given job at a time. A lock older than its timeout is taken over.
"""
import logging
import os
import socket
from datetime import datetime, timedelta

from sqlalchemy.exc import IntegrityError
from sqlmodel import Session

from ..models.payment import WorkerLock

logger = logging.getLogger(__name__)


def acquire_lock(session: Session, name: str, timeout_seconds: int) -> bool:
    lock = session.get(WorkerLock, name)
    if lock:
        expires_at = lock.locked_at + timedelta(seconds=timeout_seconds)
        if datetime.utcnow() < expires_at:
            logger.info(f"Lock '{name}' held by {lock.locked_by} until {expires_at:%Y-%m-%d %H:%M:%S}")
            return False
        logger.warning(f"Found expired lock '{name}' from {lock.locked_by}, taking over")
        session.delete(lock)
        session.commit()

    try:
        session.add(WorkerLock(lock_name=name, locked_by=f"{socket.gethostname()}:{os.getpid()}"))
        session.commit()
    except IntegrityError:
        session.rollback()
        logger.info(f"Another worker acquired lock '{name}' first")
        return False
    return True


def release_lock(session: Session, name: str) -> None:
    lock = session.get(WorkerLock, name)
    if lock:
        session.delete(lock)
        session.commit()
