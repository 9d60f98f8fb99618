import os
import tempfile
from typing import Optional

import redis

from constants import STORE_BACKEND, DATA_FILE, REDIS_HOST, REDIS_PORT, REDIS_PASSWORD
from redis_keys import REDIS_DB_KEY
from logging_config import get_logger

logger = get_logger(__name__)


class FileBackend:
    """Whole-document persistence on the local disk."""

    def __init__(self, path: str = DATA_FILE):
        self.path = path
        logger.info(f"Initializing FileBackend at {self.path}")

    def read(self) -> Optional[bytes]:
        if not os.path.exists(self.path):
            logger.debug(f"No data file at {self.path}")
            return None
        with open(self.path, "rb") as f:
            return f.read()

    def write(self, data: bytes):
        # Write next to the target, then rename over it so a crash never
        # leaves a truncated document behind.
        directory = os.path.dirname(os.path.abspath(self.path))
        os.makedirs(directory, exist_ok=True)
        fd, tmp_path = tempfile.mkstemp(prefix=".valve-", suffix=".tmp", dir=directory)
        try:
            with os.fdopen(fd, "wb") as f:
                f.write(data)
                f.flush()
                os.fsync(f.fileno())
            os.replace(tmp_path, self.path)
        except BaseException:
            if os.path.exists(tmp_path):
                os.unlink(tmp_path)
            raise
        logger.debug(f"Wrote {len(data)} bytes to {self.path}")


class RedisBackend:
    """Whole-document persistence under a single redis key."""

    def __init__(self, client: Optional[redis.Redis] = None, key: str = REDIS_DB_KEY,
                 host: str = REDIS_HOST, port: int = REDIS_PORT, password: Optional[str] = REDIS_PASSWORD):
        self.key = key
        if client is not None:
            self.redis_client = client
            return
        logger.info(f"Initializing RedisBackend with connection to {host}:{port}")
        # redis-py connects on first command; an unreachable server surfaces
        # as a read/write failure the store logs and retries.
        self.redis_client = redis.Redis(host=host, port=port, password=password)
        try:
            self.redis_client.ping()
            logger.info(f"Redis client connected successfully to {host}:{port}")
        except redis.RedisError as e:
            logger.error(f"Redis at {host}:{port} unreachable, continuing in memory until it recovers: {e}")

    def read(self) -> Optional[bytes]:
        data = self.redis_client.get(self.key)
        if data is None:
            logger.debug(f"Redis key {self.key} not found")
            return None
        if isinstance(data, str):
            data = data.encode("utf-8")
        return data

    def write(self, data: bytes):
        # SET replaces the value in one step
        self.redis_client.set(self.key, data)
        logger.debug(f"Wrote {len(data)} bytes to redis key {self.key}")


def build_backend(kind: str = STORE_BACKEND):
    if kind == "file":
        return FileBackend()
    if kind == "redis":
        return RedisBackend()
    raise ValueError(f"Unknown STORE_BACKEND: {kind!r} (expected 'file' or 'redis')")
