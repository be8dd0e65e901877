"""
random-redis constants

All string literals and default values used when launching redis-server.
Single source of truth for the command line and file naming.
"""

from enum import Enum


# Prefix for pid files written by servers launched through this package
PID_FILE_PREFIX = "random-redis"


class DefaultSetting(str, Enum):
    """Default string settings for a launched server"""
    HOST = "localhost"
    COMMAND = "redis-server"
    FILE_LOCATION = "/tmp"


class TimeoutValue(float, Enum):
    """Timeout values in seconds"""
    STARTUP = 0.2
    ADMIN_SOCKET = 5.0
    REAP = 2.0


class RedisArgument(str, Enum):
    """redis-server command line flags"""
    DB_FILENAME = "--dbfilename"
    DIR = "--dir"
    PIDFILE = "--pidfile"
    PORT = "--port"


class FilePattern(str, Enum):
    """Per-instance file name patterns"""
    DUMP_FILE = "dump.{port}.{server_id}.rdb"
    PID_FILE = "{prefix}.{port}.{server_id}.pid"


class EnvVar(str, Enum):
    """Environment variables read by RedisServerConfig.from_env()"""
    HOST = "RANDOM_REDIS_HOST"
    COMMAND = "RANDOM_REDIS_COMMAND"
    FILE_LOCATION = "RANDOM_REDIS_FILE_LOCATION"
    STARTUP_TIMEOUT = "RANDOM_REDIS_STARTUP_TIMEOUT"
    SOCKET_TIMEOUT = "RANDOM_REDIS_SOCKET_TIMEOUT"
