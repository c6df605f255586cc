"""
redis-fs — a POSIX-like filesystem living entirely inside Redis.

Directories, files, symlinks, permissions and ownership, emulated on top
of plain hashes, strings and sets. No directories, no inodes, no renames
on the server side: every filesystem invariant is manufactured by the
client, one MULTI/EXEC at a time.
"""

import os

__version__ = "0.1.0"

REDISFS_HOME = os.environ.get("REDISFS_HOME", "~/.redisfs")
