"""Single-session lock for a profile directory.

Only one CostumeStudio process may mutate a profile at a time. The lock is a
PID file next to the state file; a PID file left behind by a dead process is
reclaimed.

Author:
    Jake Meador <jameador13@gmail.com>
"""

import logging
import os
from pathlib import Path

import psutil

from .errors import ProfileLockedError

__author__ = 'Jake Meador <jameador13@gmail.com>'
__all__ = ['ProfileLock', 'get_running_pid']

logger = logging.getLogger('costumestudio.lock')

PID_FILENAME = 'costumestudio.pid'


def get_running_pid(pid_file: Path) -> int | None:
    """Get PID of the live process holding the lock.

    Returns:
        PID if the lock holder is running, None otherwise
    """
    if not pid_file.exists():
        return None

    try:
        pid = int(pid_file.read_text().strip())
        if psutil.pid_exists(pid):
            return pid
    except (ValueError, OSError):
        pass

    return None


class ProfileLock:
    """Context manager holding the profile PID file.

    Usage:
        with ProfileLock(store_dir):
            manager.share(...)
    """

    def __init__(self, directory: Path):
        self.pid_file = Path(directory).expanduser() / PID_FILENAME
        self.acquired = False

    def acquire(self) -> None:
        """Take the lock.

        Raises:
            ProfileLockedError: If another live process holds it.
        """
        self.pid_file.parent.mkdir(parents=True, exist_ok=True)

        for _ in range(2):
            try:
                # O_EXCL makes check-and-create a single step
                fd = os.open(self.pid_file, os.O_CREAT | os.O_EXCL | os.O_WRONLY)
            except FileExistsError:
                pid = get_running_pid(self.pid_file)
                if pid:
                    raise ProfileLockedError(pid) from None
                logger.warning(f'Reclaiming stale lock {self.pid_file}')
                self.pid_file.unlink(missing_ok=True)
                continue

            with os.fdopen(fd, 'w', encoding='utf-8') as f:
                f.write(str(os.getpid()))
            break
        else:
            raise ProfileLockedError(get_running_pid(self.pid_file) or 0)

        self.acquired = True
        logger.debug(f'Acquired profile lock {self.pid_file}')

    def release(self) -> None:
        if not self.acquired:
            return
        self.pid_file.unlink(missing_ok=True)
        self.acquired = False
        logger.debug(f'Released profile lock {self.pid_file}')

    def __enter__(self):
        self.acquire()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.release()
