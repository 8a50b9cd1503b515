"""Single-flight guard against overlapping watcher runs."""

import json
import logging
import os
import uuid
from datetime import datetime, timedelta
from pathlib import Path
from typing import Optional

logger = logging.getLogger(__name__)


class RunLock:
    """
    Lease file shared by every invocation on the same host.

    The lease records the holder's run id and an expiry. A run whose
    lease expired (crashed or hung past the TTL) may be taken over.
    """

    DEFAULT_PATH = "/tmp/licitace_run.lock"
    DEFAULT_TTL_SECONDS = 600

    def __init__(self, path: Optional[str] = None, ttl_seconds: Optional[int] = None):
        self.path = Path(path or self.DEFAULT_PATH)
        self.ttl = timedelta(seconds=ttl_seconds or self.DEFAULT_TTL_SECONDS)
        self.run_id: Optional[str] = None

    def acquire(self) -> bool:
        """Take the lease. Returns False if another unexpired run holds it."""
        run_id = uuid.uuid4().hex
        lease = {
            "run_id": run_id,
            "expires_at": (datetime.utcnow() + self.ttl).isoformat(),
        }

        if self._try_create(lease):
            self.run_id = run_id
            return True

        holder = self._read_lease(self.path)
        if holder is not None and not self._is_expired(holder):
            logger.warning(f"Run {holder.get('run_id')} holds the lock until {holder.get('expires_at')}")
            return False

        logger.warning(f"Taking over expired lock at {self.path}")
        if self._take_over(lease):
            self.run_id = run_id
            return True
        return False

    def release(self) -> None:
        """Drop the lease if this instance still holds it."""
        if self.run_id is None:
            return

        holder = self._read_lease(self.path)
        if holder is not None and holder.get("run_id") == self.run_id:
            self.path.unlink(missing_ok=True)
        self.run_id = None

    def __enter__(self) -> bool:
        return self.acquire()

    def __exit__(self, exc_type, exc, tb) -> None:
        self.release()

    def _try_create(self, lease: dict) -> bool:
        """Publish a fully written lease; fails if any lease file exists."""
        self.path.parent.mkdir(parents=True, exist_ok=True)
        staged = self.path.with_name(f"{self.path.name}.{lease['run_id']}.tmp")
        staged.write_text(json.dumps(lease))
        try:
            os.link(staged, self.path)
        except FileExistsError:
            return False
        finally:
            staged.unlink(missing_ok=True)
        return True

    def _take_over(self, lease: dict) -> bool:
        """
        Replace an expired lease.

        The old file is renamed aside first, so of several runs racing for
        the same stale lease only one moves it. A run that instead moved a
        lease another run had just published puts it back and gives up.
        """
        aside = self.path.with_name(f"{self.path.name}.{lease['run_id']}.stale")
        try:
            os.rename(self.path, aside)
        except FileNotFoundError:
            return self._try_create(lease)

        moved = self._read_lease(aside)
        if moved is not None and not self._is_expired(moved):
            try:
                os.link(aside, self.path)
            except FileExistsError:
                pass
            aside.unlink(missing_ok=True)
            logger.warning(f"Run {moved.get('run_id')} took over the lock first")
            return False

        aside.unlink(missing_ok=True)
        return self._try_create(lease)

    def _read_lease(self, path: Path) -> Optional[dict]:
        try:
            with open(path, "r") as f:
                lease = json.load(f)
            if isinstance(lease, dict):
                return lease
        except FileNotFoundError:
            return None
        except ValueError:
            pass

        # Unreadable lease: held until its modification time plus the TTL
        try:
            modified = datetime.utcfromtimestamp(os.stat(path).st_mtime)
        except FileNotFoundError:
            return None
        return {"run_id": None, "expires_at": (modified + self.ttl).isoformat()}

    def _is_expired(self, lease: dict) -> bool:
        try:
            expires_at = datetime.fromisoformat(lease["expires_at"])
        except (KeyError, TypeError, ValueError):
            return True
        return expires_at <= datetime.utcnow()
