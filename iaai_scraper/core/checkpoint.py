# checkpoint.py
"""
Checkpoint store for resumable pagination.

Progress lives in a JSON key-value directory, one file per key:
storage/key_value_stores/<store>/<KEY>.json -> {"lastPageProcessed": N}
"""

import json
import logging
import os
import tempfile
from pathlib import Path
from typing import Union

from iaai_scraper.core.models import CheckpointState

logger = logging.getLogger(__name__)

DEFAULT_STATE_KEY = "CRAWLER_STATE"


class CheckpointStore:
    """Durable {lastPageProcessed} record for one crawl target"""

    def __init__(self, store_dir: Union[str, Path], key: str = DEFAULT_STATE_KEY):
        self.store_dir = Path(store_dir)
        self.key = key

    @property
    def path(self) -> Path:
        return self.store_dir / f"{self.key}.json"

    def load(self) -> CheckpointState:
        """Load saved progress; a missing or unreadable file means a fresh run"""
        if not self.path.exists():
            return CheckpointState()

        try:
            with open(self.path, 'r', encoding='utf-8') as f:
                data = json.load(f)
            state = CheckpointState.from_dict(data)
        except (OSError, json.JSONDecodeError, TypeError, ValueError, AttributeError) as e:
            logger.warning(f"⚠️ Failed to load checkpoint {self.path}: {e}. Starting from page 1.")
            return CheckpointState()

        if state.last_page_processed > 0:
            logger.info(f"💾 Found saved state: last processed page was {state.last_page_processed}")
        return state

    def save(self, state: CheckpointState) -> None:
        """Write the state atomically so a crash never leaves a torn file"""
        self.store_dir.mkdir(parents=True, exist_ok=True)

        fd, tmp_path = tempfile.mkstemp(prefix=f".{self.key}.", suffix=".tmp", dir=str(self.store_dir))
        try:
            with os.fdopen(fd, 'w', encoding='utf-8') as f:
                json.dump(state.to_dict(), f)
                f.flush()
                os.fsync(f.fileno())
            os.replace(tmp_path, self.path)
        except BaseException:
            if os.path.exists(tmp_path):
                os.remove(tmp_path)
            raise

        logger.debug(f"💾 Checkpoint saved: {self.key} page {state.last_page_processed}")

    def clear(self) -> None:
        """Forget saved progress so the next run starts from page 1"""
        try:
            self.path.unlink()
            logger.info(f"🧹 Checkpoint {self.key} cleared")
        except FileNotFoundError:
            pass


__all__ = ["CheckpointStore", "DEFAULT_STATE_KEY"]
