"""
Durable ``KEY=VALUE`` store backed by a dotenv file.

Writes merge key by key: comment lines and keys that are not written keep
their previous content. Values that are not purely alphanumeric are written
single-quoted, so a ``#`` or a space inside them survives the next read.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Iterable, Mapping
from pathlib import Path

from dotenv import dotenv_values, set_key

logger = logging.getLogger(__name__)


class EnvFile:

    def __init__(self, path: str | Path) -> None:
        self.path = Path(path)

    def read(self) -> dict[str, str]:
        if not self.path.exists():
            return {}
        return {k: v for k, v in dotenv_values(self.path).items() if v is not None}

    def merge(
        self,
        values: Mapping[str, str],
        keep_existing: Iterable[str] = (),
    ) -> None:
        """Write ``values`` into the file.

        Keys listed in ``keep_existing`` are only written when the new value
        is non-blank, so a stored secret is never replaced by nothing.
        """
        protected = set(keep_existing)
        self.path.parent.mkdir(parents=True, exist_ok=True)
        self.path.touch(exist_ok=True)
        for key, value in values.items():
            if key in protected and not value.strip():
                continue
            set_key(self.path, key, value, quote_mode="auto")
        logger.debug("Merged %d keys into %s", len(values), self.path)

    async def merge_async(
        self,
        values: Mapping[str, str],
        keep_existing: Iterable[str] = (),
    ) -> None:
        await asyncio.to_thread(self.merge, values, tuple(keep_existing))
