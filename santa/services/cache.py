from __future__ import annotations

import json
import os
from pathlib import Path
from typing import Any, Dict, Optional

from loguru import logger


class LocalStateCache:
    """JSON mirror of the last persisted draw record.

    Read only when the database cannot be reached.
    """

    def __init__(self, path: str) -> None:
        self.path = Path(path)

    def load(self) -> Optional[Dict[str, Any]]:
        if not self.path.exists():
            return None
        try:
            data = json.loads(self.path.read_text(encoding="utf-8"))
        except (OSError, ValueError) as exc:
            logger.bind(path=str(self.path)).warning("Unreadable state cache: {error}", error=str(exc))
            return None
        if not isinstance(data, dict):
            logger.bind(path=str(self.path)).warning("State cache does not hold a record")
            return None
        return data

    def save(self, record: Dict[str, Any]) -> None:
        if self.path.parent and not self.path.parent.exists():
            self.path.parent.mkdir(parents=True, exist_ok=True)
        tmp_path = self.path.with_name(self.path.name + ".tmp")
        tmp_path.write_text(json.dumps(record, ensure_ascii=False, sort_keys=True), encoding="utf-8")
        os.replace(tmp_path, self.path)

    def clear(self) -> None:
        if self.path.exists():
            self.path.unlink()
