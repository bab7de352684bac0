"""
Estadísticas de una tabla espejo.
"""
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Dict, Optional


@dataclass(frozen=True)
class MirrorStats:
    """Estadísticas de una tabla espejo para un sistema."""

    system_id: int
    total_rows: int
    active_rows: int
    stale_rows: int
    last_sync_at: Optional[datetime]

    def to_dict(self) -> Dict[str, Any]:
        return {
            "system_id": self.system_id,
            "total_rows": self.total_rows,
            "active_rows": self.active_rows,
            "stale_rows": self.stale_rows,
            "last_sync_at": self.last_sync_at.isoformat() if self.last_sync_at else None,
        }
