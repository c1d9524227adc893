"""Indexing status events streamed to the uploader."""
import json
from dataclasses import dataclass, asdict
from typing import Any, Dict, Optional

PARSING = "parsing"
PROGRESS = "progress"
COMPLETE = "complete"
ERROR = "error"


@dataclass
class IndexEvent:
    """One status record of an indexing run."""
    status: str
    message: Optional[str] = None
    progress: Optional[int] = None  # percent, 0-100
    current: Optional[int] = None
    total: Optional[int] = None
    indexed_count: Optional[int] = None
    error: Optional[str] = None

    @classmethod
    def parsing(cls, message: str = "Extracting text from PDF...") -> "IndexEvent":
        return cls(status=PARSING, message=message)

    @classmethod
    def step(cls, current: int, total: int) -> "IndexEvent":
        return cls(
            status=PROGRESS,
            progress=round(current / total * 100),
            current=current,
            total=total
        )

    @classmethod
    def complete(cls, indexed_count: int, message: str) -> "IndexEvent":
        return cls(status=COMPLETE, message=message, indexed_count=indexed_count)

    @classmethod
    def failed(cls, error: str) -> "IndexEvent":
        return cls(status=ERROR, error=error)

    @property
    def is_terminal(self) -> bool:
        return self.status in (COMPLETE, ERROR)

    def to_dict(self) -> Dict[str, Any]:
        """Dictionary form with unset fields omitted."""
        return {key: value for key, value in asdict(self).items() if value is not None}

    def to_json_line(self) -> str:
        """Serialize as one newline-terminated JSON record."""
        return json.dumps(self.to_dict()) + "\n"
