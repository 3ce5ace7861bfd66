from dataclasses import dataclass, field
from typing import Any, Dict, List, Tuple

# (operation descriptor, document), e.g. ({"create": {"_index": "logs-x"}}, {...})
BulkOperation = Tuple[Dict[str, Any], Dict[str, Any]]

BULK_ACTIONS = ("index", "create")


@dataclass
class IngestionReport:
    """Outcome of one ingestion call."""

    index: str
    attempted: int = 0
    failed: int = 0
    flushes: int = 0
    failures: List[Dict[str, Any]] = field(default_factory=list)

    @property
    def succeeded(self) -> int:
        return self.attempted - self.failed

    def record_failures(self, items: List[Dict[str, Any]]) -> None:
        self.failed += len(items)
        self.failures.extend(items)
