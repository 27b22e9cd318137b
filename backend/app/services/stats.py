from __future__ import annotations

from dataclasses import asdict, dataclass, field
from typing import Any, Dict, List


@dataclass
class IngestStats:
    """Counters and non-fatal errors collected over one ingestion run.

    Created by whoever starts the run and handed to each stage explicitly, so
    the caller still holds partial counts if a stage raises.
    """

    makes_processed: int = 0
    models_processed: int = 0
    trims_processed: int = 0
    mpg_enriched: int = 0
    listings_fetched: int = 0
    listings_linked: int = 0
    listings_unlinked: int = 0
    errors: List[str] = field(default_factory=list)

    def record_error(self, message: str) -> None:
        self.errors.append(message)

    def as_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        data["errors"] = list(self.errors)
        return data
