"""Per-stage row accounting for a pipeline run.

Every stage reports how many rows went in and out, plus named counters for
drops and unresolved joins, so data loss is visible in the run log.
"""

import json
import logging
from dataclasses import asdict, dataclass, field
from pathlib import Path
from typing import Optional


logger = logging.getLogger(__name__)


@dataclass
class StageMetrics:
    stage: str
    rows_in: int
    rows_out: int
    counts: dict[str, int] = field(default_factory=dict)

    @property
    def rows_dropped(self) -> int:
        return self.rows_in - self.rows_out


@dataclass
class RunMetrics:
    """Metrics for one end-to-end run."""

    stages: list[StageMetrics] = field(default_factory=list)
    age_lookup_version: Optional[str] = None

    def add(self, stage: StageMetrics) -> None:
        self.stages.append(stage)
        logger.info(
            "%s: %s -> %s rows (%s dropped) %s",
            stage.stage,
            f"{stage.rows_in:,}",
            f"{stage.rows_out:,}",
            f"{stage.rows_dropped:,}",
            stage.counts,
        )

    def to_dict(self) -> dict:
        return {
            "age_lookup_version": self.age_lookup_version,
            "stages": [asdict(stage) for stage in self.stages],
        }

    def save(self, path: Path) -> None:
        path = Path(path)
        path.parent.mkdir(parents=True, exist_ok=True)
        with open(path, "w") as f:
            json.dump(self.to_dict(), f, indent=2)
