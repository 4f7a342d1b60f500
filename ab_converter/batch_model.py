"""Data model for per-file conversion results and the batch report."""

import json
import os
from dataclasses import asdict, dataclass, field
from datetime import datetime

CONVERTED = "converted"
ALREADY_CONVERTED = "already_converted"
NO_CHANGES = "no_changes"
ERROR = "error"

STATUSES = (CONVERTED, ALREADY_CONVERTED, NO_CHANGES, ERROR)


@dataclass
class FileResult:
    """Outcome of converting one plugin/master file."""
    path: str
    status: str                 # one of STATUSES
    message: str = ""
    updated_scripts: list = field(default_factory=list)
    seconds: float = 0.0

    @property
    def ok(self) -> bool:
        return self.status != ERROR


@dataclass
class BatchReport:
    """Results of one batch run, in processing order."""
    direction: str = ""         # "BM->AB" | "AB->BM"
    results: list = field(default_factory=list)
    started: str = field(default_factory=lambda: datetime.now().isoformat(timespec="seconds"))

    def add(self, result: FileResult):
        self.results.append(result)

    @property
    def total(self) -> int:
        return len(self.results)

    @property
    def converted_count(self) -> int:
        return sum(1 for r in self.results if r.status == CONVERTED)

    @property
    def skipped_count(self) -> int:
        return sum(1 for r in self.results if r.status in (ALREADY_CONVERTED, NO_CHANGES))

    @property
    def failed_count(self) -> int:
        return sum(1 for r in self.results if r.status == ERROR)

    @property
    def total_seconds(self) -> float:
        return sum(r.seconds for r in self.results)

    def summary(self) -> str:
        return (f"{self.converted_count} converted, {self.skipped_count} skipped, "
                f"{self.failed_count} failed in {self.total_seconds:.3f} seconds")

    def save_report(self, path: str):
        """Write the report as JSON."""
        data = asdict(self)
        data["summary"] = {
            "converted": self.converted_count,
            "skipped": self.skipped_count,
            "failed": self.failed_count,
            "seconds": round(self.total_seconds, 3),
        }
        os.makedirs(os.path.dirname(path) if os.path.dirname(path) else ".", exist_ok=True)
        with open(path, "w", encoding="utf-8") as f:
            json.dump(data, f, ensure_ascii=False, indent=2)
