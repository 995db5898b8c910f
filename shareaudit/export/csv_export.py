import csv
import logging
import sys
from pathlib import Path
from typing import Iterable, List

from shareaudit.analysis.permission_record import (
    CSV_COLUMNS,
    HostProbeResult,
    PermissionRecord,
)

logger = logging.getLogger("shareaudit")


def aggregate(results: Iterable[HostProbeResult]) -> List[PermissionRecord]:
    """Flatten per-host record collections, keeping host completion order."""
    return [record for result in results for record in result.records]


class CSVExporter:
    def export(self, rows: Iterable[PermissionRecord], path: str) -> int:
        """Write rows to path ("-" for stdout) and return how many were written."""
        if path == "-":
            return self._write(rows, sys.stdout)

        out = Path(path)
        out.parent.mkdir(parents=True, exist_ok=True)
        with out.open("w", newline="", encoding="utf-8") as fh:
            count = self._write(rows, fh)

        logger.info(f"Wrote {count} rows to {out}")
        return count

    @staticmethod
    def _write(rows: Iterable[PermissionRecord], fh) -> int:
        writer = csv.DictWriter(fh, fieldnames=CSV_COLUMNS)
        writer.writeheader()
        count = 0
        for row in rows:
            writer.writerow(row.as_row())
            count += 1
        return count
