"""
Main shareaudit controller - orchestrates all components
"""
import logging
from datetime import datetime
from typing import List

from shareaudit.analysis.permission_record import PermissionRecord
from shareaudit.config.configuration import ShareAuditConfiguration
from shareaudit.engine.domain_pipeline import DomainPipeline
from shareaudit.engine.share_pipeline import SharePipeline
from shareaudit.export.csv_export import CSVExporter, aggregate
from shareaudit.utils.logger import print_completion_stats

logger = logging.getLogger("shareaudit")


class ShareAuditRunner:
    """Main shareaudit controller"""

    def __init__(self, cfg: ShareAuditConfiguration):
        self.cfg = cfg
        self.start_time = None

        # ---------- Pipelines ----------
        self.share_pipeline = SharePipeline(cfg)
        self.exporter = CSVExporter()

    def execute(self) -> List[PermissionRecord]:
        if not self.cfg.targets.domains:
            raise ValueError("No domains specified")

        self.start_time = datetime.now()
        logger.info(f"Starting shareaudit at {self.start_time:%Y-%m-%d %H:%M:%S}")

        try:
            # ---------- Domain discovery ----------
            domain_pipeline = DomainPipeline(self.cfg)
            hosts = domain_pipeline.run()

            # ---------- Share probing ----------
            results = []
            if hosts:
                results = self.share_pipeline.run(hosts)
            else:
                logger.warning("No hosts discovered")

            # ---------- Aggregate / export ----------
            rows = aggregate(results)
            if self.cfg.output.sort_rows:
                rows.sort(key=PermissionRecord.sort_key)

            self.exporter.export(rows, self.cfg.output.output_path)

            print_completion_stats(self.start_time, results)
            return rows

        except KeyboardInterrupt:
            logger.warning("Interrupted by user")
            raise
