"""
Share probe pipeline
Runs one HostProber task per host on a bounded thread pool
"""

import logging
from concurrent.futures import ThreadPoolExecutor, as_completed
from typing import List

from shareaudit.analysis.permission_record import HostOutcome, HostProbeResult
from shareaudit.config.configuration import ShareAuditConfiguration
from shareaudit.discovery.acl import AclReader
from shareaudit.discovery.shares import make_share_lister
from shareaudit.engine.host_probe import HostProber

logger = logging.getLogger("shareaudit")


class SharePipeline:
    def __init__(self, cfg: ShareAuditConfiguration):
        self.cfg = cfg
        self.max_workers = cfg.advanced.max_host_concurrency

        if self.max_workers < 1:
            raise ValueError("max_host_concurrency must be at least 1")

        self.host_prober = HostProber(
            share_lister=make_share_lister(cfg),
            acl_reader=AclReader(cfg),
        )

    def run(self, hosts: List[str]) -> List[HostProbeResult]:
        """
        Probe every host and return one result per host, in completion
        order. Returns only after every task has finished.

        Duplicate host names are probed once per occurrence.
        """
        logger.info(f"Starting share probing on {len(hosts)} hosts")

        results: List[HostProbeResult] = []
        if not hosts:
            return results

        with ThreadPoolExecutor(max_workers=self.max_workers) as executor:
            future_to_host = {
                executor.submit(self.host_prober.probe_host, host): host
                for host in hosts
            }

            for future in as_completed(future_to_host):
                host = future_to_host[future]
                try:
                    result = future.result()
                except Exception as e:
                    logger.warning(f"Probe of {host} failed: {e}")
                    result = HostProbeResult(host, HostOutcome.UNREACHABLE, detail=str(e))

                results.append(result)
                if result.records:
                    logger.info(f"Collected {len(result.records)} permission records from {host}")

        return results
