"""
Domain discovery pipeline
Selects a directory server per domain and enumerates its computers
"""

import logging
from concurrent.futures import ThreadPoolExecutor, as_completed
from typing import Dict, List

from shareaudit.config.configuration import ShareAuditConfiguration, search_root
from shareaudit.discovery.computers import HostEnumerator
from shareaudit.discovery.latency import LatencyProber
from shareaudit.discovery.replicas import ReplicaDiscovery
from shareaudit.discovery.resolver import DirectoryServerResolver
from shareaudit.errors import DomainError
from shareaudit.transport.ping import PingTransport

logger = logging.getLogger("shareaudit")


class DomainPipeline:
    def __init__(self, cfg: ShareAuditConfiguration):
        self.cfg = cfg
        self.max_workers = cfg.advanced.domain_threads

        self.resolver = DirectoryServerResolver(
            replica_discovery=ReplicaDiscovery(cfg),
            latency_prober=LatencyProber(
                PingTransport(timeout=cfg.probing.ping_timeout),
                max_workers=cfg.probing.ping_threads,
            ),
        )
        self.enumerator = HostEnumerator(cfg)

    def discover_domain(self, domain: str) -> List[str]:
        dns_root = self.cfg.targets.dns_root
        server = self.resolver.resolve(domain, dns_root)
        return self.enumerator.enumerate(server, search_root(domain, dns_root))

    def run(self) -> List[str]:
        """
        Return the host names of every domain, concatenated in the order the
        domains were configured. A failing domain contributes no hosts.
        """
        domains = self.cfg.targets.domains
        per_domain: Dict[int, List[str]] = {}

        with ThreadPoolExecutor(max_workers=self.max_workers) as executor:
            future_to_domain = {
                executor.submit(self.discover_domain, domain): i
                for i, domain in enumerate(domains)
            }

            for future in as_completed(future_to_domain):
                i = future_to_domain[future]
                root = search_root(domains[i], self.cfg.targets.dns_root)
                try:
                    per_domain[i] = future.result()
                except DomainError as e:
                    logger.warning(f"Skipping domain {root}: {e}")
                except Exception as e:
                    logger.error(f"Exception processing domain {root}: {e}")

        hosts = [host for i in sorted(per_domain) for host in per_domain[i]]

        exclusions = {e.lower() for e in self.cfg.targets.exclusions}
        if exclusions:
            before = len(hosts)
            hosts = [h for h in hosts if h.lower() not in exclusions]
            logger.info(f"Excluded {before - len(hosts)} hosts")

        logger.info(f"Discovered {len(hosts)} hosts across {len(domains)} domain(s)")
        return hosts
