"""
Select one directory server per domain
"""

import logging

from shareaudit.config.configuration import search_root as make_search_root
from shareaudit.discovery.latency import LatencyProber
from shareaudit.discovery.replicas import ReplicaDiscovery
from shareaudit.errors import AllUnreachable, NoReachableServer

logger = logging.getLogger("shareaudit")


class DirectoryServerResolver:
    def __init__(self, replica_discovery: ReplicaDiscovery, latency_prober: LatencyProber):
        self.replica_discovery = replica_discovery
        self.latency_prober = latency_prober

    def resolve(self, domain: str, dns_root: str) -> str:
        """
        Return the server to query for domain.

        Falls back to the search root itself when the domain advertises no
        global catalog replicas. Raises NoReachableServer when replicas
        exist but none of them answers.
        """
        root = make_search_root(domain, dns_root)

        replicas = self.replica_discovery.list_replicas(root)
        if not replicas:
            logger.warning(
                f"No global catalog replicas found for {root}, querying {root} directly"
            )
            return root

        try:
            server = self.latency_prober.probe(replicas)
        except AllUnreachable as e:
            raise NoReachableServer(root, str(e)) from e

        logger.info(f"Selected {server} for {root} ({len(replicas)} candidate(s))")
        return server
