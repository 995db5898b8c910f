"""
Pick the fastest responding server out of a candidate list
"""

import logging
from concurrent.futures import ThreadPoolExecutor, as_completed
from typing import Dict, Iterable, List

from shareaudit.errors import AllUnreachable, EmptyCandidateSet
from shareaudit.transport.ping import PingReply, PingTransport

logger = logging.getLogger("shareaudit")


class LatencyProber:
    def __init__(self, ping_transport: PingTransport, max_workers: int = 16):
        if max_workers < 1:
            raise ValueError("max_workers must be at least 1")

        self.ping_transport = ping_transport
        self.max_workers = max_workers

    def probe(self, addresses: Iterable[str]) -> str:
        """
        Ping every address once, concurrently, and return the one with
        the lowest round-trip time.

        Ties go to the address that came first in the input.

        Raises:
            EmptyCandidateSet: no addresses were given
            AllUnreachable: no address answered
        """
        # dedupe, keeping first-seen order for the tie-break
        candidates: List[str] = list(dict.fromkeys(a for a in addresses if a))
        if not candidates:
            raise EmptyCandidateSet()

        replies: Dict[str, PingReply] = {}

        workers = min(self.max_workers, len(candidates))
        with ThreadPoolExecutor(max_workers=workers) as executor:
            future_to_address = {
                executor.submit(self.ping_transport.ping, address, 1): address
                for address in candidates
            }

            for future in as_completed(future_to_address):
                address = future_to_address[future]
                try:
                    replies[address] = future.result()
                except Exception as e:
                    logger.debug(f"Error probing {address}: {e}")
                    replies[address] = PingReply(address, False)

        best = None
        best_latency = None
        for address in candidates:
            reply = replies[address]
            if not reply.responded:
                logger.debug(f"No response from {address}")
                continue

            latency = reply.latency if reply.latency is not None else float("inf")
            logger.debug(f"{address} responded in {latency:.1f} ms")
            if best is None or latency < best_latency:
                best, best_latency = address, latency

        if best is None:
            raise AllUnreachable(candidates)

        return best
