"""
ICMP reachability probe using the system ping binary
"""

import logging
import platform
import re
import subprocess
import time
from dataclasses import dataclass
from typing import List, Optional

logger = logging.getLogger("shareaudit")

RTT_RE = re.compile(r"time[=<]\s*([\d.]+)\s*ms", re.IGNORECASE)


@dataclass(frozen=True)
class PingReply:
    address: str
    responded: bool
    latency: Optional[float] = None  # milliseconds


class PingTransport:
    def __init__(self, timeout: int = 1):
        self.timeout = timeout
        self.windows = platform.system().lower() == "windows"

    def build_command(self, address: str, count: int = 1) -> List[str]:
        if self.windows:
            return ["ping", "-n", str(count), "-w", str(self.timeout * 1000), address]
        return ["ping", "-c", str(count), "-W", str(self.timeout), address]

    def ping(self, address: str, count: int = 1) -> PingReply:
        cmd = self.build_command(address, count)
        started = time.monotonic()
        try:
            result = subprocess.run(
                cmd,
                capture_output=True,
                text=True,
                # whole-process bound on top of ping's own per-reply wait
                timeout=self.timeout * count + 2,
            )
        except subprocess.TimeoutExpired:
            logger.debug(f"Ping to {address} timed out")
            return PingReply(address, False)
        except OSError as e:
            logger.debug(f"Ping to {address} failed to run: {e}")
            return PingReply(address, False)

        elapsed = (time.monotonic() - started) * 1000

        if result.returncode != 0:
            return PingReply(address, False)

        return PingReply(address, True, parse_rtt(result.stdout, fallback=elapsed))


def parse_rtt(output: str, fallback: Optional[float] = None) -> Optional[float]:
    """Return the first round-trip time in ms reported by ping."""
    m = RTT_RE.search(output or "")
    if m:
        return float(m.group(1))
    return fallback
