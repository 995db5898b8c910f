"""
Per-host share probe: discover, parse, inspect
"""

import logging

from shareaudit.analysis.permission_record import (
    HostOutcome,
    HostProbeResult,
    PermissionRecord,
    share_path,
)
from shareaudit.discovery.shares import parse_disk_shares
from shareaudit.errors import AccessDenied, AclQueryError
from shareaudit.utils.logger import log_permission_record

logger = logging.getLogger("shareaudit")


class HostProber:
    def __init__(self, share_lister, acl_reader):
        """
        Args:
            share_lister: object with list_shares(host) -> ShareListing
            acl_reader: object with get_acl(host, share) -> List[AccessRule]
        """
        self.share_lister = share_lister
        self.acl_reader = acl_reader

    def probe_host(self, host: str) -> HostProbeResult:
        # ---------- Discover ----------
        listing = self.share_lister.list_shares(host)

        if not listing.exit_ok:
            if listing.is_unreachable():
                logger.warning(f"{host} is offline or firewalled")
                return HostProbeResult(host, HostOutcome.UNREACHABLE, detail=listing.raw_text.strip())

            logger.info(f"{host} refused share listing, probably not a Windows host")
            return HostProbeResult(host, HostOutcome.NON_DIRECTORY_HOST, detail=listing.raw_text.strip())

        # ---------- Parse ----------
        shares = parse_disk_shares(listing.raw_text)
        if not shares:
            logger.debug(f"{host} has no disk shares")
            return HostProbeResult(host, HostOutcome.NO_MATCHING_SHARES)

        result = HostProbeResult(host, HostOutcome.WITH_SHARES, shares=shares)

        # ---------- Inspect ----------
        for share in shares:
            path = share_path(host, share)
            try:
                rules = self.acl_reader.get_acl(host, share)
            except AccessDenied:
                logger.debug(f"Access denied reading ACL of {path}")
                result.denied_shares.append(share)
                continue
            except AclQueryError as e:
                logger.debug(f"Cannot read ACL of {path}: {e}")
                result.denied_shares.append(share)
                continue
            except Exception as e:
                logger.debug(f"Unexpected error reading ACL of {path}: {e}")
                result.denied_shares.append(share)
                continue

            for rule in rules:
                record = PermissionRecord.from_rule(path, rule)
                result.records.append(record)
                log_permission_record(logger, record)

            logger.info(f"Read {len(rules)} access rule(s) from {path}")

        return result
