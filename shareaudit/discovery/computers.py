"""
Computer object enumeration over LDAP
"""

import logging
from typing import List, Optional

from impacket.ldap import ldap as ldap_impacket

from shareaudit.config.configuration import ShareAuditConfiguration
from shareaudit.errors import EnumerationFailed
from shareaudit.transport.ldap import LDAPTransport
from shareaudit.utils.ldap_utils import attribute_value, is_entry

logger = logging.getLogger("shareaudit")

COMPUTER_FILTER = "(&(objectCategory=computer)(dNSHostName=*))"
HOST_ATTRIBUTE = "dNSHostName"

# server-side default MaxPageSize
BOUNDED_LIMIT = 1000


class HostEnumerator:
    def __init__(self, cfg: ShareAuditConfiguration):
        self.cfg = cfg
        self.paged = cfg.targets.paged_queries
        self.ldap_transport = LDAPTransport(cfg)

    def enumerate(self, server: str, search_root: Optional[str] = None) -> List[str]:
        """
        Return the DNS host names of every computer object visible through
        server, in directory order.

        Bounded mode stops at BOUNDED_LIMIT entries, paged mode pages until
        the result set is exhausted.

        Raises:
            EnumerationFailed: the bind or the search failed
        """
        root = search_root or server
        hosts: List[str] = []

        def collect(item):
            if not is_entry(item):
                return
            host = attribute_value(item, HOST_ATTRIBUTE)
            if host:
                hosts.append(host)

        try:
            ldap = self.ldap_transport.connect(server, root)
        except Exception as e:
            raise EnumerationFailed(root, f"cannot bind to {server}: {e}") from e

        try:
            if self.paged:
                ldap.search(
                    searchFilter=COMPUTER_FILTER,
                    attributes=[HOST_ATTRIBUTE],
                    sizeLimit=0,
                    searchControls=[
                        ldap_impacket.SimplePagedResultsControl(size=BOUNDED_LIMIT)
                    ],
                    perRecordCallback=collect,
                )
            else:
                ldap.search(
                    searchFilter=COMPUTER_FILTER,
                    attributes=[HOST_ATTRIBUTE],
                    sizeLimit=BOUNDED_LIMIT,
                    perRecordCallback=collect,
                )
        except ldap_impacket.LDAPSearchError as e:
            if self.paged or "sizeLimitExceeded" not in str(e):
                raise EnumerationFailed(root, f"search on {server} failed: {e}") from e
            logger.warning(
                f"{root}: result capped at {BOUNDED_LIMIT} computers, "
                f"use paged queries to retrieve all of them"
            )
        except Exception as e:
            raise EnumerationFailed(root, f"search on {server} failed: {e}") from e
        finally:
            try:
                ldap.close()
            except Exception as e:
                logger.debug(f"Error closing LDAP connection to {server}: {e}")

        if not self.paged:
            del hosts[BOUNDED_LIMIT:]

        logger.info(f"Found {len(hosts)} computers in {root} via {server}")
        return hosts
