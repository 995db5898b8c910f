"""
Global catalog replica discovery over LDAP
"""

import logging
from typing import Dict, List

from impacket.ldap import ldapasn1

from shareaudit.config.configuration import ShareAuditConfiguration
from shareaudit.transport.ldap import LDAPTransport
from shareaudit.utils.ldap_utils import attribute_value, entry_dn, is_entry

logger = logging.getLogger("shareaudit")

# nTDSDSA objects with NTDSDSA_OPT_IS_GC (bit 1) set in "options"
GC_FILTER = "(&(objectCategory=nTDSDSA)(options:1.2.840.113556.1.4.803:=1))"
SERVER_FILTER = "(&(objectCategory=server)(dNSHostName=*))"


class ReplicaDiscovery:
    def __init__(self, cfg: ShareAuditConfiguration):
        self.cfg = cfg
        self.ldap_transport = LDAPTransport(cfg)

    def list_replicas(self, search_root: str) -> List[str]:
        """
        Return the DNS names of the global catalog servers that belong to
        search_root, in the order the directory returned them.

        Any directory failure is logged and yields an empty list.
        """
        try:
            ldap = self.ldap_transport.connect(search_root, search_root)
        except Exception as e:
            logger.debug(f"Cannot bind to {search_root} for replica discovery: {e}")
            return []

        try:
            config_nc = self._configuration_nc(ldap)
            if not config_nc:
                logger.debug(f"{search_root}: RootDSE has no configurationNamingContext")
                return []

            sites_base = f"CN=Sites,{config_nc}"
            gc_servers = [
                dn.split(",", 1)[1].lower()
                for dn in self._search_dns(ldap, sites_base, GC_FILTER)
                if "," in dn
            ]
            server_hosts = self._server_hosts(ldap, sites_base)
        except Exception as e:
            logger.debug(f"Replica discovery failed for {search_root}: {e}")
            return []
        finally:
            try:
                ldap.close()
            except Exception as e:
                logger.debug(f"Error closing LDAP connection to {search_root}: {e}")

        suffix = "." + search_root.strip(".").lower()
        replicas = []
        for server_dn in gc_servers:
            host = server_hosts.get(server_dn)
            if host and host.lower().endswith(suffix) and host not in replicas:
                replicas.append(host)

        logger.debug(f"{search_root}: {len(replicas)} global catalog replica(s)")
        return replicas

    @staticmethod
    def _configuration_nc(ldap) -> str:
        found = []

        def collect(item):
            if is_entry(item):
                found.append(attribute_value(item, "configurationNamingContext"))

        ldap.search(
            searchBase="",
            scope=ldapasn1.Scope("baseObject"),
            searchFilter="(objectClass=*)",
            attributes=["configurationNamingContext"],
            perRecordCallback=collect,
        )
        return found[0] if found and found[0] else ""

    @staticmethod
    def _search_dns(ldap, base: str, search_filter: str) -> List[str]:
        dns = []

        def collect(item):
            if is_entry(item):
                dns.append(entry_dn(item))

        ldap.search(
            searchBase=base,
            searchFilter=search_filter,
            attributes=["distinguishedName"],
            perRecordCallback=collect,
        )
        return dns

    @staticmethod
    def _server_hosts(ldap, base: str) -> Dict[str, str]:
        hosts = {}

        def collect(item):
            if not is_entry(item):
                return
            host = attribute_value(item, "dNSHostName")
            if host:
                hosts[entry_dn(item).lower()] = host

        ldap.search(
            searchBase=base,
            searchFilter=SERVER_FILTER,
            attributes=["dNSHostName"],
            perRecordCallback=collect,
        )
        return hosts
