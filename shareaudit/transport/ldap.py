from impacket.ldap.ldap import LDAPConnection

from shareaudit.config.configuration import ShareAuditConfiguration
from shareaudit.transport.auth import bind_identity


def to_base_dn(search_root: str) -> str:
    return ",".join(f"DC={part}" for part in search_root.strip(".").split(".") if part)


class LDAPTransport:
    def __init__(self, cfg: ShareAuditConfiguration):
        self.cfg = cfg
        self.auth = cfg.auth

    def connect(self, server: str, search_root: str) -> LDAPConnection:
        """Bind to server with the naming context of search_root as base DN."""
        if not server:
            raise ValueError("LDAP connection requires a server")
        if not search_root:
            raise ValueError("LDAP connection requires a search root")

        ldap = LDAPConnection(f"ldap://{server}", to_base_dn(search_root))

        # credentials belong to the configured domain, else the one queried
        return bind_identity(ldap, self.auth, self.auth.domain or search_root)
