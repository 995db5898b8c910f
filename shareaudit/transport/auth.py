"""
Identity binding shared by the SMB and LDAP transports

Both impacket connection classes accept the same login/kerberosLogin
arguments. The identity is the one shareaudit runs under: an inherited
Kerberos ticket cache, an explicit NTLM password or hash, or an
anonymous (null) session when nothing is configured.
"""

from shareaudit.config.configuration import AuthConfig


def bind_identity(conn, auth: AuthConfig, domain: str):
    user = auth.username or ""

    if auth.kerberos:
        conn.kerberosLogin(
            user=user,
            password=auth.password or "",
            domain=domain,
            lmhash="",
            nthash=auth.nthash or "",
            kdcHost=None,
            useCache=auth.use_kcache,
        )
    elif auth.nthash:
        conn.login(user, "", domain, "", auth.nthash)
    else:
        conn.login(user, auth.password or "", domain)

    return conn
