from unittest.mock import MagicMock, patch

import pytest

from shareaudit.transport.ldap import LDAPTransport, to_base_dn


def make_cfg():
    cfg = MagicMock()
    cfg.auth.domain = None
    cfg.auth.username = "user"
    cfg.auth.password = "pass"
    cfg.auth.nthash = None
    cfg.auth.kerberos = False
    cfg.auth.use_kcache = False
    return cfg


def test_to_base_dn():
    assert to_base_dn("emea.example.org") == "DC=emea,DC=example,DC=org"


def test_ldap_no_server_raises():
    transport = LDAPTransport(make_cfg())

    with pytest.raises(ValueError):
        transport.connect("", "example.org")


def test_ldap_connects_to_server_with_search_root_base():
    cfg = make_cfg()

    with patch("shareaudit.transport.ldap.LDAPConnection") as ldap_cls:
        ldap = ldap_cls.return_value

        transport = LDAPTransport(cfg)
        result = transport.connect("dc2.example.org", "example.org")

    ldap_cls.assert_called_once_with(
        "ldap://dc2.example.org",
        "DC=example,DC=org",
    )
    ldap.login.assert_called_once_with(
        "user",
        "pass",
        "example.org",
    )
    assert result is ldap


def test_ldap_kerberos_login():
    cfg = make_cfg()
    cfg.auth.kerberos = True
    cfg.auth.use_kcache = True

    with patch("shareaudit.transport.ldap.LDAPConnection") as ldap_cls:
        ldap = ldap_cls.return_value

        transport = LDAPTransport(cfg)
        result = transport.connect("dc1", "example.org")

    ldap.kerberosLogin.assert_called_once()
    assert ldap.kerberosLogin.call_args.kwargs["useCache"] is True
    ldap.login.assert_not_called()
    assert result is ldap


def test_ldap_ntlm_with_nthash():
    cfg = make_cfg()
    cfg.auth.nthash = "NTHASH"
    cfg.auth.domain = "EXAMPLE"

    with patch("shareaudit.transport.ldap.LDAPConnection") as ldap_cls:
        ldap = ldap_cls.return_value

        transport = LDAPTransport(cfg)
        transport.connect("dc1", "example.org")

    ldap.login.assert_called_once_with(
        "user",
        "",
        "EXAMPLE",
        "",
        "NTHASH",
    )
