from unittest.mock import MagicMock

from shareaudit.analysis.permission_record import AccessRule, HostOutcome
from shareaudit.discovery.shares import ShareListing, UNREACHABLE_TEXT
from shareaudit.engine.host_probe import HostProber
from shareaudit.errors import AccessDenied, AclQueryError, NotFound


# ---------- helpers ----------

def listing_for(*shares):
    rows = "\n".join(f"{name:<12}{kind}" for name, kind in shares)
    return ShareListing(
        True,
        "Share name  Type  Used as  Comment\n"
        "-------------------------------------\n"
        f"{rows}\n"
        "The command completed successfully.\n",
    )


def make_prober(listing, acl=None):
    lister = MagicMock()
    lister.list_shares.return_value = listing

    reader = MagicMock()
    if callable(acl):
        reader.get_acl.side_effect = acl
    else:
        reader.get_acl.return_value = acl or []

    return HostProber(lister, reader), lister, reader


EVERYONE_READ = AccessRule("Everyone", "Read", "Allow")


# ---------- tests ----------

def test_unreachable_host():
    prober, _, reader = make_prober(ShareListing(False, UNREACHABLE_TEXT))

    result = prober.probe_host("srv1")

    assert result.outcome == HostOutcome.UNREACHABLE
    assert result.records == []
    reader.get_acl.assert_not_called()


def test_other_failure_is_non_directory_host():
    listing = ShareListing(False, "System error 50 has occurred.\n\nThe request is not supported.\n")
    prober, _, reader = make_prober(listing)

    result = prober.probe_host("linux1")

    assert result.outcome == HostOutcome.NON_DIRECTORY_HOST
    assert result.records == []
    reader.get_acl.assert_not_called()


def test_success_without_disk_shares_is_never_unreachable():
    prober, _, reader = make_prober(listing_for(("IPC$", "IPC")))

    result = prober.probe_host("srv1")

    assert result.outcome == HostOutcome.NO_MATCHING_SHARES
    assert result.records == []
    reader.get_acl.assert_not_called()


def test_success_with_error_53_text_still_parsed():
    listing = ShareListing(True, "Data        Disk   error 53 notes\n")
    prober, _, _ = make_prober(listing, acl=[EVERYONE_READ])

    result = prober.probe_host("srv1")

    assert result.outcome == HostOutcome.WITH_SHARES


def test_one_record_per_access_rule():
    rules = [
        EVERYONE_READ,
        AccessRule("BUILTIN\\Administrators", "FullControl", "Allow"),
    ]
    prober, _, reader = make_prober(listing_for(("Data", "Disk")), acl=rules)

    result = prober.probe_host("srv1")

    assert result.outcome == HostOutcome.WITH_SHARES
    assert result.shares == ["Data"]
    assert [(r.share_path, r.principal, r.rights) for r in result.records] == [
        ("\\\\srv1\\Data", "Everyone", "Read"),
        ("\\\\srv1\\Data", "BUILTIN\\Administrators", "FullControl"),
    ]
    reader.get_acl.assert_called_once_with("srv1", "Data")


def test_denied_share_is_skipped_not_fatal():
    def acl(host, share):
        if share == "Secret":
            raise AccessDenied(f"\\\\{host}\\{share}", "access denied")
        return [EVERYONE_READ]

    prober, _, reader = make_prober(
        listing_for(("Secret", "Disk"), ("Public", "Disk")), acl=acl
    )

    result = prober.probe_host("srv1")

    assert len(result.records) == 1
    assert result.records[0].share_path == "\\\\srv1\\Public"
    assert result.denied_shares == ["Secret"]
    assert reader.get_acl.call_count == 2


def test_not_found_and_other_errors_skip_share():
    def acl(host, share):
        if share == "Gone":
            raise NotFound(share, "not found")
        if share == "Broken":
            raise AclQueryError(share, "boom")
        if share == "Weird":
            raise RuntimeError("unexpected")
        return [EVERYONE_READ]

    prober, _, _ = make_prober(
        listing_for(("Gone", "Disk"), ("Broken", "Disk"), ("Weird", "Disk"), ("Ok", "Disk")),
        acl=acl,
    )

    result = prober.probe_host("srv1")

    assert [r.share_path for r in result.records] == ["\\\\srv1\\Ok"]
    assert result.denied_shares == ["Gone", "Broken", "Weird"]


def test_probe_is_repeatable():
    rules = [EVERYONE_READ, AccessRule("Domain Users", "Modify", "Deny")]
    prober, _, _ = make_prober(listing_for(("Data", "Disk"), ("Home", "Disk")), acl=rules)

    first = prober.probe_host("srv1")
    second = prober.probe_host("srv1")

    assert set(first.records) == set(second.records)
