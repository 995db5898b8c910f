import csv
from unittest.mock import MagicMock, patch

import pytest

from shareaudit.analysis.permission_record import AccessRule
from shareaudit.config.configuration import ShareAuditConfiguration
from shareaudit.discovery.computers import HostEnumerator
from shareaudit.discovery.replicas import ReplicaDiscovery
from shareaudit.discovery.shares import ShareListing, UNREACHABLE_TEXT, render_share_table
from shareaudit.engine.runner import ShareAuditRunner
from shareaudit.errors import AccessDenied
from shareaudit.transport.ping import PingReply, PingTransport


# ---------- helpers ----------

LATENCIES = {"dc1": 50.0, "dc2": 20.0}


def fake_ping(address, count=1):
    return PingReply(address, True, LATENCIES[address])


class FakeLister:
    def __init__(self, listings):
        self.listings = listings

    def list_shares(self, host):
        return self.listings[host]


class FakeAclReader:
    def __init__(self, acls):
        self.acls = acls

    def get_acl(self, host, share):
        value = self.acls[(host, share)]
        if isinstance(value, Exception):
            raise value
        return value


def disk_listing(host, *shares):
    return ShareListing(True, render_share_table(host, [(s, 0, "") for s in shares]))


def make_cfg(tmp_path):
    cfg = ShareAuditConfiguration()
    cfg.targets.domains = [""]
    cfg.targets.dns_root = "example.org"
    cfg.output.output_path = str(tmp_path / "out" / "perms.csv")
    return cfg


def run(cfg, hosts, listings, acls):
    with patch.object(
        ReplicaDiscovery, "list_replicas", return_value=["dc1", "dc2"]
    ), patch.object(
        PingTransport, "ping", side_effect=fake_ping
    ), patch.object(
        HostEnumerator, "enumerate", return_value=hosts
    ) as enumerate_hosts:
        runner = ShareAuditRunner(cfg)
        runner.share_pipeline.host_prober.share_lister = FakeLister(listings)
        runner.share_pipeline.host_prober.acl_reader = FakeAclReader(acls)
        rows = runner.execute()

    return rows, enumerate_hosts


def read_csv(path):
    with open(path, newline="", encoding="utf-8") as fh:
        return list(csv.DictReader(fh))


# ---------- scenarios ----------

def test_single_row_end_to_end(tmp_path):
    cfg = make_cfg(tmp_path)

    rows, enumerate_hosts = run(
        cfg,
        hosts=["srv1.example.org"],
        listings={"srv1.example.org": disk_listing("srv1.example.org", "Data")},
        acls={("srv1.example.org", "Data"): [AccessRule("Everyone", "Read", "Allow")]},
    )

    enumerate_hosts.assert_called_once_with("dc2", "example.org")

    exported = read_csv(cfg.output.output_path)
    assert len(exported) == 1
    assert exported[0]["Path"] == "\\\\srv1.example.org\\Data"
    assert exported[0]["IdentityReference"] == "Everyone"
    assert exported[0]["FileSystemRights"] == "Read"
    assert exported[0]["AccessControlType"] == "Allow"
    assert len(rows) == 1


def test_offline_host_does_not_affect_others(tmp_path):
    cfg = make_cfg(tmp_path)

    rows, _ = run(
        cfg,
        hosts=["down.example.org", "srv1.example.org"],
        listings={
            "down.example.org": ShareListing(False, UNREACHABLE_TEXT),
            "srv1.example.org": disk_listing("srv1.example.org", "Data"),
        },
        acls={("srv1.example.org", "Data"): [AccessRule("Everyone", "Read", "Allow")]},
    )

    exported = read_csv(cfg.output.output_path)
    assert [r["Path"] for r in exported] == ["\\\\srv1.example.org\\Data"]


def test_denied_share_contributes_no_rows(tmp_path):
    cfg = make_cfg(tmp_path)

    rows, _ = run(
        cfg,
        hosts=["srv1.example.org"],
        listings={"srv1.example.org": disk_listing("srv1.example.org", "Secret", "Public")},
        acls={
            ("srv1.example.org", "Secret"): AccessDenied("\\\\srv1.example.org\\Secret", "denied"),
            ("srv1.example.org", "Public"): [AccessRule("Everyone", "Read", "Allow")],
        },
    )

    exported = read_csv(cfg.output.output_path)
    assert len(exported) == 1
    assert exported[0]["Path"] == "\\\\srv1.example.org\\Public"


# ---------- runner behaviour ----------

def test_sorted_output(tmp_path):
    cfg = make_cfg(tmp_path)
    cfg.output.sort_rows = True

    rows, _ = run(
        cfg,
        hosts=["srv2.example.org", "srv1.example.org"],
        listings={
            "srv1.example.org": disk_listing("srv1.example.org", "Data"),
            "srv2.example.org": disk_listing("srv2.example.org", "Data"),
        },
        acls={
            ("srv1.example.org", "Data"): [
                AccessRule("Users", "Read", "Allow"),
                AccessRule("Administrators", "FullControl", "Allow"),
            ],
            ("srv2.example.org", "Data"): [AccessRule("Everyone", "Read", "Allow")],
        },
    )

    assert [(r.share_path, r.principal) for r in rows] == [
        ("\\\\srv1.example.org\\Data", "Administrators"),
        ("\\\\srv1.example.org\\Data", "Users"),
        ("\\\\srv2.example.org\\Data", "Everyone"),
    ]


def test_no_hosts_writes_header_only(tmp_path):
    cfg = make_cfg(tmp_path)

    rows, _ = run(cfg, hosts=[], listings={}, acls={})

    assert rows == []
    assert read_csv(cfg.output.output_path) == []


def test_runner_no_domains(tmp_path):
    cfg = make_cfg(tmp_path)
    cfg.targets.domains = []

    runner = ShareAuditRunner(cfg)
    runner.exporter = MagicMock()

    with patch("shareaudit.engine.runner.DomainPipeline") as domain_cls:
        with pytest.raises(ValueError, match="No domains"):
            runner.execute()

    domain_cls.assert_not_called()
    runner.exporter.export.assert_not_called()


def test_runner_interrupted(tmp_path):
    cfg = make_cfg(tmp_path)
    runner = ShareAuditRunner(cfg)

    with patch("shareaudit.engine.runner.DomainPipeline") as domain_cls:
        domain_cls.return_value.run.side_effect = KeyboardInterrupt

        with pytest.raises(KeyboardInterrupt):
            runner.execute()
