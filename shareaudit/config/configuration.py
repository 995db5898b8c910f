"""
Configuration management for shareaudit
"""

import os
from dataclasses import dataclass, field
from typing import List, Optional

import toml
import typer

SHARE_LISTERS = ("smb", "netview")


# ---------------- AUTH ----------------

@dataclass
class AuthConfig:
    # Pass-through identity; empty means anonymous or the inherited ccache
    username: str = ""
    password: Optional[str] = None
    nthash: Optional[str] = None
    domain: Optional[str] = None

    # Kerberos
    kerberos: bool = False
    use_kcache: bool = False


# ---------------- TARGETING ----------------

@dataclass
class TargetingConfig:
    # "" means the forest root (dns_root itself)
    domains: List[str] = field(default_factory=list)
    dns_root: str = ""

    paged_queries: bool = False
    exclusions: List[str] = field(default_factory=list)


# ---------------- PROBING ----------------

@dataclass
class ProbingConfig:
    ping_timeout: int = 1
    ping_threads: int = 16
    smb_timeout: int = 5
    share_lister: str = "smb"


# ---------------- OUTPUT ----------------

@dataclass
class OutputConfig:
    output_path: str = "share_permissions.csv"
    sort_rows: bool = False

    log_file: Optional[str] = None
    log_level: str = "info"
    log_type: str = "plain"


# ---------------- ADVANCED ----------------

@dataclass
class AdvancedConfig:
    max_host_concurrency: int = 20
    domain_threads: int = 4


# ---------------- ROOT CONFIG ----------------
@dataclass
class ShareAuditConfiguration:
    auth: AuthConfig = field(default_factory=AuthConfig)
    targets: TargetingConfig = field(default_factory=TargetingConfig)
    probing: ProbingConfig = field(default_factory=ProbingConfig)
    output: OutputConfig = field(default_factory=OutputConfig)
    advanced: AdvancedConfig = field(default_factory=AdvancedConfig)

    # ---------- validation ----------
    def validate(self):
        if not self.targets.domains:
            raise ValueError("At least one domain is required")

        if not self.targets.dns_root or not self.targets.dns_root.strip("."):
            raise ValueError("dns_root must not be empty")

        if self.advanced.max_host_concurrency < 1:
            raise ValueError("max_host_concurrency must be at least 1")

        if self.advanced.domain_threads < 1:
            raise ValueError("domain_threads must be at least 1")

        if self.probing.ping_threads < 1:
            raise ValueError("ping_threads must be at least 1")

        if self.probing.share_lister not in SHARE_LISTERS:
            raise ValueError(
                f"Unknown share lister: {self.probing.share_lister} "
                f"(expected one of: {', '.join(SHARE_LISTERS)})"
            )

        if not self.output.output_path:
            raise ValueError("output_path must not be empty")

        # ---------- AUTH VALIDATION ----------
        if self.auth.kerberos:
            if self.auth.password or self.auth.nthash:
                raise typer.BadParameter(
                    "Kerberos cannot be used with password or NT hash authentication"
                )

            if self.auth.use_kcache and "KRB5CCNAME" not in os.environ:
                raise typer.BadParameter(
                    "KRB5CCNAME not set but Kerberos ccache was requested"
                )

    def search_roots(self) -> List[str]:
        return [search_root(d, self.targets.dns_root) for d in self.targets.domains]

    # ---------- TOML ----------

    def load_from_toml(self, path: str):
        data = toml.load(path)

        for section, values in data.items():
            if hasattr(self, section):
                obj = getattr(self, section)
                for key, value in values.items():
                    if hasattr(obj, key):
                        setattr(obj, key, value)


def search_root(domain: str, dns_root: str) -> str:
    """
    Fully-qualified search root for a domain label.

    An empty domain means the forest root, i.e. dns_root itself.
    """
    dns_root = dns_root.strip(".")
    domain = (domain or "").strip(".")
    if domain:
        return f"{domain}.{dns_root}"
    return dns_root
