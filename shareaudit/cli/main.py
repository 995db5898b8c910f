#!/usr/bin/env python3
from pathlib import Path
from typing import Optional, List

import click
import typer

from shareaudit.config.configuration import SHARE_LISTERS, ShareAuditConfiguration
from shareaudit.engine.runner import ShareAuditRunner
from shareaudit.utils.logger import setup_logging

app = typer.Typer(
    add_completion=False,
    help="shareaudit – Map SMB share permissions across Active Directory domains"
)

# ---------------- DEFAULTS ----------------

DEFAULT_OUTPUT = "share_permissions.csv"
DEFAULT_LOG_LEVEL = "info"
DEFAULT_LOG_TYPE = "plain"


def banner():
    typer.echo(r"""
     _                                   _ _ _
 ___| |__   __ _ _ __ ___  __ _ _   _  __| (_) |_
/ __| '_ \ / _` | '__/ _ \/ _` | | | |/ _` | | __|
\__ \ | | | (_| | | |  __/ (_| | |_| | (_| | | |_
|___/_| |_|\__,_|_|  \___|\__,_|\__,_|\__,_|_|\__|
    """, err=True)


# a bare dot in a domain file stands for the forest root ("")
FOREST_ROOT_TOKEN = "."


def read_domain_file(path: Path) -> List[str]:
    domains = []
    for line in path.read_text().splitlines():
        line = line.strip()
        if not line or line.startswith("#"):
            continue
        domains.append("" if line == FOREST_ROOT_TOKEN else line)
    return domains


@app.command()
def run(
        # ---------------- IDENTITY ----------------
        username: Optional[str] = typer.Option(
            None, "-u", "--username",
            help="Username to bind as (default: inherited ccache or anonymous)",
            rich_help_panel="Identity",
        ),
        password: Optional[str] = typer.Option(
            None, "-p", "--password",
            help="Password for the given username (NTLM)",
            rich_help_panel="Identity",
        ),
        nthash: Optional[str] = typer.Option(
            None, "--hash",
            help="NT hash for the given username",
            rich_help_panel="Identity",
        ),
        kerberos: bool = typer.Option(
            False, "-k", "--kerberos",
            help="Use Kerberos authentication",
            rich_help_panel="Identity",
        ),
        use_kcache: bool = typer.Option(
            False, "--use-kcache",
            help="Use Kerberos credentials from ccache (KRB5CCNAME)",
            rich_help_panel="Identity",
        ),

        # ---------------- TARGETING ----------------
        domain: Optional[List[str]] = typer.Option(
            None, "-d", "--domain",
            help="Domain label below the DNS root; pass '' for the forest root. Repeatable.",
            rich_help_panel="Targeting",
        ),
        domain_file: Optional[Path] = typer.Option(
            None, "--domain-file",
            help="File containing domain labels, one per line; a line holding only '.' names the forest root",
            rich_help_panel="Targeting",
        ),
        dns_root: Optional[str] = typer.Option(
            None, "-r", "--dns-root",
            help="DNS root suffix of the forest (e.g. corp.local)",
            rich_help_panel="Targeting",
        ),
        paged: Optional[bool] = typer.Option(
            None, "--paged/--bounded",
            help="Page through all computers instead of stopping at 1000",
            rich_help_panel="Targeting",
        ),
        exclude: Optional[List[str]] = typer.Option(
            None, "--exclude",
            help="Host name to skip (repeatable)",
            rich_help_panel="Targeting",
        ),

        # ---------------- PROBING ----------------
        ping_timeout: Optional[int] = typer.Option(
            None, "--ping-timeout",
            help="Reachability probe timeout in seconds",
            rich_help_panel="Probing",
        ),
        smb_timeout: Optional[int] = typer.Option(
            None, "-e", "--timeout",
            help="SMB timeout in seconds",
            rich_help_panel="Probing",
        ),
        share_lister: Optional[str] = typer.Option(
            None, "--share-lister",
            help="Share listing backend: smb | netview",
            rich_help_panel="Probing",
            click_type=click.Choice(list(SHARE_LISTERS), case_sensitive=False),
        ),

        # ---------------- OUTPUT ----------------
        output: Optional[Path] = typer.Option(
            None, "-o", "--output",
            help=f"CSV output path, '-' for stdout (default: {DEFAULT_OUTPUT})",
            rich_help_panel="Output",
        ),
        sort_rows: bool = typer.Option(
            False, "--sort",
            help="Sort rows by share path, then principal",
            rich_help_panel="Output",
        ),
        log_file: Optional[Path] = typer.Option(
            None, "--log-file",
            help="Write diagnostics to a file instead of the console",
            rich_help_panel="Output",
        ),
        log_level: Optional[str] = typer.Option(
            None,
            "--log-level",
            help=f"Log level: debug | info | data (default: {DEFAULT_LOG_LEVEL})",
            rich_help_panel="Output",
            click_type=click.Choice(
                ["debug", "info", "data"],
                case_sensitive=False,
            ),
        ),
        log_type: Optional[str] = typer.Option(
            None,
            "-t", "--log-type",
            help=f"Log format: plain | json (default: {DEFAULT_LOG_TYPE})",
            rich_help_panel="Output",
        ),
        no_banner: bool = typer.Option(
            False,
            "--no-banner",
            help="Disable startup banner",
            rich_help_panel="Output",
        ),

        # ---------------- ADVANCED ----------------
        max_hosts: Optional[int] = typer.Option(
            None, "-x", "--max-hosts",
            help="Maximum number of hosts probed concurrently (default: 20)",
            rich_help_panel="Advanced",
        ),
        config_file: Optional[Path] = typer.Option(
            None, "-z", "--config",
            help="Path to TOML configuration file",
            rich_help_panel="Advanced",
        ),
):
    if not no_banner:
        banner()

    # ---------- load configuration ----------
    cfg = ShareAuditConfiguration()

    if config_file:
        cfg.load_from_toml(str(config_file))

    # ---------- IDENTITY ----------
    if username is not None:
        cfg.auth.username = username
    if password is not None:
        cfg.auth.password = password
    if nthash is not None:
        cfg.auth.nthash = nthash
    if kerberos:
        cfg.auth.kerberos = True
    if use_kcache:
        cfg.auth.use_kcache = True

    # ---------- TARGETING ----------
    if domain and domain_file:
        raise typer.BadParameter("Use either --domain or --domain-file, not both")

    if domain:
        cfg.targets.domains = list(domain)

    if domain_file:
        cfg.targets.domains = read_domain_file(domain_file)

    if dns_root is not None:
        cfg.targets.dns_root = dns_root
    if paged is not None:
        cfg.targets.paged_queries = paged
    if exclude:
        cfg.targets.exclusions = list(exclude)

    if not cfg.targets.domains:
        raise typer.BadParameter(
            "No domains specified. Use --domain, --domain-file or a config file"
        )

    # ---------- PROBING ----------
    if ping_timeout is not None:
        cfg.probing.ping_timeout = ping_timeout
    if smb_timeout is not None:
        cfg.probing.smb_timeout = smb_timeout
    if share_lister is not None:
        cfg.probing.share_lister = share_lister.lower()

    # ---------- ADVANCED ----------
    if max_hosts is not None:
        cfg.advanced.max_host_concurrency = max_hosts

    # ---------- OUTPUT ----------
    if output is not None:
        cfg.output.output_path = str(output)
    if sort_rows:
        cfg.output.sort_rows = True
    if log_file is not None:
        cfg.output.log_file = str(log_file)
    if log_level is not None:
        cfg.output.log_level = log_level.lower()
    if log_type is not None:
        cfg.output.log_type = log_type

    # ---------- validate ----------
    try:
        cfg.validate()
    except ValueError as e:
        raise typer.BadParameter(str(e))

    # ---------- logging ----------
    setup_logging(
        log_level=cfg.output.log_level,
        log_to_file=cfg.output.log_file is not None,
        log_file_path=cfg.output.log_file,
        log_to_console=cfg.output.log_file is None,
        log_type=cfg.output.log_type,
    )

    # ---------- run ----------
    runner = ShareAuditRunner(cfg)
    runner.execute()


if __name__ == "__main__":
    app()
