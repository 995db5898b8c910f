"""
Share listing in the legacy "net view" console format, and its parser.

Both listers return a ShareListing: the exit indicator of the listing call
plus its raw console text. Successful listings look like

    Shared resources at \\\\srv1

    Share name  Type  Used as  Comment

    -------------------------------------------------------------------------
    ADMIN$      Disk           Remote Admin
    Data        Disk
    IPC$        IPC            Remote IPC
    The command completed successfully.

and failed ones carry a "System error <n> has occurred." line, where
error 53 means the host could not be reached at all.

Disk share grammar used by parse_disk_shares():

    * whitespace runs are collapsed and each line is split into fields
    * the type column is the first field after the leading one that is a
      share type name (Disk, Print, Device, IPC, Special)
    * a line is a disk share row when that type column is exactly "Disk"
    * the share name is every field before the type column, so a name with
      inner spaces survives with its spaces collapsed to one
"""

import logging
import re
import shutil
import subprocess
from dataclasses import dataclass
from typing import List

from impacket.dcerpc.v5.rpcrt import DCERPCException
from impacket.nmb import NetBIOSError, NetBIOSTimeout
from impacket.nt_errors import (
    STATUS_ACCESS_DENIED,
    STATUS_BAD_NETWORK_NAME,
    STATUS_LOGON_FAILURE,
)
from impacket.smbconnection import SessionError

from shareaudit.config.configuration import ShareAuditConfiguration
from shareaudit.transport.smb import SMBTransport

logger = logging.getLogger("shareaudit")

DISK_MARKER = "Disk"
UNREACHABLE_MARKER = "error 53"

UNREACHABLE_TEXT = "System error 53 has occurred.\n\nThe network path was not found.\n"
COMPLETED_TEXT = "The command completed successfully."

WHITESPACE_RE = re.compile(r"\s+")

# Share type constants
STYPE_DISKTREE = 0
STYPE_PRINTQ = 1
STYPE_DEVICE = 2
STYPE_IPC = 3
STYPE_MASK = 0x0FFFFFFF

TYPE_NAMES = {
    STYPE_DISKTREE: "Disk",
    STYPE_PRINTQ: "Print",
    STYPE_DEVICE: "Device",
    STYPE_IPC: "IPC",
}

# NT status -> Win32 "System error" code shown by net view
SYSTEM_ERRORS = {
    STATUS_ACCESS_DENIED: (5, "Access is denied."),
    STATUS_LOGON_FAILURE: (1326, "The user name or password is incorrect."),
    STATUS_BAD_NETWORK_NAME: (67, "The network name cannot be found."),
}
DEFAULT_SYSTEM_ERROR = (50, "The request is not supported.")
ACCESS_DENIED_ERROR = SYSTEM_ERRORS[STATUS_ACCESS_DENIED]

# rpc_s_access_denied
RPC_ACCESS_DENIED = 0x5

SHARE_TYPE_COLUMN = frozenset(TYPE_NAMES.values()) | {"Special"}


@dataclass(frozen=True)
class ShareListing:
    exit_ok: bool
    raw_text: str

    def is_unreachable(self) -> bool:
        return not self.exit_ok and UNREACHABLE_MARKER in self.raw_text.lower()


def parse_disk_shares(raw_text: str) -> List[str]:
    """Extract disk share names from net view output, in listing order."""
    shares = []
    for line in (raw_text or "").splitlines():
        fields = WHITESPACE_RE.sub(" ", line).strip().split(" ")
        type_at = next(
            (i for i, f in enumerate(fields) if i and f in SHARE_TYPE_COLUMN),
            None,
        )
        if type_at is not None and fields[type_at] == DISK_MARKER:
            shares.append(" ".join(fields[:type_at]))
    return shares


def render_share_table(host: str, shares) -> str:
    """Render (name, type, remark) tuples the way net view /all prints them."""
    lines = [
        f"Shared resources at \\\\{host}",
        "",
        "",
        "",
        "Share name  Type  Used as  Comment",
        "",
        "-" * 79,
    ]
    for name, share_type, remark in shares:
        type_name = TYPE_NAMES.get(share_type & STYPE_MASK, "Special")
        lines.append(f"{name:<11} {type_name:<5} {'':<8} {remark}".rstrip())
    lines.append(COMPLETED_TEXT)
    return "\n".join(lines) + "\n"


def render_system_error(code: int, message: str) -> str:
    return f"System error {code} has occurred.\n\n{message}\n"


class SMBShareLister:
    """Share listing through SRVS NetShareEnum over an SMB session"""

    def __init__(self, cfg: ShareAuditConfiguration):
        self.cfg = cfg
        self.smb_transport = SMBTransport(cfg)

    def list_shares(self, host: str) -> ShareListing:
        try:
            smb = self.smb_transport.connect(host)
        except (NetBIOSTimeout, NetBIOSError, OSError) as e:
            logger.debug(f"Cannot connect to {host}: {e}")
            return ShareListing(False, UNREACHABLE_TEXT)
        except SessionError as e:
            logger.debug(f"Session setup on {host} failed: {e}")
            return ShareListing(False, self._session_error_text(e))

        try:
            shares = []
            for share in smb.listShares():
                name = share["shi1_netname"][:-1]  # Remove null terminator
                remark = share["shi1_remark"][:-1] if share["shi1_remark"] else ""
                shares.append((name, share["shi1_type"], remark))
        except SessionError as e:
            logger.debug(f"NetShareEnum on {host} failed: {e}")
            return ShareListing(False, self._session_error_text(e))
        except (NetBIOSTimeout, NetBIOSError, OSError) as e:
            logger.debug(f"Connection to {host} lost during NetShareEnum: {e}")
            return ShareListing(False, UNREACHABLE_TEXT)
        except DCERPCException as e:
            logger.debug(f"SRVS share enumeration on {host} failed: {e}")
            return ShareListing(False, self._rpc_error_text(e))
        finally:
            try:
                smb.logoff()
            except Exception as e:
                logger.debug(f"Error closing SMB session to {host}: {e}")

        return ShareListing(True, render_share_table(host, shares))

    @staticmethod
    def _session_error_text(e: SessionError) -> str:
        code, message = SYSTEM_ERRORS.get(e.getErrorCode(), DEFAULT_SYSTEM_ERROR)
        return render_system_error(code, message)

    @staticmethod
    def _rpc_error_text(e: DCERPCException) -> str:
        if e.get_error_code() == RPC_ACCESS_DENIED or "access_denied" in str(e).lower():
            return render_system_error(*ACCESS_DENIED_ERROR)
        return render_system_error(*DEFAULT_SYSTEM_ERROR)


class NetViewShareLister:
    """Share listing through the Windows "net view" command"""

    def __init__(self, cfg: ShareAuditConfiguration):
        self.cfg = cfg
        self.timeout = cfg.probing.smb_timeout * 4

        if not shutil.which("net"):
            raise RuntimeError("net view share listing requires the 'net' command")

    def list_shares(self, host: str) -> ShareListing:
        try:
            result = subprocess.run(
                ["net", "view", f"\\\\{host}", "/all"],
                capture_output=True,
                text=True,
                timeout=self.timeout,
            )
        except subprocess.TimeoutExpired:
            logger.debug(f"net view against {host} timed out")
            return ShareListing(False, UNREACHABLE_TEXT)

        return ShareListing(
            result.returncode == 0,
            (result.stdout or "") + (result.stderr or ""),
        )


def make_share_lister(cfg: ShareAuditConfiguration):
    if cfg.probing.share_lister == "netview":
        return NetViewShareLister(cfg)
    return SMBShareLister(cfg)
