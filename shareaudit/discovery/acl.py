"""
Share root DACL reader using an SMB2 security query
"""

import logging
from typing import List

from impacket.ldap.ldaptypes import SR_SECURITY_DESCRIPTOR
from impacket.nmb import NetBIOSError, NetBIOSTimeout
from impacket.nt_errors import (
    STATUS_ACCESS_DENIED,
    STATUS_BAD_NETWORK_NAME,
    STATUS_OBJECT_NAME_NOT_FOUND,
    STATUS_OBJECT_PATH_NOT_FOUND,
)
from impacket.smb3structs import (
    DACL_SECURITY_INFORMATION,
    FILE_DIRECTORY_FILE,
    FILE_OPEN,
    FILE_SHARE_READ,
    READ_CONTROL,
    SMB2_0_INFO_SECURITY,
)
from impacket.smbconnection import SessionError

from shareaudit.analysis.permission_record import AccessRule
from shareaudit.config.configuration import ShareAuditConfiguration
from shareaudit.errors import AccessDenied, AclQueryError, NotFound
from shareaudit.transport.smb import SMBTransport

logger = logging.getLogger("shareaudit")

NOT_FOUND_STATUSES = (
    STATUS_BAD_NETWORK_NAME,
    STATUS_OBJECT_NAME_NOT_FOUND,
    STATUS_OBJECT_PATH_NOT_FOUND,
)

# ---------------- ACCESS MASKS ----------------

GENERIC_READ = 0x80000000
GENERIC_WRITE = 0x40000000
GENERIC_EXECUTE = 0x20000000
GENERIC_ALL = 0x10000000

# FileSystemRights composites, most inclusive first
COMPOSITE_RIGHTS = (
    ("FullControl", 0x001F01FF),
    ("Modify", 0x001301BF),
    ("ReadAndExecute", 0x001200A9),
    ("Read", 0x00120089),
    ("Write", 0x00000116),
)

SINGLE_RIGHTS = (
    ("ReadData", 0x00000001),
    ("WriteData", 0x00000002),
    ("AppendData", 0x00000004),
    ("ReadExtendedAttributes", 0x00000008),
    ("WriteExtendedAttributes", 0x00000010),
    ("ExecuteFile", 0x00000020),
    ("DeleteSubdirectoriesAndFiles", 0x00000040),
    ("ReadAttributes", 0x00000080),
    ("WriteAttributes", 0x00000100),
    ("Delete", 0x00010000),
    ("ReadPermissions", 0x00020000),
    ("ChangePermissions", 0x00040000),
    ("TakeOwnership", 0x00080000),
    ("Synchronize", 0x00100000),
)

GENERIC_MAPPING = (
    (GENERIC_ALL, 0x001F01FF),
    (GENERIC_READ, 0x00120089),
    (GENERIC_WRITE, 0x00120116),
    (GENERIC_EXECUTE, 0x001200A0),
)

# ---------------- ACE FLAGS ----------------

OBJECT_INHERIT_ACE = 0x01
CONTAINER_INHERIT_ACE = 0x02
NO_PROPAGATE_INHERIT_ACE = 0x04
INHERIT_ONLY_ACE = 0x08
INHERITED_ACE = 0x10

INHERITANCE_FLAGS = (
    ("ContainerInherit", CONTAINER_INHERIT_ACE),
    ("ObjectInherit", OBJECT_INHERIT_ACE),
    ("NoPropagateInherit", NO_PROPAGATE_INHERIT_ACE),
    ("InheritOnly", INHERIT_ONLY_ACE),
)

# ---------------- PRINCIPALS ----------------

WELL_KNOWN_SIDS = {
    "S-1-0-0": "NULL SID",
    "S-1-1-0": "Everyone",
    "S-1-2-0": "LOCAL",
    "S-1-3-0": "CREATOR OWNER",
    "S-1-3-1": "CREATOR GROUP",
    "S-1-3-4": "OWNER RIGHTS",
    "S-1-5-2": "NT AUTHORITY\\NETWORK",
    "S-1-5-3": "NT AUTHORITY\\BATCH",
    "S-1-5-4": "NT AUTHORITY\\INTERACTIVE",
    "S-1-5-6": "NT AUTHORITY\\SERVICE",
    "S-1-5-7": "NT AUTHORITY\\ANONYMOUS LOGON",
    "S-1-5-9": "NT AUTHORITY\\ENTERPRISE DOMAIN CONTROLLERS",
    "S-1-5-10": "NT AUTHORITY\\SELF",
    "S-1-5-11": "NT AUTHORITY\\Authenticated Users",
    "S-1-5-18": "NT AUTHORITY\\SYSTEM",
    "S-1-5-19": "NT AUTHORITY\\LOCAL SERVICE",
    "S-1-5-20": "NT AUTHORITY\\NETWORK SERVICE",
    "S-1-5-32-544": "BUILTIN\\Administrators",
    "S-1-5-32-545": "BUILTIN\\Users",
    "S-1-5-32-546": "BUILTIN\\Guests",
    "S-1-5-32-547": "BUILTIN\\Power Users",
    "S-1-5-32-548": "BUILTIN\\Account Operators",
    "S-1-5-32-549": "BUILTIN\\Server Operators",
    "S-1-5-32-550": "BUILTIN\\Print Operators",
    "S-1-5-32-551": "BUILTIN\\Backup Operators",
    "S-1-5-32-554": "BUILTIN\\Pre-Windows 2000 Compatible Access",
    "S-1-5-32-555": "BUILTIN\\Remote Desktop Users",
    "S-1-5-80-956008885-3418522649-1831038044-1853292631-2271478464": "NT SERVICE\\TrustedInstaller",
    "S-1-15-2-1": "APPLICATION PACKAGE AUTHORITY\\ALL APPLICATION PACKAGES",
}

DOMAIN_RIDS = {
    "500": "Administrator",
    "501": "Guest",
    "512": "Domain Admins",
    "513": "Domain Users",
    "514": "Domain Guests",
    "515": "Domain Computers",
    "516": "Domain Controllers",
    "519": "Enterprise Admins",
}


def render_sid(sid: str) -> str:
    """Account-style name for well-known SIDs, the SID itself otherwise."""
    if sid in WELL_KNOWN_SIDS:
        return WELL_KNOWN_SIDS[sid]
    if sid.startswith("S-1-5-21-"):
        rid = sid.rsplit("-", 1)[1]
        if rid in DOMAIN_RIDS:
            return DOMAIN_RIDS[rid]
    return sid


def normalize_mask(mask: int) -> int:
    for generic, specific in GENERIC_MAPPING:
        if mask & generic:
            mask = (mask & ~generic) | specific
    return mask


def render_rights(mask: int) -> str:
    """Render an access mask the way FileSystemRights prints it."""
    mask = normalize_mask(mask)
    names = []

    for name, bits in COMPOSITE_RIGHTS:
        if mask & bits == bits:
            names.append(name)
            mask &= ~bits

    for name, bits in SINGLE_RIGHTS:
        if mask & bits:
            names.append(name)
            mask &= ~bits

    if mask:
        names.append(f"0x{mask:08X}")

    return ", ".join(names) if names else "None"


def render_inheritance(flags: int) -> str:
    names = [name for name, bit in INHERITANCE_FLAGS if flags & bit]
    return ", ".join(names) if names else "None"


def render_access_type(type_name: str) -> str:
    if "DENIED" in type_name:
        return "Deny"
    if "ALLOWED" in type_name:
        return "Allow"
    return type_name.removeprefix("ACCESS_").removesuffix("_ACE").title()


def parse_security_descriptor(raw: bytes) -> List[AccessRule]:
    sd = SR_SECURITY_DESCRIPTOR(raw)
    if not sd["Dacl"]:
        return []

    rules = []
    for ace in sd["Dacl"].aces:
        ace_flags = ace["AceFlags"]
        rules.append(AccessRule(
            principal=render_sid(ace["Ace"]["Sid"].formatCanonical()),
            rights=render_rights(ace["Ace"]["Mask"]["Mask"]),
            access_type=render_access_type(ace["TypeName"]),
            inheritance=render_inheritance(ace_flags),
            is_inherited=bool(ace_flags & INHERITED_ACE),
        ))
    return rules


class AclReader:
    def __init__(self, cfg: ShareAuditConfiguration):
        self.cfg = cfg
        self.smb_transport = SMBTransport(cfg)

    def get_acl(self, host: str, share: str) -> List[AccessRule]:
        """
        Read the DACL of the root directory of \\\\host\\share.

        Raises:
            AccessDenied: the identity may not read the share or its DACL
            NotFound: the share or its root does not exist
            AclQueryError: any other failure
        """
        path = f"\\\\{host}\\{share}"

        try:
            smb = self.smb_transport.connect(host)
        except SessionError as e:
            raise self._classify(path, e) from e
        except (NetBIOSTimeout, NetBIOSError, OSError) as e:
            raise AclQueryError(path, f"connection failed: {e}") from e

        try:
            tid = smb.connectTree(share)
            fid = smb.openFile(
                tid,
                "",
                desiredAccess=READ_CONTROL,
                shareMode=FILE_SHARE_READ,
                creationOption=FILE_DIRECTORY_FILE,
                creationDisposition=FILE_OPEN,
                fileAttributes=0,
            )
            try:
                raw = smb.getSMBServer().queryInfo(
                    tid,
                    fid,
                    infoType=SMB2_0_INFO_SECURITY,
                    fileInfoClass=0,  # MUST be 0 for security queries
                    additionalInformation=DACL_SECURITY_INFORMATION,
                )
            finally:
                smb.closeFile(tid, fid)
        except SessionError as e:
            raise self._classify(path, e) from e
        except (NetBIOSTimeout, NetBIOSError, OSError) as e:
            raise AclQueryError(path, f"connection lost: {e}") from e
        finally:
            try:
                smb.logoff()
            except Exception as e:
                logger.debug(f"Error closing SMB session to {host}: {e}")

        return parse_security_descriptor(raw)

    @staticmethod
    def _classify(path: str, e: SessionError) -> AclQueryError:
        code = e.getErrorCode()
        if code == STATUS_ACCESS_DENIED:
            return AccessDenied(path, "access denied")
        if code in NOT_FOUND_STATUSES:
            return NotFound(path, "not found")
        return AclQueryError(path, str(e))
