#!/usr/bin/env python3
from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, List, Optional

CSV_COLUMNS = (
    "Path",
    "IdentityReference",
    "FileSystemRights",
    "AccessControlType",
    "InheritanceFlags",
    "IsInherited",
)


@dataclass(frozen=True)
class AccessRule:
    """One access-control entry as returned by the ACL reader"""
    principal: str
    rights: str
    access_type: str
    inheritance: str = "None"
    is_inherited: bool = False


@dataclass(frozen=True)
class PermissionRecord:
    share_path: str
    principal: str
    rights: str
    access_type: str
    inheritance: str = "None"
    is_inherited: bool = False

    @classmethod
    def from_rule(cls, share_path: str, rule: AccessRule) -> "PermissionRecord":
        return cls(
            share_path=share_path,
            principal=rule.principal,
            rights=rule.rights,
            access_type=rule.access_type,
            inheritance=rule.inheritance,
            is_inherited=rule.is_inherited,
        )

    def as_row(self) -> Dict[str, str]:
        return dict(zip(CSV_COLUMNS, (
            self.share_path,
            self.principal,
            self.rights,
            self.access_type,
            self.inheritance,
            str(self.is_inherited),
        )))

    def sort_key(self):
        return self.share_path.lower(), self.principal.lower()


class HostOutcome(Enum):
    WITH_SHARES = "reachable-with-shares"
    NO_MATCHING_SHARES = "reachable-no-matching-shares"
    UNREACHABLE = "unreachable"
    NON_DIRECTORY_HOST = "non-directory-host"


@dataclass
class HostProbeResult:
    host: str
    outcome: HostOutcome
    records: List[PermissionRecord] = field(default_factory=list)
    shares: List[str] = field(default_factory=list)
    denied_shares: List[str] = field(default_factory=list)
    detail: Optional[str] = None


def share_path(host: str, share: str) -> str:
    return f"\\\\{host}\\{share}"
