"""
Exception hierarchy for shareaudit

Failures are recovered at the smallest unit that raised them (address,
domain, host, share). Only configuration errors stop a run.
"""


class ShareAuditError(Exception):
    pass


# ---------------- LATENCY PROBING ----------------

class ProbeError(ShareAuditError):
    pass


class EmptyCandidateSet(ProbeError):
    def __init__(self):
        super().__init__("No candidate addresses to probe")


class AllUnreachable(ProbeError):
    def __init__(self, addresses):
        self.addresses = list(addresses)
        super().__init__(
            f"None of {len(self.addresses)} candidate(s) responded: "
            f"{', '.join(self.addresses)}"
        )


# ---------------- DOMAIN ----------------

class DomainError(ShareAuditError):
    def __init__(self, search_root: str, message: str):
        self.search_root = search_root
        super().__init__(f"{search_root}: {message}")


class NoReachableServer(DomainError):
    pass


class EnumerationFailed(DomainError):
    pass


# ---------------- ACL ----------------

class AclQueryError(ShareAuditError):
    def __init__(self, path: str, message: str):
        self.path = path
        super().__init__(f"{path}: {message}")


class AccessDenied(AclQueryError):
    pass


class NotFound(AclQueryError):
    pass
