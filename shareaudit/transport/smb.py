from typing import Optional

from impacket.smbconnection import SMBConnection

from shareaudit.config.configuration import ShareAuditConfiguration
from shareaudit.transport.auth import bind_identity

SMB_PORT = 445


class SMBTransport:
    def __init__(self, cfg: ShareAuditConfiguration):
        self.cfg = cfg
        self.auth = cfg.auth

    def connect(self, host: str, timeout: Optional[int] = None) -> SMBConnection:
        smb = SMBConnection(
            remoteName=host,
            remoteHost=host,
            sess_port=SMB_PORT,
            timeout=self.cfg.probing.smb_timeout if timeout is None else timeout,
        )
        return bind_identity(smb, self.auth, self.auth.domain or "")
