"""
Lockfile reader
Turns the client's lockfile (pid:name:port:token:protocol) into Credentials
"""

import asyncio
from pathlib import Path
from typing import Optional, Union

from loguru import logger

from ..errors import CredentialsMalformed, CredentialsNotFound
from ..models import Credentials
from .paths import get_lockfile_path

LOCKFILE_DELIMITER = ":"
PORT_FIELD = 2
TOKEN_FIELD = 3


def parse_lockfile(content: str) -> Credentials:
    """
    Parse lockfile contents

    Raises:
        CredentialsMalformed: fewer than four fields, or empty port/token
    """
    parts = content.strip().split(LOCKFILE_DELIMITER)
    if len(parts) < TOKEN_FIELD + 1:
        raise CredentialsMalformed(f"Invalid lockfile format ({len(parts)} fields)")

    port = parts[PORT_FIELD].strip()
    token = parts[TOKEN_FIELD].strip()
    if not port or not token:
        raise CredentialsMalformed("Could not parse port or token")

    return Credentials(port=port, token=token)


class CredentialLocator:
    """Reads credentials from the lockfile on demand"""

    def __init__(self, lockfile_path: Optional[Union[str, Path]] = None):
        """
        Args:
            lockfile_path: explicit lockfile location; defaults to the platform path
        """
        if lockfile_path:
            self.lockfile_path: Optional[Path] = Path(lockfile_path)
        else:
            self.lockfile_path = get_lockfile_path()

    def read(self) -> Credentials:
        """
        Blocking read of the lockfile

        Raises:
            CredentialsNotFound: no lockfile (or no known path)
            CredentialsMalformed: lockfile could not be parsed
        """
        if self.lockfile_path is None:
            raise CredentialsNotFound("Lockfile path unknown on this platform")

        try:
            content = self.lockfile_path.read_text(encoding="utf-8")
        except FileNotFoundError as e:
            raise CredentialsNotFound(str(self.lockfile_path)) from e

        return parse_lockfile(content)

    async def locate(self) -> Optional[Credentials]:
        """Current credentials, or None when the client is not running"""
        try:
            credentials = await asyncio.to_thread(self.read)
        except CredentialsNotFound:
            # Client closed, nothing to report
            return None
        except CredentialsMalformed as e:
            logger.error(f"Error parsing lockfile ({self.lockfile_path}): {e}")
            return None
        except Exception as e:
            logger.error(f"Error reading lockfile ({self.lockfile_path}): {e}")
            return None

        logger.debug(f"Credentials parsed (port: {credentials.port})")
        return credentials
