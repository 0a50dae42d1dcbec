"""SSH certificate management.

A local ed25519 key pair is generated with ``ssh-keygen`` and its public key is
signed by the certificate authority at ``{auth_url}/ssh``. The certificate is
reused until it is about to expire.
"""

import logging
import os
import re
import shutil
import subprocess
from dataclasses import dataclass
from datetime import datetime, timedelta
from pathlib import Path
from typing import Optional

from .api_client import ApiClient
from .config import get_config_dir
from .exceptions import AuthenticationError
from .fetcher import describe_error

logger = logging.getLogger(__name__)

KEY_ALGORITHM = "ed25519"
PRIVATE_KEY_FILENAME = "id_ed25519"
EXPIRY_BUFFER = timedelta(seconds=120)

_VALID_TO = re.compile(r"^\s*Valid:\s+from\s+\S+\s+to\s+(\S+)\s*$", re.MULTILINE)


@dataclass(frozen=True)
class Certificate:
    """A certificate file and the private key it certifies."""

    certificate_file: Path
    private_key_file: Path


def certificate_valid_before(keygen_output: str) -> Optional[datetime]:
    """Return the expiry from ``ssh-keygen -L`` output, None if it never expires."""
    match = _VALID_TO.search(keygen_output)
    if not match:
        return None
    try:
        return datetime.fromisoformat(match.group(1))
    except ValueError:
        return None


class Certifier:
    """Obtain and cache SSH certificates.

    Args:
        client: Authenticated API client
        directory: Where keys and certificates are stored
    """

    def __init__(self, client: ApiClient, directory: Optional[Path] = None) -> None:
        self.client = client
        self.directory = directory or get_config_dir() / "ssh"
        self.private_key_file = self.directory / PRIVATE_KEY_FILENAME
        self.public_key_file = self.directory / (PRIVATE_KEY_FILENAME + ".pub")
        self.certificate_file = self.directory / (PRIVATE_KEY_FILENAME + "-cert.pub")

    @staticmethod
    def keygen_available() -> bool:
        return shutil.which("ssh-keygen") is not None

    def existing_certificate(self) -> Optional[Certificate]:
        """Return the stored certificate if it exists and is still valid."""
        if not (self.certificate_file.exists() and self.private_key_file.exists()):
            return None
        result = subprocess.run(
            ["ssh-keygen", "-L", "-f", str(self.certificate_file)],
            capture_output=True,
            text=True,
            check=False,
        )
        if result.returncode != 0:
            logger.debug("Cannot inspect certificate: %s", result.stderr.strip())
            return None
        valid_before = certificate_valid_before(result.stdout)
        if valid_before is not None and valid_before - EXPIRY_BUFFER < datetime.now():
            logger.debug("Certificate expired at %s", valid_before.isoformat())
            return None
        return Certificate(self.certificate_file, self.private_key_file)

    def _generate_key(self) -> None:
        logger.debug("Generating local key pair in %s", self.directory)
        for path in (self.private_key_file, self.public_key_file):
            if path.exists():
                path.unlink()
        subprocess.run(
            [
                "ssh-keygen",
                "-t",
                KEY_ALGORITHM,
                "-f",
                str(self.private_key_file),
                "-N",
                "",
                "-C",
                "plcli-temporary-cert",
            ],
            input="y\n",
            capture_output=True,
            text=True,
            check=True,
            timeout=60,
        )

    def generate_certificate(self) -> Certificate:
        """Request a new certificate, generating a key pair if needed.

        Raises:
            AuthenticationError: If the certificate authority refuses the key
        """
        self.directory.mkdir(parents=True, exist_ok=True)
        os.chmod(self.directory, 0o700)
        if not (self.private_key_file.exists() and self.public_key_file.exists()):
            self._generate_key()

        public_key = self.public_key_file.read_text(encoding="utf-8").strip()
        logger.debug("Requesting certificate from %s", self.client.config.ssh_cert_url)
        resp = self.client.request("POST", self.client.config.ssh_cert_url, json={"key": public_key})
        if not 200 <= resp.status_code < 300:
            raise AuthenticationError(f"Failed to obtain an SSH certificate: {describe_error(resp)}")
        try:
            certificate = resp.json()["certificate"]
        except (ValueError, KeyError, TypeError) as exc:
            raise AuthenticationError("Failed to obtain an SSH certificate: invalid response") from exc

        self.certificate_file.write_text(certificate.strip() + "\n", encoding="utf-8")
        os.chmod(self.certificate_file, 0o600)
        return Certificate(self.certificate_file, self.private_key_file)

    def ensure_certificate(self) -> Optional[Certificate]:
        """Return a valid certificate, or None if ``ssh-keygen`` is unavailable."""
        if not self.keygen_available():
            logger.warning("ssh-keygen not found; connecting without an SSH certificate")
            return None
        return self.existing_certificate() or self.generate_certificate()
