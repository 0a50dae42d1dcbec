"""SSH target resolution and execution.

Environments advertise SSH endpoints as links named ``pf:ssh:<app>`` (the
default instance) and ``pf:ssh:<app>:<n>`` (a specific instance). Resolution
works entirely from the environment record already fetched, so an unknown
instance fails without any further request.
"""

import logging
import shlex
import subprocess
from dataclasses import dataclass
from typing import Dict, List, Optional, Sequence
from urllib.parse import urlparse

from .exceptions import NotFoundError, ValidationError
from .records import Record
from .ssh_cert import Certificate

logger = logging.getLogger(__name__)

LINK_PREFIX = "pf:ssh:"


@dataclass(frozen=True)
class SshTarget:
    """A resolved SSH endpoint."""

    app: str
    url: str
    instance: Optional[str] = None

    @property
    def destination(self) -> str:
        """The ``user@host`` part of the URL."""
        parsed = urlparse(self.url)
        if parsed.scheme == "ssh" and parsed.hostname:
            user = f"{parsed.username}@" if parsed.username else ""
            return user + parsed.hostname
        return self.url

    @property
    def port(self) -> Optional[int]:
        return urlparse(self.url).port if self.url.startswith("ssh://") else None


def ssh_links(environment: Record) -> Dict[str, Dict[Optional[str], str]]:
    """Map app name to instance ID (None for the app's default) to SSH URL."""
    apps: Dict[str, Dict[Optional[str], str]] = {}
    for rel, href in environment.links.items():
        if not rel.startswith(LINK_PREFIX):
            continue
        parts = rel[len(LINK_PREFIX):].split(":")
        instance = parts[1] if len(parts) > 1 else None
        apps.setdefault(parts[0], {})[instance] = href
    return apps


def _instance_sort_key(instance: str):
    return (0, int(instance), "") if instance.isdigit() else (1, 0, instance)


def resolve_target(
    environment: Record,
    app: Optional[str] = None,
    instance: Optional[str] = None,
) -> SshTarget:
    """Choose the SSH endpoint for an app and optional instance.

    Raises:
        ValidationError: If the app is unknown, or several apps exist and none was chosen
        NotFoundError: If the environment has no SSH endpoints, or the instance does not exist
    """
    apps = ssh_links(environment)
    if not apps:
        raise NotFoundError(
            f"No SSH endpoints found for environment: {environment.get_str('id')}"
        )
    if app is None:
        if len(apps) > 1:
            raise ValidationError(
                "Multiple apps found; use --app to choose one of: " + ", ".join(sorted(apps))
            )
        app = next(iter(apps))
    if app not in apps:
        raise ValidationError(f"App not found: {app} (available apps: {', '.join(sorted(apps))})")

    endpoints = apps[app]
    instances = sorted((i for i in endpoints if i is not None), key=_instance_sort_key)
    if instance is not None:
        if instance not in endpoints:
            raise NotFoundError(
                f"Instance not found: {instance}. Available instances: {', '.join(instances)}"
            )
        return SshTarget(app, endpoints[instance], instance)
    if None in endpoints:
        return SshTarget(app, endpoints[None])
    return SshTarget(app, endpoints[instances[0]], instances[0])


def build_ssh_command(
    target: SshTarget,
    remote_command: Sequence[str] = (),
    options: Sequence[str] = (),
    certificate: Optional[Certificate] = None,
    debug: bool = False,
) -> List[str]:
    """Build the argument list for the system ``ssh`` client.

    Args:
        target: The resolved endpoint
        remote_command: Command to run remotely; an interactive shell if empty
        options: Extra ``ssh -o`` options, e.g. ``"Port 2222"``
        certificate: Certificate and key to authenticate with
        debug: Enable verbose ssh logging
    """
    argv = ["ssh", "-o", "SendEnv TERM"]
    if debug:
        argv += ["-o", "LogLevel DEBUG"]
    if certificate is not None:
        argv += ["-o", f"CertificateFile {certificate.certificate_file}"]
        argv += ["-o", f"IdentityFile {certificate.private_key_file}"]
    for option in options:
        argv += ["-o", option]
    if target.port:
        argv += ["-p", str(target.port)]
    if remote_command:
        argv.append(target.destination)
        argv.append(" ".join(remote_command) if len(remote_command) > 1 else remote_command[0])
    else:
        argv += ["-t", target.destination]
    return argv


def run_ssh(argv: Sequence[str]) -> int:
    """Run ssh with inherited standard streams and return its exit code."""
    logger.debug("Running: %s", shlex.join(argv))
    return subprocess.run(list(argv), check=False).returncode
