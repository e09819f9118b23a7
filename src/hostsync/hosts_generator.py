from __future__ import annotations

import logging
import os
import stat
import tempfile
from typing import Iterable, Optional

from .config.config_schema import SyncConfig
from .domain_filter import DomainFilter
from .errors import DecodeError, FilesystemWriteError, RegistryReadError
from .registry import RegistryReader

logger = logging.getLogger(__name__)

DEFAULT_FILE_MODE = 0o644


def write_atomic(path: str, content: str) -> None:
    """
    Brief: Replace path with content so readers see either old or new data.

    Inputs:
      - path: Destination file path.
      - content: Full text to write (UTF-8).

    Outputs:
      - None.

    Raises:
      - FilesystemWriteError: when content is not encodable as UTF-8, or the
        temp file cannot be created, written or renamed. The destination is
        untouched and the temp file removed.

    Notes:
      - The temp file lives in the destination directory so os.replace()
        stays a same-filesystem rename.
      - Permission bits of an existing destination are preserved; a new
        file gets 0o644 so an unprivileged forwarder can read it.
    """
    try:
        data = content.encode("utf-8")
    except UnicodeEncodeError as exc:
        raise FilesystemWriteError(f"cannot encode {path} as UTF-8: {exc}") from exc

    directory = os.path.dirname(os.path.abspath(path))
    try:
        mode = stat.S_IMODE(os.stat(path).st_mode)
    except FileNotFoundError:
        mode = DEFAULT_FILE_MODE
    except OSError as exc:
        raise FilesystemWriteError(f"cannot stat {path}: {exc}") from exc

    try:
        fd, tmp_path = tempfile.mkstemp(
            prefix="." + os.path.basename(path) + ".", suffix=".tmp", dir=directory
        )
    except OSError as exc:
        raise FilesystemWriteError(
            f"cannot create temporary file in {directory}: {exc}"
        ) from exc

    try:
        with os.fdopen(fd, "wb") as f:
            f.write(data)
            f.flush()
            os.fsync(f.fileno())
        os.chmod(tmp_path, mode)
        os.replace(tmp_path, path)
    except OSError as exc:
        raise FilesystemWriteError(f"cannot write {path}: {exc}") from exc
    finally:
        if os.path.exists(tmp_path):
            try:
                os.unlink(tmp_path)
            except OSError:
                logger.warning("Failed to remove temporary file %s", tmp_path)


class HostsGenerator:
    """
    Brief: Render the published hostname set as a hosts file and install it.

    Inputs:
      - config: Validated SyncConfig.
      - reader: Optional RegistryReader (defaults to one built from config).
      - domain_filter: Optional DomainFilter (defaults to config.external_domain).

    Outputs:
      - HostsGenerator instance; generate() performs one regeneration.
    """

    def __init__(
        self,
        config: SyncConfig,
        reader: Optional[RegistryReader] = None,
        domain_filter: Optional[DomainFilter] = None,
    ) -> None:
        self.config = config
        self.reader = reader or RegistryReader(
            config.registry_path, config.registry_query
        )
        self.domain_filter = domain_filter or DomainFilter(config.external_domain)

    def build_host_line(self, hostname: str) -> str:
        """
        Brief: Build one hosts line for hostname.

        Inputs:
          - hostname: A published hostname (simple label or external FQDN).

        Outputs:
          - str: Newline-terminated line. External names map to themselves
            only; simple names also get '<name>.<domain_name>' and, when
            local_suffix is set, '<name><local_suffix>'.

        Example:
          'wiki' -> '192.168.1.100 wiki wiki.hackerspace.lan wiki.local\\n'
          'wiki.example.org' -> '192.168.1.100 wiki.example.org\\n'
        """
        cfg = self.config
        if self.domain_filter.is_external(hostname):
            return f"{cfg.target_address} {hostname}\n"

        aliases = [hostname, f"{hostname}.{cfg.domain_name}"]
        if cfg.local_suffix:
            aliases.append(f"{hostname}{cfg.local_suffix}")
        return f"{cfg.target_address} {' '.join(aliases)}\n"

    def render(self, hostnames: Iterable[str]) -> str:
        """Concatenate build_host_line() output for hostnames in order."""
        return "".join(self.build_host_line(h) for h in hostnames)

    def generate(self) -> bool:
        """
        Brief: Regenerate the hosts file from the current registry contents.

        Inputs:
          - None.

        Outputs:
          - bool: True when the new file is in place; False when reading,
            decoding or writing failed. On failure the previously published
            file is left exactly as it was.
        """
        output_path = self.config.output_path
        try:
            rows = self.reader.fetch_rows()
            hostnames = self.domain_filter.filter(
                self.domain_filter.parse_from_rows(rows)
            )
            write_atomic(output_path, self.render(hostnames))
        except RegistryReadError as exc:
            logger.error("Registry read failed, keeping %s: %s", output_path, exc)
            return False
        except DecodeError as exc:
            logger.error("Malformed hostname data, keeping %s: %s", output_path, exc)
            return False
        except FilesystemWriteError as exc:
            logger.error("Failed to write hosts file: %s", exc)
            return False

        logger.info("Generated %s with %d hostnames", output_path, len(hostnames))
        return True
