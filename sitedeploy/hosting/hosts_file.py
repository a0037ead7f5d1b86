"""Loopback entries in the system hosts file."""

from pathlib import Path

from sitedeploy.config import settings
from sitedeploy.utils.logging import get_logger

ENTRY_MARKER = "# Added by sitedeploy"


class HostsFileService:
    """Appends host name mappings. Existing content is never rewritten."""

    def __init__(self, path: str | None = None, address: str | None = None):
        self.path = Path(path or settings.hosts_file_path)
        self.address = address or settings.loopback_address
        self.logger = get_logger("hosts_file")

    def entry_exists(self, hostname: str) -> bool:
        try:
            text = self.path.read_text(encoding="utf-8", errors="ignore")
        except FileNotFoundError:
            return False
        except OSError as e:
            self.logger.warning("hosts_file.read_failed", path=str(self.path), error=str(e))
            return False

        hostname = hostname.lower()
        for line in text.splitlines():
            content = line.split("#", 1)[0].split()
            if len(content) >= 2 and hostname in (h.lower() for h in content[1:]):
                return True
        return False

    def add_entry(self, hostname: str) -> bool:
        """Map ``hostname`` to the loopback address.

        Returns:
            True if a line was appended, False if the entry already existed
            or the file could not be written.
        """
        if self.entry_exists(hostname):
            self.logger.debug("hosts_file.entry_exists", hostname=hostname)
            return False

        try:
            needs_newline = self.path.exists() and not self.path.read_bytes().endswith(b"\n")
            with self.path.open("a", encoding="utf-8") as f:
                if needs_newline:
                    f.write("\n")
                f.write(f"{self.address}\t{hostname}\t{ENTRY_MARKER}\n")
        except OSError as e:
            self.logger.warning(
                "hosts_file.write_failed",
                path=str(self.path),
                hostname=hostname,
                error=str(e),
            )
            return False

        self.logger.info("hosts_file.entry_added", hostname=hostname, address=self.address)
        return True
