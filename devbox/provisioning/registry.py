"""Host registry: alias -> connection details, stored as OpenSSH client config.

Entries are plain ``Host`` blocks so that ``ssh <alias>`` works without this
tool, and so that the file stays human-editable. New aliases are appended
in one write; existing blocks are never rewritten for a different key.
"""

import logging
import os
import re
import stat
import tempfile
from dataclasses import dataclass, field

from devbox.errors import HostNotFoundError, RegistryError
from devbox.provisioning.types import HostEntry, validate_label

logger = logging.getLogger(__name__)

HEADER_PREFIX = "# devbox:"
_KV_RE = re.compile(r"^\s*(\S+?)(?:\s*=\s*|\s+)(.*?)\s*$")


@dataclass
class _Block:
    patterns: list[str]
    start: int  # index of the Host line
    end: int  # one past the last option line
    options: dict = field(default_factory=dict)

    def to_entry(self, alias) -> HostEntry:
        port = self.options.get("port", "22")
        return HostEntry(
            alias=alias,
            address=self.options.get("hostname", alias),
            identity_file=self.options.get("identityfile"),
            user=self.options.get("user", ""),
            port=int(port) if port.isdigit() else 22,
        )


def _unquote(value):
    if len(value) >= 2 and value[0] == value[-1] == '"':
        return value[1:-1]
    return value


def _quote(value):
    return f'"{value}"' if re.search(r"\s", value) else value


def _same_path(a, b):
    if not a or not b:
        return False
    return os.path.normpath(os.path.expanduser(a)) == os.path.normpath(os.path.expanduser(b))


def render_block(entry: HostEntry) -> list[str]:
    """Host block lines (newline-terminated) for *entry*, without header."""
    lines = [
        f"Host {entry.alias}\n",
        f"    HostName {entry.address}\n",
        f"    User {entry.user}\n",
    ]
    if entry.port and entry.port != 22:
        lines.append(f"    Port {entry.port}\n")
    lines.append(f"    IdentityFile {_quote(entry.identity_file)}\n")
    lines.append("    StrictHostKeyChecking no\n")
    return lines


def parse_blocks(lines) -> list[_Block]:
    """Split SSH config lines into Host blocks. Match blocks are skipped."""
    blocks = []
    current = None
    for i, line in enumerate(lines):
        stripped = line.strip()
        if not stripped or stripped.startswith("#"):
            continue
        m = _KV_RE.match(line)
        if not m:
            continue
        keyword, value = m.group(1).lower(), m.group(2)
        if keyword == "host":
            current = _Block(patterns=[_unquote(p) for p in value.split()], start=i, end=i + 1)
            blocks.append(current)
        elif keyword == "match":
            current = None
        elif current is not None:
            # First value wins, as in ssh itself
            current.options.setdefault(keyword, _unquote(value))
            current.end = i + 1
    return blocks


class HostRegistry:
    """Persisted alias -> HostEntry mapping backed by an SSH config file."""

    def __init__(self, path):
        self.path = os.path.expanduser(path)

    def _read_lines(self):
        try:
            with open(self.path) as f:
                return f.readlines()
        except FileNotFoundError:
            return []
        except OSError as e:
            raise RegistryError(f"Cannot read {self.path}: {e}") from e

    def _find(self, lines, alias):
        for block in parse_blocks(lines):
            if alias in block.patterns:
                return block
        return None

    def entries(self) -> list[HostEntry]:
        """Every concrete (non-wildcard) alias defined in the file."""
        result = []
        for block in parse_blocks(self._read_lines()):
            for pattern in block.patterns:
                if pattern.startswith("!") or any(c in pattern for c in "*?"):
                    continue
                result.append(block.to_entry(pattern))
        return result

    def lookup(self, alias) -> HostEntry:
        """Return the entry for *alias*.

        Raises:
            HostNotFoundError: if no Host block names *alias*.
        """
        block = self._find(self._read_lines(), alias)
        if block is None:
            raise HostNotFoundError(f"No host '{alias}' in {self.path}")
        return block.to_entry(alias)

    def __contains__(self, alias):
        return self._find(self._read_lines(), alias) is not None

    def upsert(self, alias, address, identity_file, user="root", port=22, dry_run=False) -> HostEntry:
        """Add *alias*, or update its address if it already uses *identity_file*.

        Raises:
            RegistryError: if *alias* already exists for a different key, or
                shares its Host line with other aliases.
        """
        validate_label(alias)
        entry = HostEntry(alias=alias, address=address, identity_file=identity_file, user=user, port=port)
        lines = self._read_lines()
        block = self._find(lines, alias)

        if block is None:
            self._append(lines, entry, dry_run)
            return entry

        current = block.to_entry(alias)
        if not _same_path(current.identity_file, identity_file):
            raise RegistryError(
                f"Host '{alias}' already exists in {self.path} with IdentityFile "
                f"'{current.identity_file}'; refusing to overwrite it"
            )
        if (current.address, current.user, current.port) == (address, user, port):
            logger.info(f"SSH config already has host '{alias}'")
            return entry
        if len(block.patterns) > 1:
            raise RegistryError(
                f"Host '{alias}' in {self.path} shares a Host line with "
                f"{', '.join(p for p in block.patterns if p != alias)}; edit it by hand"
            )

        new_lines = lines[: block.start] + render_block(entry) + lines[block.end :]
        if dry_run:
            logger.info(f"[dry-run] update host '{alias}' in {self.path}: HostName {address}")
            return entry
        self._replace(new_lines)
        logger.info(f"Updated host '{alias}' in {self.path}")
        return entry

    def _append(self, lines, entry, dry_run):
        text = "".join(render_block(entry))
        prefix = "\n" if lines and not lines[-1].endswith("\n") else ""
        chunk = f"{prefix}\n{HEADER_PREFIX} {entry.alias}\n{text}"
        if dry_run:
            logger.info(f"[dry-run] append to {self.path}:{chunk.rstrip()}")
            return

        parent = os.path.dirname(self.path)
        data = chunk.encode()
        try:
            if parent:
                os.makedirs(parent, mode=0o700, exist_ok=True)
            fd = os.open(self.path, os.O_WRONLY | os.O_APPEND | os.O_CREAT, 0o600)
            try:
                # One write call so readers never see half a block
                written = os.write(fd, data)
            finally:
                os.close(fd)
        except OSError as e:
            raise RegistryError(f"Cannot append to {self.path}: {e}") from e
        if written != len(data):
            raise RegistryError(f"Short write to {self.path} ({written}/{len(data)} bytes)")
        logger.info(f"Added host '{entry.alias}' to {self.path}")

    def _replace(self, lines):
        parent = os.path.dirname(self.path) or "."
        try:
            mode = stat.S_IMODE(os.stat(self.path).st_mode)
            fd, tmp_path = tempfile.mkstemp(dir=parent, prefix=".config.", suffix=".tmp")
            try:
                with os.fdopen(fd, "w") as f:
                    f.writelines(lines)
                os.chmod(tmp_path, mode)
                os.replace(tmp_path, self.path)
            except BaseException:
                os.unlink(tmp_path)
                raise
        except OSError as e:
            raise RegistryError(f"Cannot rewrite {self.path}: {e}") from e
