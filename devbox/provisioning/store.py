"""Resource record store: instances.json keyed by label."""

import json
import logging
import os
import tempfile

from devbox.errors import ConfigError
from devbox.provisioning.types import ResourceRecord

logger = logging.getLogger(__name__)


class ResourceStore:
    """JSON file of ResourceRecords, rewritten atomically on every save."""

    def __init__(self, path):
        self.path = os.path.expanduser(path)

    def _load(self) -> dict:
        try:
            with open(self.path) as f:
                data = json.load(f)
        except FileNotFoundError:
            return {}
        except (OSError, json.JSONDecodeError) as e:
            raise ConfigError(f"Cannot read instance state {self.path}: {e}") from e
        if not isinstance(data, dict):
            raise ConfigError(f"Instance state {self.path} is not a JSON object")
        return data

    def all(self) -> list[ResourceRecord]:
        """Every stored record, oldest first."""
        records = [ResourceRecord.from_dict(d) for d in self._load().values()]
        return sorted(records, key=lambda r: r.created_at)

    def __contains__(self, label):
        return label in self._load()

    def get(self, label) -> ResourceRecord:
        data = self._load()
        if label not in data:
            raise ConfigError(f"No instance '{label}' in {self.path}")
        return ResourceRecord.from_dict(data[label])

    def save(self, record: ResourceRecord, dry_run=False) -> None:
        if dry_run:
            logger.debug(f"[dry-run] save {record.label} ({record.status.value}) to {self.path}")
            return
        data = self._load()
        data[record.label] = record.to_dict()

        parent = os.path.dirname(self.path) or "."
        os.makedirs(parent, mode=0o700, exist_ok=True)
        fd, tmp_path = tempfile.mkstemp(dir=parent, prefix=".instances.", suffix=".tmp")
        try:
            with os.fdopen(fd, "w") as f:
                json.dump(data, f, indent=2, sort_keys=True)
                f.write("\n")
            os.replace(tmp_path, self.path)
        except BaseException:
            if os.path.exists(tmp_path):
                os.unlink(tmp_path)
            raise
