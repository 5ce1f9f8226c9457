"""Argument helpers shared by all subcommands."""

from devbox.config import load_settings
from devbox.provisioning.registry import HostRegistry
from devbox.provisioning.store import ResourceStore


def add_config_argument(parser):
    parser.add_argument(
        "--config",
        default=None,
        help="Settings YAML file (default: ~/.config/devbox/config.yaml, if present)",
    )


def add_dry_run_argument(parser):
    parser.add_argument("--dry-run", action="store_true", help="Print actions without executing")


def settings_from_args(args, **overrides):
    """Load settings from --config and apply non-None CLI overrides."""
    return load_settings(args.config).with_overrides(**overrides)


def store_for(settings):
    return ResourceStore(settings.path("state_file"))


def registry_for(settings):
    return HostRegistry(settings.path("ssh_config"))
