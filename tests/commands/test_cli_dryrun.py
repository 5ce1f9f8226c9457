"""Dry-run end-to-end tests for the devbox CLI."""

import json

import pytest
import yaml

SSH_CONFIG = """\
# devbox: tiny-box-1
Host tiny-box-1
    HostName 203.0.113.10
    User root
    IdentityFile /keys/tiny-box-1
    StrictHostKeyChecking no
"""


@pytest.fixture
def ssh_config(tmp_path):
    path = tmp_path / "ssh_config"
    path.write_text(SSH_CONFIG)
    return str(path)


@pytest.fixture
def state_config(tmp_path):
    """A settings YAML whose state file already records one instance."""
    state = tmp_path / "instances.json"
    state.write_text(
        json.dumps(
            {
                "tiny-box-1": {
                    "label": "tiny-box-1",
                    "region": "ewr",
                    "plan": "vc2-1c-1gb",
                    "image": "ubuntu-24.04",
                    "id": "inst-1",
                    "status": "active",
                    "address": "203.0.113.10",
                    "credential": {
                        "label": "tiny-box-1",
                        "private_key_path": "/keys/tiny-box-1",
                        "public_key_path": "/keys/tiny-box-1.pub",
                        "provider_key_id": "key-1",
                    },
                    "created_at": 1734567890.0,
                    "last_status": "active/running",
                }
            }
        )
    )
    config = tmp_path / "config.yaml"
    with open(config, "w") as f:
        yaml.dump({"state_file": str(state)}, f)
    return str(config)


# ── vm create ─────────────────────────────────────────────────────


def test_vm_create_dry_run(run_cli):
    rc, stdout, _ = run_cli("vm", "create", "--label", "test-box", "--dry-run")
    assert rc == 0
    assert "[dry-run] ssh-keygen -t ed25519" in stdout
    assert "[dry-run] POST https://api.vultr.com/v2/ssh-keys" in stdout
    assert "[dry-run] POST https://api.vultr.com/v2/instances" in stdout
    assert '"region": "ewr"' in stdout
    assert '"plan": "vc2-1c-1gb"' in stdout
    assert '"os_id": 2284' in stdout
    assert '"sshkey_id": [' in stdout
    assert "Host test-box" in stdout
    assert "ssh test-box" in stdout


def test_vm_create_dry_run_overrides(run_cli):
    rc, stdout, _ = run_cli(
        "vm", "create",
        "--label", "test-box",
        "--region", "lax",
        "--plan", "vc2-2c-4gb",
        "--image", "debian-12",
        "--dry-run",
    )
    assert rc == 0
    assert '"region": "lax"' in stdout
    assert '"plan": "vc2-2c-4gb"' in stdout
    assert '"os_id": 2136' in stdout


def test_vm_create_dry_run_connect(run_cli):
    rc, stdout, _ = run_cli("vm", "create", "--label", "test-box", "--connect", "--dry-run")
    assert rc == 0
    assert "[dry-run] ssh test-box" in stdout


def test_vm_create_dry_run_without_connect(run_cli):
    rc, stdout, _ = run_cli("vm", "create", "--label", "test-box", "--dry-run")
    assert rc == 0
    assert "[dry-run] ssh test-box" not in stdout


def test_vm_create_unknown_image(run_cli):
    rc, stdout, _ = run_cli("vm", "create", "--image", "windows-95", "--dry-run")
    assert rc == 1
    assert "Unknown image 'windows-95'" in stdout


def test_vm_create_bad_region(run_cli):
    rc, stdout, _ = run_cli("vm", "create", "--region", "EWR; echo pwned", "--dry-run")
    assert rc == 1
    assert "Invalid region" in stdout


def test_vm_create_without_api_key(run_cli):
    rc, stdout, _ = run_cli("vm", "create", "--label", "test-box")
    assert rc == 1
    assert "No Vultr API key found" in stdout


def test_vm_create_missing_config_file(run_cli, tmp_path):
    rc, stdout, _ = run_cli("vm", "create", "--config", str(tmp_path / "nope.yaml"), "--dry-run")
    assert rc == 1
    assert "not found" in stdout


# ── vm list / delete ──────────────────────────────────────────────


def test_vm_list_empty(run_cli):
    rc, stdout, _ = run_cli("vm", "list")
    assert rc == 0
    assert "No instances recorded" in stdout


def test_vm_list(run_cli, state_config):
    rc, stdout, _ = run_cli("vm", "list", "--config", state_config)
    assert rc == 0
    assert "tiny-box-1" in stdout
    assert "active" in stdout
    assert "203.0.113.10" in stdout


def test_vm_delete_dry_run(run_cli, state_config):
    rc, stdout, _ = run_cli("vm", "delete", "tiny-box-1", "--config", state_config, "--dry-run")
    assert rc == 0
    assert "[dry-run] DELETE https://api.vultr.com/v2/instances/inst-1" in stdout
    assert "Key kept at /keys/tiny-box-1" in stdout


def test_vm_delete_unknown_label(run_cli, state_config):
    rc, stdout, _ = run_cli("vm", "delete", "nope", "--config", state_config, "--dry-run")
    assert rc == 1
    assert "No instance 'nope'" in stdout


def test_keys_delete_dry_run(run_cli, state_config):
    rc, stdout, _ = run_cli("keys", "delete", "tiny-box-1", "--config", state_config, "--dry-run")
    assert rc == 0
    assert "[dry-run] DELETE https://api.vultr.com/v2/ssh-keys/key-1" in stdout
    assert "[dry-run] rm /keys/tiny-box-1" in stdout


# ── copy / forward ────────────────────────────────────────────────


def test_copy_dry_run(run_cli, ssh_config):
    rc, stdout, _ = run_cli("copy", "tiny-box-1", "setup.sh", "--ssh-config", ssh_config, "--dry-run")
    assert rc == 0
    assert "[dry-run] scp" in stdout
    assert "-i /keys/tiny-box-1" in stdout
    assert "root@203.0.113.10:~/setup.sh" in stdout
    assert "bash" not in stdout


def test_copy_dry_run_exec(run_cli, ssh_config):
    rc, stdout, _ = run_cli("copy", "tiny-box-1", "setup.sh", "--exec", "--ssh-config", ssh_config, "--dry-run")
    assert rc == 0
    assert "[dry-run] ssh" in stdout
    assert "bash" in stdout
    assert "~/setup.sh" in stdout


def test_copy_unknown_alias(run_cli, ssh_config):
    rc, stdout, _ = run_cli("copy", "nope", "setup.sh", "--ssh-config", ssh_config, "--dry-run")
    assert rc == 1
    assert "No host 'nope'" in stdout


def test_copy_missing_local_file(run_cli, ssh_config, tmp_path):
    rc, stdout, _ = run_cli("copy", "tiny-box-1", str(tmp_path / "missing.sh"), "--ssh-config", ssh_config)
    assert rc == 1
    assert "does not exist" in stdout


def test_forward_dry_run(run_cli, ssh_config):
    rc, stdout, _ = run_cli("forward", "tiny-box-1", "8000,8080", "9000", "--ssh-config", ssh_config, "--dry-run")
    assert rc == 0
    assert "-L 8000:localhost:8000" in stdout
    assert "-L 8080:localhost:8080" in stdout
    assert "-L 9000:localhost:9000" in stdout
    assert "Forwarding http://localhost:8000 -> tiny-box-1:8000" in stdout


def test_forward_invalid_port(run_cli, ssh_config):
    rc, stdout, _ = run_cli("forward", "tiny-box-1", "80000", "--ssh-config", ssh_config, "--dry-run")
    assert rc == 1
    assert "Invalid port '80000'" in stdout


# ── Argparse validation / help ────────────────────────────────────


def test_forward_requires_port(run_cli):
    rc, _, stderr = run_cli("forward", "tiny-box-1")
    assert rc != 0
    assert "ports" in stderr


def test_vm_delete_requires_label(run_cli):
    rc, _, stderr = run_cli("vm", "delete")
    assert rc != 0
    assert "label" in stderr


def test_help(run_cli):
    rc, stdout, _ = run_cli("--help")
    assert rc == 0
    for command in ("vm", "keys", "copy", "forward"):
        assert command in stdout
