"""VM lifecycle management: create/list/delete Vultr dev boxes."""


def register_vm_command(subparsers):
    """Register the 'vm' command with create/list/delete action subparsers."""
    from devbox.commands.vm.vultr import (
        register_create_target,
        register_delete_target,
        register_list_target,
    )

    vm_parser = subparsers.add_parser("vm", help="Manage dev box instances")
    action_subparsers = vm_parser.add_subparsers(dest="action", required=True)

    register_create_target(action_subparsers)
    register_list_target(action_subparsers)
    register_delete_target(action_subparsers)
