"""Image lookup table: friendly OS names -> Vultr OS ids."""

from devbox.errors import ConfigError

# Friendly name -> Vultr os_id.
#
# The full list comes from `GET /v2/os` (or `vultr-cli os list`). Only the
# images we actually use for dev boxes are listed; any other image can be
# passed as a bare numeric id.
VULTR_OS_IDS = {
    "ubuntu-24.04": 2284,
    "ubuntu-22.04": 1743,
    "debian-12": 2136,
}


def resolve_os_id(image):
    """Map an image name (case-insensitive) or numeric id to a Vultr os_id.

    Raises:
        ConfigError: if the name is not in the lookup table.
    """
    if isinstance(image, int) and not isinstance(image, bool):
        return image
    name = str(image).strip().lower()
    if name.isdigit():
        return int(name)
    if name in VULTR_OS_IDS:
        return VULTR_OS_IDS[name]
    known = ", ".join(sorted(VULTR_OS_IDS))
    raise ConfigError(f"Unknown image '{image}'. Use one of: {known}, or a numeric os id")
