"""Device fingerprint — a stable, anonymous per-device user identifier."""

from __future__ import annotations

import hashlib
import uuid
from typing import Optional


_MACHINE_ID_PATHS = ["/etc/machine-id", "/var/lib/dbus/machine-id"]

# Fixed namespace so the same machine always maps to the same identifier.
_NAMESPACE = uuid.UUID("6f0d5c1e-3b0a-4c55-9a57-2f4e9d1b7c80")


def stable_device_id() -> Optional[str]:
    """Return a vendor-stable identifier for this machine, if one exists.

    The raw machine id is hashed before use and never leaves the device.
    """
    for path in _MACHINE_ID_PATHS:
        try:
            with open(path) as f:
                raw = f.read().strip()
        except OSError:
            continue
        if raw:
            return _to_uuid(raw)

    node = uuid.getnode()
    # Multicast bit set means getnode() made up a random address.
    if (node >> 40) & 1:
        return None
    return _to_uuid(f"{node:012x}")


def generate_user_identifier() -> str:
    """Stable device id when available, otherwise a fresh random UUID."""
    return stable_device_id() or str(uuid.uuid4()).upper()


def _to_uuid(raw: str) -> str:
    digest = hashlib.sha256(raw.encode()).hexdigest()
    return str(uuid.uuid5(_NAMESPACE, digest)).upper()
