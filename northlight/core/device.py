"""Device snapshot — model, OS, app, screen, locale, memory, battery, network."""

from __future__ import annotations

import glob
import locale
import logging
import math
import os
import platform
import re
import socket
import subprocess
from abc import ABC, abstractmethod
from typing import Callable, Optional, TypeVar

from northlight.core.models import DeviceInfo

logger = logging.getLogger(__name__)

T = TypeVar("T")

UNKNOWN = "Unknown"


class DeviceInfoProvider(ABC):
    """Source of raw device readings. Any method may raise."""

    @abstractmethod
    def model(self) -> str: ...

    @abstractmethod
    def os_version(self) -> str: ...

    @abstractmethod
    def app_version(self) -> str: ...

    @abstractmethod
    def screen_size(self) -> Optional[tuple[int, int]]: ...

    @abstractmethod
    def locale(self) -> str: ...

    @abstractmethod
    def free_memory_bytes(self) -> Optional[int]: ...

    @abstractmethod
    def battery_level(self) -> Optional[float]: ...

    @abstractmethod
    def network_type(self) -> str: ...


class PlatformDeviceProvider(DeviceInfoProvider):
    """Reads the host machine through ``platform``, ``/proc`` and ``/sys``."""

    def __init__(self, app_version: str = UNKNOWN):
        self._app_version = app_version

    def model(self) -> str:
        product = _read_text("/sys/devices/virtual/dmi/id/product_name")
        if product:
            return product
        return platform.machine() or UNKNOWN

    def os_version(self) -> str:
        return _detect_os_version()

    def app_version(self) -> str:
        return self._app_version

    def screen_size(self) -> Optional[tuple[int, int]]:
        return _detect_screen_size()

    def locale(self) -> str:
        lang, _ = locale.getlocale()
        return lang or os.environ.get("LANG", "").split(".")[0] or UNKNOWN

    def free_memory_bytes(self) -> Optional[int]:
        return _detect_free_memory()

    def battery_level(self) -> Optional[float]:
        return _detect_battery_level()

    def network_type(self) -> str:
        return _detect_network_type()


def capture(
    include_extended: bool = False,
    provider: Optional[DeviceInfoProvider] = None,
) -> DeviceInfo:
    """Build a DeviceInfo from the provider's current readings.

    Never raises: a reading that fails is reported as absent. Extended
    fields (memory, battery, network) are only read for bug reports.
    """
    provider = provider or PlatformDeviceProvider()

    size = _safe(provider.screen_size, None)
    resolution = "0x0"
    if (
        isinstance(size, (tuple, list))
        and len(size) == 2
        and all(_is_number(n) for n in size)
    ):
        resolution = f"{int(size[0])}x{int(size[1])}"

    free_memory = battery = network = None
    if include_extended:
        free_bytes = _safe(provider.free_memory_bytes, None)
        if _is_number(free_bytes) and free_bytes >= 0:
            free_memory = f"{int(free_bytes) // (1024 * 1024)}MB"
        battery = _safe(provider.battery_level, None)
        if _is_number(battery) and 0.0 <= battery <= 1.0:
            battery = float(battery)
        else:
            battery = None
        network = _safe(provider.network_type, "none")
        if not isinstance(network, str):
            network = "none"

    return DeviceInfo(
        model=_safe(provider.model, UNKNOWN),
        os_version=_safe(provider.os_version, UNKNOWN),
        app_version=_safe(provider.app_version, UNKNOWN),
        screen_resolution=resolution,
        locale=_safe(provider.locale, UNKNOWN),
        free_memory=free_memory,
        battery_level=battery,
        network_type=network,
    )


def _safe(read: Callable[[], T], default: T) -> T:
    try:
        value = read()
    except Exception as e:
        logger.debug("Device reading %s failed: %s", getattr(read, "__name__", read), e)
        return default
    return default if value is None else value


def _is_number(value: object) -> bool:
    # bool is an int subclass
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return False
    return math.isfinite(value)


def _read_text(path: str) -> Optional[str]:
    try:
        with open(path) as f:
            return f.read().strip() or None
    except OSError:
        return None


def _detect_os_version() -> str:
    try:
        if platform.system() == "Linux":
            result = subprocess.run(
                ["lsb_release", "-ds"],
                capture_output=True, text=True, timeout=5,
            )
            if result.returncode == 0 and result.stdout.strip():
                return result.stdout.strip().strip('"')
        elif platform.system() == "Darwin":
            return platform.mac_ver()[0] or platform.platform()
        return platform.platform()
    except Exception:
        return platform.platform()


_XRANDR_RE = re.compile(r"current (\d+) x (\d+)")
_MAC_DISPLAY_RE = re.compile(r"Resolution: (\d+) x (\d+)")


def _detect_screen_size() -> Optional[tuple[int, int]]:
    system = platform.system()
    try:
        if system == "Linux" and os.environ.get("DISPLAY"):
            result = subprocess.run(
                ["xrandr", "--current"],
                capture_output=True, text=True, timeout=5,
            )
            match = _XRANDR_RE.search(result.stdout)
            if result.returncode == 0 and match:
                return int(match.group(1)), int(match.group(2))
        elif system == "Darwin":
            result = subprocess.run(
                ["system_profiler", "SPDisplaysDataType"],
                capture_output=True, text=True, timeout=10,
            )
            match = _MAC_DISPLAY_RE.search(result.stdout)
            if result.returncode == 0 and match:
                return int(match.group(1)), int(match.group(2))
    except (OSError, subprocess.SubprocessError):
        pass
    return None


def _detect_free_memory() -> Optional[int]:
    meminfo = _read_text("/proc/meminfo")
    if meminfo:
        for line in meminfo.splitlines():
            if line.startswith("MemAvailable:"):
                return int(line.split()[1]) * 1024
    try:
        return os.sysconf("SC_AVPHYS_PAGES") * os.sysconf("SC_PAGE_SIZE")
    except (AttributeError, ValueError, OSError):
        return None


def _detect_battery_level() -> Optional[float]:
    for path in sorted(glob.glob("/sys/class/power_supply/BAT*/capacity")):
        value = _read_text(path)
        if value and value.isdigit():
            return int(value) / 100.0
    if platform.system() == "Darwin":
        try:
            result = subprocess.run(
                ["pmset", "-g", "batt"],
                capture_output=True, text=True, timeout=5,
            )
            match = re.search(r"(\d+)%", result.stdout)
            if result.returncode == 0 and match:
                return int(match.group(1)) / 100.0
        except (OSError, subprocess.SubprocessError):
            pass
    return None


def _detect_network_type() -> str:
    interfaces = glob.glob("/sys/class/net/*")
    if interfaces:
        up = [
            os.path.basename(i) for i in interfaces
            if os.path.basename(i) != "lo"
            and _read_text(os.path.join(i, "operstate")) == "up"
        ]
        if not up:
            return "none"
        if all(name.startswith("ww") for name in up):
            return "cellular"
        return "wifi"
    # No sysfs: fall back to asking the routing table (no packet is sent).
    sock = socket.socket(socket.AF_INET, socket.SOCK_DGRAM)
    try:
        sock.connect(("192.0.2.1", 80))
        return "wifi"
    except OSError:
        return "none"
    finally:
        sock.close()
