from .adapter import AdapterConfig, AdbDevice
from .adb import Adb, AdbError
from .types import HostDevice

__all__ = ["Adb", "AdbError", "AdapterConfig", "AdbDevice", "HostDevice"]
