"""
ADB device layer: connection types and the DeviceInterface used by the explorer.
"""
from .device_interface import DeviceInterface, ADBDeviceInterface
from .adb_manager import ADBManager

__all__ = ["DeviceInterface", "ADBDeviceInterface", "ADBManager"]
