"""
Error taxonomy for device acquisition.

Connection-level failures subclass the builtin ConnectionError so callers can
catch them either way. Decode failures are ValueErrors: the payload, not the
link, is at fault.
"""


class PulsewatchError(Exception):
    """Base class for all pulsewatch errors."""


class DeviceConnectionError(PulsewatchError, ConnectionError):
    """A connect attempt failed; the caller should fall back to simulation."""


class DeviceUnavailable(DeviceConnectionError):
    """No compatible peripheral was found, or the platform lacks Bluetooth."""


class ServiceSetupFailed(DeviceConnectionError):
    """Peripheral found, but a required service or characteristic is missing."""


class DecodeError(PulsewatchError, ValueError):
    """Notification payload is short or malformed; the sample is dropped."""


class PeripheralDisconnected(PulsewatchError):
    """
    The peripheral dropped the link without being asked to.

    Handed to the disconnect handler as the reason for the drop. It starts
    the reconnection state machine and is never raised to callers.
    """
