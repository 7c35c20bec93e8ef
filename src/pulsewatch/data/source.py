"""
Data source abstraction.

Defines the interface every sample producer implements. The monitor only
talks to this protocol and never checks which variant is behind it: the live
BLE source (data.live.ble) or the simulator (data.simulated).
"""

from typing import Callable, Optional, Protocol

from .models import Sample


SampleCallback = Callable[[Sample], None]


class DataSource(Protocol):
    """
    Protocol for sample sources.

    Samples are pushed to ``on_sample`` as they arrive; the owner assigns the
    callback before calling start().
    """

    on_sample: Optional[SampleCallback]

    async def start(self) -> None:
        """
        Begin producing samples.

        Raises:
            DeviceUnavailable: No compatible device, or no platform support.
            ServiceSetupFailed: Device found but a required characteristic is missing.
        """
        ...

    async def stop(self) -> None:
        """Stop producing samples and release any device resources."""
        ...
