"""Device registry: resolves device names to full profiles."""

from __future__ import annotations

import logging
from types import MappingProxyType
from typing import Iterable, Mapping, Union

from pixel_perfect.errors import UnknownDeviceError
from pixel_perfect.models.device import DeviceProfile

from .catalog import DEFAULT_DEVICE_NAMES, DEVICE_PRESETS

logger = logging.getLogger(__name__)


class DeviceRegistry:
    """Read-only lookup over a name -> profile catalog."""

    def __init__(
        self,
        catalog: Mapping[str, DeviceProfile] = DEVICE_PRESETS,
        default_names: Iterable[str] = DEFAULT_DEVICE_NAMES,
    ):
        self._catalog = catalog
        self._default_names = tuple(default_names)

    def resolve(self, name_or_profile: Union[str, DeviceProfile]) -> DeviceProfile:
        """Return the profile for a device name, or the profile itself if one is given."""
        if isinstance(name_or_profile, DeviceProfile):
            return name_or_profile

        name = name_or_profile.strip()
        profile = self._catalog.get(name)
        if profile is not None:
            return profile

        lowered = name.lower()
        for key, candidate in self._catalog.items():
            if key.lower() == lowered:
                logger.debug("Resolved device %r to preset %r", name_or_profile, key)
                return candidate

        raise UnknownDeviceError(name_or_profile, self.names())

    def resolve_all(self, items: Iterable[Union[str, DeviceProfile]]) -> list[DeviceProfile]:
        return [self.resolve(item) for item in items]

    def list_defaults(self) -> list[DeviceProfile]:
        return [self.resolve(name) for name in self._default_names]

    def names(self) -> list[str]:
        return list(self._catalog)

    def with_devices(self, profiles: Iterable[DeviceProfile]) -> "DeviceRegistry":
        """Return a new registry whose catalog also contains ``profiles``.

        Profiles with a name already in the catalog replace the preset. This
        registry is left untouched.
        """
        merged = dict(self._catalog)
        for profile in profiles:
            merged[profile.name] = profile
        return DeviceRegistry(MappingProxyType(merged), self._default_names)
