"""Built-in device presets."""

from __future__ import annotations

from types import MappingProxyType
from typing import Mapping

from pixel_perfect.models.device import DeviceProfile

_IOS_14_UA = (
    "Mozilla/5.0 (iPhone; CPU iPhone OS 14_4 like Mac OS X) "
    "AppleWebKit/605.1.15 (KHTML, like Gecko) Version/14.0.3 Mobile/15E148 Safari/604.1"
)
_IOS_14_0_UA = (
    "Mozilla/5.0 (iPhone; CPU iPhone OS 14_0 like Mac OS X) "
    "AppleWebKit/605.1.15 (KHTML, like Gecko) Version/14.0 Mobile/15E148 Safari/604.1"
)
_IPAD_UA = (
    "Mozilla/5.0 (iPad; CPU OS 14_4 like Mac OS X) "
    "AppleWebKit/605.1.15 (KHTML, like Gecko) Version/14.0.3 Mobile/15E148 Safari/604.1"
)
_ANDROID_UA = (
    "Mozilla/5.0 (Linux; Android 11; SM-G991B) "
    "AppleWebKit/537.36 (KHTML, like Gecko) Chrome/89.0.4389.105 Mobile Safari/537.36"
)
_DESKTOP_UA = (
    "Mozilla/5.0 (Macintosh; Intel Mac OS X 10_15_7) "
    "AppleWebKit/537.36 (KHTML, like Gecko) Chrome/91.0.4472.114 Safari/537.36"
)


def _build(profiles: list[DeviceProfile]) -> Mapping[str, DeviceProfile]:
    return MappingProxyType({p.name: p for p in profiles})


DEVICE_PRESETS: Mapping[str, DeviceProfile] = _build([
    DeviceProfile(
        name="iPhone SE", viewport_width=375, viewport_height=667,
        device_scale_factor=2, is_mobile=True, has_touch=True,
        user_agent=_IOS_14_0_UA,
    ),
    DeviceProfile(
        name="iPhone 12", viewport_width=390, viewport_height=844,
        device_scale_factor=3, is_mobile=True, has_touch=True, user_agent=_IOS_14_UA,
    ),
    DeviceProfile(
        name="iPhone 12 Pro Max", viewport_width=428, viewport_height=926,
        device_scale_factor=3, is_mobile=True, has_touch=True, user_agent=_IOS_14_UA,
    ),
    DeviceProfile(
        name="iPad Pro", viewport_width=1024, viewport_height=1366,
        device_scale_factor=2, is_mobile=True, has_touch=True, user_agent=_IPAD_UA,
    ),
    DeviceProfile(
        name="Desktop", viewport_width=1920, viewport_height=1080,
        device_scale_factor=1, user_agent=_DESKTOP_UA,
    ),
    DeviceProfile(
        name="Ultra Wide", viewport_width=2560, viewport_height=1440,
        device_scale_factor=1, user_agent=_DESKTOP_UA,
    ),
    DeviceProfile(
        name="Galaxy S21", viewport_width=360, viewport_height=800,
        device_scale_factor=3, is_mobile=True, has_touch=True, user_agent=_ANDROID_UA,
    ),
])

# Compact phone, tablet, desktop
DEFAULT_DEVICE_NAMES: tuple[str, ...] = ("iPhone 12", "iPad Pro", "Desktop")
