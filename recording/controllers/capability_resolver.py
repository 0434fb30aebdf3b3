"""
Capability Resolver

Picks the capture mode for a preview from what the device advertises,
filtered through a resolution preset.
"""

import logging
from typing import Iterable, Optional

from recording.models.capture import (
    CaptureCapability,
    ResolutionPreset,
    find_preset,
)


def _rank(capability: CaptureCapability):
    return (capability.area, capability.frame_rate)


def pick_best_capability(
    capabilities: Iterable[CaptureCapability],
    preset: ResolutionPreset,
) -> Optional[CaptureCapability]:
    """
    Choose the best capability inside a preset bucket.

    Capabilities inside the preset bounds are preferred; when none fall
    inside, the whole list is used. Ranking is by pixel area, then frame rate.

    Args:
        capabilities: Device-advertised modes
        preset: Resolution bucket to filter with

    Returns:
        Best capability, or None only when the list is empty

    Example:
        hd = find_preset("HD")
        pick_best_capability([CaptureCapability(1920, 1080, 30),
                              CaptureCapability(1280, 720, 30)], hd)
        # -> 1280x720@30
    """
    candidates = list(capabilities)
    if not candidates:
        return None

    matching = [c for c in candidates if preset.contains(c)]
    return max(matching or candidates, key=_rank)


class CapabilityResolver:
    """
    Resolves and remembers the preview capability.

    The last choice is mirrored into the recording defaults so recording
    uses the same size and rate as the preview.

    Usage:
        resolver = CapabilityResolver()
        choice = resolver.resolve(handle.capabilities(), "HD")
    """

    def __init__(self):
        self.logger = logging.getLogger(__name__)
        self.last_choice: Optional[CaptureCapability] = None

    def resolve(self, capabilities, preset) -> Optional[CaptureCapability]:
        """
        Pick a capability for a preset (object or label prefix).

        Returns:
            Chosen capability, None if the device advertised nothing
        """
        if not isinstance(preset, ResolutionPreset):
            preset = find_preset(preset)

        capabilities = list(capabilities)
        choice = pick_best_capability(capabilities, preset)

        if choice is None:
            self.logger.warning("Device advertised no capabilities")
        elif not preset.contains(choice):
            self.logger.info(
                f"No mode inside {preset.label}, using best available: {choice}"
            )
        else:
            self.logger.info(f"Resolved {preset.label} to {choice}")

        self.last_choice = choice
        return choice
