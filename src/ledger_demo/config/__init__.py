"""Generation tuning: constants and volume presets."""

from ledger_demo.config.volume import VOLUME_PRESETS, VolumeConfig, load_volume

__all__ = ["VOLUME_PRESETS", "VolumeConfig", "load_volume"]
