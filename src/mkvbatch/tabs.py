"""Audio and subtitle tab state: numbered slots of track configuration."""

import logging
from collections.abc import Iterable

from mkvbatch.commands import AddTrackSlot, CommandBus, RemoveTrackSlot, ResetTab
from mkvbatch.models.external import ExternalFile, ExternalKind, Origin
from mkvbatch.models.preset import Preset, TrackConfig

logger = logging.getLogger(__name__)


class TabState:
    """Slots of one tab (audio or subtitle) and their configurations.

    A preset seeds the slots once; later presets are ignored until
    ``reset()`` is called.
    """

    def __init__(self, kind: ExternalKind) -> None:
        if kind not in (ExternalKind.AUDIO, ExternalKind.SUBTITLE):
            raise ValueError(f"Tabs hold audio or subtitle slots, not {kind.value}")
        self.kind = kind
        self.slots: list[str] = []
        self.active_slot = ""
        self.configs: dict[str, TrackConfig] = {}
        self.preset_applied = False
        self.reset()

    def reset(self) -> None:
        """Back to a single default slot; the next preset applies again."""
        self.slots = ["1"]
        self.active_slot = "1"
        self.configs = {"1": TrackConfig.defaults_for(self.kind)}
        self.preset_applied = False

    def config(self, slot: str) -> TrackConfig:
        return self.configs.get(slot) or TrackConfig.defaults_for(self.kind)

    def add_slot(self) -> str:
        """Append a slot numbered after the highest existing one and select it."""
        slot = str(max((int(s) for s in self.slots), default=0) + 1)
        self.slots.append(slot)
        self.configs[slot] = TrackConfig.defaults_for(self.kind)
        self.active_slot = slot
        logger.debug("Added %s slot %s", self.kind.value, slot)
        return slot

    def remove_slot(self, slot: str) -> None:
        """Remove a slot; the last remaining slot is kept."""
        if slot not in self.slots or len(self.slots) == 1:
            return
        index = self.slots.index(slot)
        self.slots.remove(slot)
        self.configs.pop(slot, None)
        if self.active_slot == slot:
            self.active_slot = self.slots[max(0, index - 1)]

    def update_slot(self, slot: str, **updates) -> TrackConfig:
        """Merge field updates into one slot's configuration."""
        updated = self.config(slot).model_copy(update=updates)
        self.configs[slot] = updated
        return updated

    def apply_preset(self, preset: Preset | None) -> bool:
        """Seed every slot's folder, extension and language from a preset.

        Returns:
            True if the preset was applied, False if it was already applied
        """
        if preset is None or self.preset_applied:
            return False
        language = preset.language_for(self.kind) or "und"
        folder = preset.folder_for(self.kind) or ""
        for slot in self.slots:
            self.update_slot(slot, source_folder=folder, extension="all", language=language.lower())
        self.preset_applied = True
        logger.info("Applied preset %r to %s tab", preset.name, self.kind.value)
        return True

    def configure_files(self, slot: str, files: Iterable[ExternalFile]) -> list[ExternalFile]:
        """Stamp a slot's settings onto freshly scanned bulk files."""
        cfg = self.config(slot)
        return [
            f.model_copy(
                update={
                    "kind": self.kind,
                    "origin": Origin.BULK,
                    "language": cfg.language,
                    "track_name": cfg.track_name or None,
                    "delay": cfg.delay_seconds,
                    "is_default": cfg.is_default,
                    "is_forced": cfg.is_forced,
                    "mux_after": cfg.mux_after,
                }
            )
            for f in files
        ]

    def bind(self, bus: CommandBus) -> None:
        """Register this tab's command handlers on a bus."""
        route = self.kind.value
        bus.register(AddTrackSlot, lambda _cmd: self.add_slot(), route=route)
        bus.register(RemoveTrackSlot, lambda cmd: self.remove_slot(cmd.slot), route=route)
        bus.register(ResetTab, lambda _cmd: self.reset(), route=route)
