"""
Mirror settings management.
"""

from __future__ import annotations

import json
import logging
import os
from dataclasses import dataclass, field, asdict, fields
from pathlib import Path
from typing import Any, Optional

from dirmirror.core.folder.diff import DiffOptions
from dirmirror.core.folder.scanner import ScanOptions
from dirmirror.core.folder.sync import SyncOptions


class SettingsError(Exception):
    """Raised when a settings file exists but cannot be used."""


@dataclass
class MirrorSettings:
    """Settings for a mirror run."""
    # Scanning
    exclude_patterns: list[str] = field(default_factory=list)
    include_hidden: bool = True
    follow_symlinks: bool = False

    # Comparison
    modify_window: float = 0.0

    # Execution
    preserve_timestamps: bool = True
    dry_run: bool = False
    stream: bool = False

    # Logging
    log_level: str = "INFO"
    log_file: Optional[str] = None

    def to_scan_options(self) -> ScanOptions:
        return ScanOptions(
            include_hidden=self.include_hidden,
            follow_symlinks=self.follow_symlinks,
            exclude_patterns=list(self.exclude_patterns),
        )

    def to_diff_options(self) -> DiffOptions:
        return DiffOptions(
            modify_window=self.modify_window,
            scan_options=self.to_scan_options(),
        )

    def to_sync_options(self) -> SyncOptions:
        return SyncOptions(
            preview_only=self.dry_run,
            preserve_timestamps=self.preserve_timestamps,
        )


class SettingsManager:
    """Manager for loading/saving mirror settings."""

    def __init__(self, settings_path: Optional[Path | str] = None):
        self.settings_path = Path(settings_path) if settings_path else self._get_default_path()
        self._settings: Optional[MirrorSettings] = None

    @staticmethod
    def _get_default_path() -> Path:
        """Get the default settings file path."""
        if os.name == 'nt':
            app_data = os.environ.get('APPDATA', os.path.expanduser('~'))
            return Path(app_data) / 'DirMirror' / 'settings.json'
        config_home = os.environ.get('XDG_CONFIG_HOME',
                                     os.path.expanduser('~/.config'))
        return Path(config_home) / 'dirmirror' / 'settings.json'

    @property
    def settings(self) -> MirrorSettings:
        """Get current settings, loading from disk if needed."""
        if self._settings is None:
            self._settings = self.load()
        return self._settings

    def load(self) -> MirrorSettings:
        """
        Load settings from disk.

        A missing file yields defaults. An unreadable or malformed file
        raises SettingsError.
        """
        if not self.settings_path.exists():
            logging.debug(f"SettingsManager - No settings file at {self.settings_path}, using defaults")
            return MirrorSettings()

        try:
            with open(self.settings_path, 'r', encoding='utf-8') as f:
                data = json.load(f)
        except (OSError, ValueError) as e:
            raise SettingsError(f"Could not read settings from {self.settings_path}: {e}") from e

        if not isinstance(data, dict):
            raise SettingsError(f"Settings file {self.settings_path} must contain a JSON object")

        return self._from_dict(data)

    def save(self, settings: Optional[MirrorSettings] = None) -> bool:
        """Save settings to disk."""
        settings = settings or self._settings
        if settings is None:
            return False

        try:
            self.settings_path.parent.mkdir(parents=True, exist_ok=True)
            with open(self.settings_path, 'w', encoding='utf-8') as f:
                json.dump(asdict(settings), f, indent=2)
        except OSError as e:
            logging.warning(f"SettingsManager - Could not save settings to {self.settings_path}: {e}")
            return False

        self._settings = settings
        return True

    def _from_dict(self, data: dict[str, Any]) -> MirrorSettings:
        """Convert a dictionary back to settings, ignoring unknown keys."""
        known = {f.name for f in fields(MirrorSettings)}
        unknown = sorted(set(data) - known)
        if unknown:
            logging.warning(f"SettingsManager - Ignoring unknown settings: {', '.join(unknown)}")

        defaults = MirrorSettings()
        exclude_patterns = data.get('exclude_patterns', defaults.exclude_patterns)
        if not isinstance(exclude_patterns, list) or not all(isinstance(p, str) for p in exclude_patterns):
            raise SettingsError("'exclude_patterns' must be a list of strings")

        modify_window = data.get('modify_window', defaults.modify_window)
        if isinstance(modify_window, bool) or not isinstance(modify_window, (int, float)):
            raise SettingsError("'modify_window' must be a number of seconds")
        if modify_window < 0:
            raise SettingsError("'modify_window' must not be negative")

        log_file = data.get('log_file', defaults.log_file)
        if log_file is not None and not isinstance(log_file, str):
            raise SettingsError("'log_file' must be a string")

        flags = {}
        for name in ('include_hidden', 'follow_symlinks', 'preserve_timestamps', 'dry_run', 'stream'):
            value = data.get(name, getattr(defaults, name))
            if not isinstance(value, bool):
                raise SettingsError(f"'{name}' must be true or false")
            flags[name] = value

        log_level = data.get('log_level', defaults.log_level)
        if not isinstance(log_level, str):
            raise SettingsError("'log_level' must be a string")

        return MirrorSettings(
            exclude_patterns=list(exclude_patterns),
            modify_window=float(modify_window),
            log_level=log_level.upper(),
            log_file=log_file,
            **flags,
        )
