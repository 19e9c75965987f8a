"""
Routing Rules Manager
=====================

Loads the deterministic routing table from YAML and hot-reloads it.

The file is optional: without it the built-in rule table applies. A reload
that fails to parse or validate keeps the previous table.
"""

import threading
from pathlib import Path
from typing import Optional

import yaml
from pydantic import ValidationError
from watchdog.events import FileSystemEventHandler
from watchdog.observers import Observer

from issue_intake.shared.infrastructure.logging import get_logger
from issue_intake.triage.domain import DeterministicRouter, RoutingConfig

logger = get_logger(__name__)


class RulesFileHandler(FileSystemEventHandler):
    """Watchdog event handler for routing rules file changes."""

    def __init__(self, rules_manager: "RoutingRulesManager", rules_path: Path):
        self.rules_manager = rules_manager
        self.rules_path = rules_path
        super().__init__()

    def on_modified(self, event):
        if event.is_directory:
            return
        if Path(event.src_path).resolve() == self.rules_path.resolve():
            logger.info("Routing rules file changed", extra={"path": str(event.src_path)})
            self.rules_manager.reload()


class RoutingRulesManager:
    """
    Thread-safe routing configuration with hot-reload support.

    A new router is built on every successful load, so a triage run that
    already holds a router is unaffected by a reload.
    """

    def __init__(self):
        self._config: Optional[RoutingConfig] = None
        self._router: Optional[DeterministicRouter] = None
        self._lock = threading.Lock()
        self._path: Optional[Path] = None
        self._observer = None

    def load(self, path: Path) -> RoutingConfig:
        """Initial configuration load; a broken file fails startup."""
        self._path = Path(path)
        config = self._load_from_file(self._path)
        self._swap(config)
        return config

    def _load_from_file(self, path: Path) -> RoutingConfig:
        if not path.exists():
            logger.info("Routing rules file not found, using built-in rules", extra={"path": str(path)})
            return RoutingConfig()

        with open(path, "r") as f:
            data = yaml.safe_load(f) or {}

        if not isinstance(data, dict):
            raise ValueError(f"Routing rules file must contain a mapping: {path}")
        return RoutingConfig(**data)

    def _swap(self, config: RoutingConfig) -> None:
        with self._lock:
            self._config = config
            self._router = DeterministicRouter(config)

    def reload(self) -> bool:
        """Reload configuration from file."""
        if self._path is None:
            return False

        try:
            config = self._load_from_file(self._path)
        except (OSError, yaml.YAMLError, ValidationError, ValueError, TypeError) as e:
            logger.error("Failed to reload routing rules, keeping previous table", extra={"error": str(e)})
            return False

        self._swap(config)
        logger.info("Routing rules reloaded", extra={"rules": len(config.rules)})
        return True

    def start_watching(self) -> None:
        """
        Start watching the rules file for changes.

        Skipped when the file doesn't exist or the platform can't watch it.
        """
        if self._path is None:
            raise RuntimeError("Routing rules not loaded. Call load() first.")

        if not self._path.exists():
            logger.info("Routing rules file absent, skipping file watch", extra={"path": str(self._path)})
            return

        try:
            self._observer = Observer()
            handler = RulesFileHandler(self, self._path)
            self._observer.schedule(handler, str(self._path.parent), recursive=False)
            self._observer.start()
            logger.info("Watching routing rules file", extra={"path": str(self._path)})
        except OSError as e:
            logger.warning("File watching not available, using static rules", extra={"error": str(e)})
            self._observer = None

    def stop_watching(self) -> None:
        """Stop watching (safe to call even if not watching)."""
        if self._observer is not None:
            self._observer.stop()
            self._observer.join(timeout=5)
            self._observer = None

    @property
    def config(self) -> RoutingConfig:
        if self._config is None:
            raise RuntimeError("Routing rules not loaded")
        return self._config

    @property
    def router(self) -> DeterministicRouter:
        """Router for the current table."""
        with self._lock:
            if self._router is None:
                raise RuntimeError("Routing rules not loaded")
            return self._router
