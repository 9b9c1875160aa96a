"""reposcanner daemon - startup scan, change watching and update dispatch."""

from reposcanner.daemon.dispatcher import Dispatcher
from reposcanner.daemon.lifecycle import ScannerController, run_scanner
from reposcanner.daemon.watcher import WATCH_PROFILES, ChangeWatcher, WatchPlatform

__all__ = [
    "WATCH_PROFILES",
    "ChangeWatcher",
    "Dispatcher",
    "ScannerController",
    "WatchPlatform",
    "run_scanner",
]
