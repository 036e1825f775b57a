"""Server daemon launch, completion detection and teardown."""

from dmtest.daemon.lifecycle import DaemonProcess, DaemonState, run_daemon
from dmtest.daemon.processes import find_daemon_processes, kill_daemon, kill_process_tree
from dmtest.daemon.watcher import LogWatcher

__all__ = [
    "DaemonProcess",
    "DaemonState",
    "LogWatcher",
    "find_daemon_processes",
    "kill_daemon",
    "kill_process_tree",
    "run_daemon",
]
