"""OS process lookup for the detached server daemon.

The daemon is launched detached, so it is found again by name plus the
``test-id=<token>`` world parameter it was started with.
"""

from __future__ import annotations

from pathlib import Path

import psutil
import structlog

from dmtest.config.constants import CORRELATION_PARAM
from dmtest.core.errors import RunError

logger = structlog.get_logger()


def _normalize(name: str) -> str:
    """``DreamDaemon.exe`` and ``dreamdaemon`` compare equal."""
    base = Path(name).name.lower()
    return base.removesuffix(".exe")


def _matches_name(info: dict[str, object], wanted: str) -> bool:
    name = info.get("name")
    if isinstance(name, str) and _normalize(name) == wanted:
        return True
    cmdline = info.get("cmdline") or []
    return bool(cmdline) and _normalize(str(cmdline[0])) == wanted  # type: ignore[index]


def find_daemon_processes(process_name: str, token: int) -> list[psutil.Process]:
    """Return every running process named ``process_name`` tagged with ``token``.

    Processes that exit or deny access while the table is scanned are skipped.
    """
    wanted = _normalize(process_name)
    needle = f"{CORRELATION_PARAM}={token}"
    matches: list[psutil.Process] = []
    for proc in psutil.process_iter(["pid", "name", "cmdline"]):
        try:
            info = proc.info
            if not _matches_name(info, wanted):
                continue
            if needle in (info.get("cmdline") or []):
                matches.append(proc)
        except (psutil.NoSuchProcess, psutil.AccessDenied, psutil.ZombieProcess):
            continue
    return matches


def kill_daemon(process_name: str, token: int) -> bool:
    """Kill the daemon started with ``token``. Returns True if a process was killed.

    Raises:
        RunError: More than one process carries the token.
    """
    matches = find_daemon_processes(process_name, token)
    if not matches:
        logger.info("daemon_process_not_found", process_name=process_name, token=token)
        return False
    if len(matches) > 1:
        raise RunError.duplicate_process(process_name, token, [p.pid for p in matches])

    proc = matches[0]
    try:
        proc.kill()
    except psutil.NoSuchProcess:
        logger.debug("daemon_already_exited", pid=proc.pid)
        return False
    logger.info("daemon_killed", pid=proc.pid, token=token)
    return True


def kill_process_tree(pid: int) -> list[int]:
    """Kill ``pid`` and every descendant. Returns the pids that were signalled.

    Descendants are collected before the parent dies, since orphans are
    reparented and can no longer be found through it.
    """
    try:
        parent = psutil.Process(pid)
        victims = [parent, *parent.children(recursive=True)]
    except psutil.NoSuchProcess:
        return []

    killed: list[int] = []
    for proc in victims:
        try:
            proc.kill()
        except (psutil.NoSuchProcess, psutil.AccessDenied):
            continue
        killed.append(proc.pid)
    return killed
