"""Core Typer application and logging bootstrap for the ladderfill CLI package."""

from __future__ import annotations

import logging
import os
import sys
from logging.handlers import RotatingFileHandler
from typing import Any

import typer

from ladderfill.config import settings

from .help_text import VERBOSE_COMMAND_HELP, VERBOSE_GLOBAL_OVERVIEW


class CLIApp(typer.Typer):
    """Typer application with a ``--help-verbose`` command catalog."""

    # ------------------------------------------------------------------
    def _unique_commands(self) -> dict[str, dict[str, Any]]:
        """Return mapping of canonical command names to command/aliases."""

        mapping: dict[str, dict[str, Any]] = {}
        for info in self.registered_commands:
            name = info.name or (info.callback.__name__ if info.callback else "")
            canonical = name.replace("_", ":")
            entry = mapping.setdefault(canonical, {"command": info, "aliases": []})
            entry["aliases"].append(name)
        return mapping

    def __call__(self, *args: Any, **kwargs: Any) -> Any:
        argv = list(kwargs.get("args") or sys.argv[1:])
        if "--help-verbose" in argv:
            idx = argv.index("--help-verbose")
            target = None
            if idx > 0:
                for cname, info in self._unique_commands().items():
                    if argv[0] == cname or argv[0] in info["aliases"]:
                        target = cname
                        break
            self._print_verbose_help(target)
            raise SystemExit(0)
        return super().__call__(*args, **kwargs)

    # ------------------------------------------------------------------
    def _print_verbose_help(self, command: str | None = None) -> None:
        """Print detailed command reference with optional command filtering."""

        typer.echo(VERBOSE_GLOBAL_OVERVIEW.strip())
        typer.echo()

        if command:
            text = VERBOSE_COMMAND_HELP.get(command)
            if text:
                typer.echo(text.rstrip())
            else:
                typer.echo(f"No verbose help available for '{command}'.")
            return

        for cname, info in sorted(self._unique_commands().items()):
            text = VERBOSE_COMMAND_HELP.get(cname)
            if not text:
                continue
            typer.echo(text.rstrip())
            aliases = [
                alias.replace("_", ":")
                for alias in info["aliases"]
                if alias.replace("_", ":") != cname
            ]
            if aliases:
                typer.echo(f"  Aliases: {', '.join(sorted(set(aliases)))}")
            typer.echo()


app = CLIApp(no_args_is_help=True, add_completion=False)
log = logging.getLogger("ladderfill")

# Configure logging once with console + optional rotating file handler
if not getattr(log, "_configured", False):
    log.setLevel(getattr(logging, str(settings.log_level).upper(), logging.INFO))
    log.propagate = False
    fmt = logging.Formatter("%(asctime)s %(levelname)s %(name)s: %(message)s")
    ch = logging.StreamHandler()
    ch.setLevel(log.level)
    ch.setFormatter(fmt)
    log.addHandler(ch)
    log_path = getattr(settings, "log_file", None)
    if log_path:
        try:
            directory = os.path.dirname(log_path)
            if directory:
                os.makedirs(directory, exist_ok=True)
            fh = RotatingFileHandler(
                log_path,
                maxBytes=int(settings.log_max_bytes or 1_000_000),
                backupCount=int(settings.log_backup_count or 3),
            )
            fh.setLevel(log.level)
            fh.setFormatter(fmt)
            log.addHandler(fh)
        except OSError as exc:
            log.warning("file logging disabled (%s): %s", log_path, exc)
    setattr(log, "_configured", True)

__all__ = ["CLIApp", "app", "log"]
