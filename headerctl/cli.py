"""
This file is the entry point for the 'headerctl' command-line tool.

headerctl is the caller side of the kheaders core: it decides which kernel
release to work on (argument, build workspace metadata, or the running
kernel) and hands it to discovery / the link manager. Every command prints
a result with a returncode and a message; use --json for one JSON line.
"""
import json
import logging
import os
from pathlib import Path
from typing import Optional

import psutil
import typer

from common.app_setup import print_and_log, print_error, print_warning, setup_logging
from kheaders import metadata
from kheaders.config import CONFIG_ENV, HeadersSettings, load_settings
from kheaders.discovery import DiscoveryEngine
from kheaders.errors import HeadersError, MalformedVersion, NoVerifiedHeaders
from kheaders.symlinks import SymlinkManager
from kheaders.template import TemplateEmitter
from kheaders.verification import check_dkms_compatibility, verify_kernel_installation
from kheaders.version import KernelVersion, parse

app = typer.Typer(add_completion=False, help="Verify kernel header trees by release metadata and repair the DKMS build/source links.")

logger = logging.getLogger("headerctl")

# Processes that may rewrite /lib/modules/<release> while we do.
PACKAGE_WRITERS = ("pacman", "dkms", "kernel-install", "mkinitcpio", "depmod")

ReleaseArg = typer.Argument(None, help="Kernel release (default: the running kernel)")
WorkspaceOpt = typer.Option(None, "--workspace", "-w", help="Take the release from this build workspace's metadata file")
JsonOpt = typer.Option(False, "--json", help="Print the result as one JSON line")


@app.callback()
def main(
    ctx: typer.Context,
    config: Optional[Path] = typer.Option(None, "--config", "-c", envvar=CONFIG_ENV, help="YAML or JSON settings file"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Log debug messages"),
    logfile: Optional[str] = typer.Option(None, help="Log file (default ~/.headerlink/log.txt)"),
    syslog: bool = typer.Option(False, "--syslog", help="Log to syslog instead of a file, for unattended runs"),
):
    setup_logging(app_name="headerlink", daemon=syslog, loglevel=logging.DEBUG if verbose else logging.INFO, logfile=logfile)
    try:
        ctx.obj = load_settings(config)
    except (OSError, ValueError) as e:
        print_error(f"Invalid configuration {config}: {e}")
        raise typer.Exit(2)


def _settings(ctx: typer.Context) -> HeadersSettings:
    return ctx.obj if isinstance(ctx.obj, HeadersSettings) else HeadersSettings()


def _resolve_target(release: Optional[str], workspace: Optional[Path], settings: HeadersSettings) -> KernelVersion:
    if release is None and workspace is not None:
        release = metadata.read_mpl_kernelrelease(workspace, settings.mpl_file, settings.mpl_key)
        if release is None:
            raise MalformedVersion(f"No {settings.mpl_key} recorded in {workspace / settings.mpl_file}")
    if release is None:
        release = os.uname().release
    return parse(release)


def _report(result: dict, as_json: bool):
    """Print the result and exit with its returncode."""
    code = result["returncode"]
    if as_json:
        logger.log(logging.ERROR if code else logging.INFO, result["msg"])
        typer.echo(json.dumps(result, default=str))
    elif code:
        print_error(result["msg"])
    else:
        print_and_log(result["msg"])
    if code:
        raise typer.Exit(code)


def _failure(e: HeadersError, **fields) -> dict:
    return {"returncode": e.exit_code, "msg": e.message, **fields}


def _concurrent_writers() -> list[dict]:
    found = []
    me = os.getpid()
    for proc in psutil.process_iter(['pid', 'name']):
        try:
            if proc.info['name'] in PACKAGE_WRITERS and proc.pid != me:
                found.append({"pid": proc.pid, "name": proc.info['name']})
        except (psutil.NoSuchProcess, psutil.AccessDenied):
            continue
    return found


@app.command()
def discover(ctx: typer.Context, release: Optional[str] = ReleaseArg, workspace: Optional[Path] = WorkspaceOpt, json_output: bool = JsonOpt):
    """Print the header tree whose release metadata matches RELEASE exactly."""
    settings = _settings(ctx)
    try:
        target = _resolve_target(release, workspace, settings)
    except HeadersError as e:
        _report(_failure(e, target=release, path=None), json_output)
        return
    path = DiscoveryEngine(settings).discover(target)
    if path is None:
        _report(_failure(NoVerifiedHeaders(target.full), target=target.full, path=None), json_output)
        return
    _report({"returncode": 0, "msg": f"Verified headers for {target.full}: {path}", "target": target.full, "path": str(path)}, json_output)


@app.command()
def link(
    ctx: typer.Context,
    release: Optional[str] = ReleaseArg,
    module_dir: Optional[Path] = typer.Option(None, help="Module directory (default <modules_root>/<release>)"),
    workspace: Optional[Path] = WorkspaceOpt,
    json_output: bool = JsonOpt,
):
    """Point build/source at the verified header tree, replacing stale links atomically."""
    settings = _settings(ctx)
    writers = _concurrent_writers()
    if writers:
        names = ", ".join(f"{w['name']} ({w['pid']})" for w in writers)
        logger.warning(f"Concurrent package writers running: {names}")
        if not json_output:
            print_warning(f"Package writers running concurrently: {names}")
    try:
        target = _resolve_target(release, workspace, settings)
        entries = SymlinkManager(settings).ensure_symlinks(target, module_dir)
    except HeadersError as e:
        _report(_failure(e, target=release, links=[]), json_output)
        return
    links = [{"link": str(e.link_path), "target": str(e.resolved_target)} for e in entries]
    _report({"returncode": 0, "msg": f"Links for {target.full} verified", "target": target.full, "links": links, "concurrent_writers": writers}, json_output)


@app.command()
def status(
    ctx: typer.Context,
    release: Optional[str] = ReleaseArg,
    module_dir: Optional[Path] = typer.Option(None, help="Module directory (default <modules_root>/<release>)"),
    workspace: Optional[Path] = WorkspaceOpt,
    nvidia_version: Optional[str] = typer.Option(None, "--nvidia-version", help="NVIDIA driver version to check against the kernel (e.g. 590.48.01)"),
    json_output: bool = JsonOpt,
):
    """Report module directory, link and header state for RELEASE; exit 1 unless DKMS-ready."""
    settings = _settings(ctx)
    try:
        target = _resolve_target(release, workspace, settings)
    except HeadersError as e:
        _report(_failure(e, target=release), json_output)
        return
    state = verify_kernel_installation(target, settings, module_dir)
    compat = check_dkms_compatibility(target, nvidia_version)
    if not compat.nvidia_compatible and not json_output:
        print_warning(compat.summary())
    ready = state.ready_for_dkms
    msg = f"Kernel {target.full} is {'ready' if ready else 'NOT ready'} for DKMS"
    result = {
        "returncode": 0 if ready else 1,
        "msg": msg,
        **state.summary(),
        "dkms_compatibility": compat.summary(),
        "nvidia_compatible": compat.nvidia_compatible,
    }
    _report(result, json_output)


@app.command("emit-hook")
def emit_hook(
    ctx: typer.Context,
    output: Optional[Path] = typer.Option(None, "--output", "-o", help="Write here instead of stdout"),
    install_hook: bool = typer.Option(False, "--install-hook", help="Emit a pacman .install body instead of a script"),
):
    """Render the post-install shell hook from the current settings."""
    emitter = TemplateEmitter(_settings(ctx))
    if output is None:
        typer.echo(emitter.render(install_hook), nl=False)
        return
    try:
        emitter.write(output, install_hook)
    except OSError as e:
        print_error(f"Failed to write hook to {output}: {e}")
        raise typer.Exit(3)
    print_and_log(f"Wrote hook to {output}")


@app.command()
def mpl(
    ctx: typer.Context,
    workspace: Path = typer.Argument(..., help="Build workspace holding the metadata file"),
    installed: Optional[str] = typer.Option(None, help="Installed release to compare (default: the running kernel)"),
    json_output: bool = JsonOpt,
):
    """Compare the installed kernel release with the one the build workspace recorded."""
    settings = _settings(ctx)
    expected = metadata.read_mpl_kernelrelease(workspace, settings.mpl_file, settings.mpl_key)
    if expected is None:
        _report({"returncode": 1, "msg": f"No {settings.mpl_key} recorded in {workspace / settings.mpl_file}", "expected": None, "installed": installed}, json_output)
        return
    try:
        current = parse(installed if installed is not None else os.uname().release)
    except HeadersError as e:
        _report(_failure(e, expected=expected, installed=installed), json_output)
        return
    ok = metadata.verify_kernel_against_mpl(current, workspace, settings.mpl_file, settings.mpl_key)
    msg = f"Installed {current.full} {'matches' if ok else 'does not match'} workspace release {expected}"
    if not ok:
        msg = f"{msg}: VERSION MISMATCH"
    _report({"returncode": 0 if ok else 1, "msg": msg, "expected": expected, "installed": current.full}, json_output)


if __name__ == "__main__":
    app()
