"""Check that the build and deploy tools are installed.

Run this before the first deployment to see which of rustup, cargo and the
AWS CLI are missing, and whether the musl target is already installed.
"""

import platform
import shutil
import subprocess
import sys

from .lib.commands import REQUIRED_COMMANDS
from .lib.config import DEFAULT_BUILD_TARGET

MUSL_LINKER = "x86_64-linux-musl-gcc"
MUSL_LINKER_HINT = "brew install filosottile/musl-cross/musl-cross"
MAX_VERSION_LENGTH = 60


def _first_line(cmd: list[str]) -> str | None:
    """Run a probe command and return the first line it prints."""
    try:
        result = subprocess.run(cmd, capture_output=True, text=True, timeout=5)
    except (subprocess.TimeoutExpired, FileNotFoundError):
        return None
    lines = (result.stdout or result.stderr or "").strip().splitlines()
    return lines[0] if lines else None


def tool_version(name: str) -> str | None:
    """Version banner of a tool, truncated for display."""
    version = _first_line([name, "--version"])
    if version and len(version) > MAX_VERSION_LENGTH:
        version = version[:MAX_VERSION_LENGTH] + "..."
    return version


def check_command(name: str, install_hint: str) -> bool:
    """Report whether a required tool is on PATH, with its version."""
    path = shutil.which(name)
    if not path:
        print(f"  ✗ {name} - NOT FOUND")
        print(f"    Install: {install_hint}")
        return False

    print(f"  ✓ {name} - {tool_version(name) or f'found at {path}'}")
    return True


def installed_targets() -> set[str]:
    """Targets reported by `rustup target list --installed`."""
    try:
        result = subprocess.run(
            ["rustup", "target", "list", "--installed"],
            capture_output=True,
            text=True,
            timeout=10,
        )
    except (subprocess.TimeoutExpired, FileNotFoundError):
        return set()
    if result.returncode != 0:
        return set()
    return {line.strip() for line in result.stdout.splitlines() if line.strip()}


def check_rust_target(target: str = DEFAULT_BUILD_TARGET) -> bool:
    """Report whether the cross-compilation target is installed.

    Advisory only: the deploy command adds it on its first step.
    """
    if target in installed_targets():
        print(f"  ✓ {target} - installed")
        return True

    print(f"  ! {target} - not installed yet (deploy will run: rustup target add {target})")
    return False


def check_cross_linker(system: str | None = None) -> bool:
    """Warn when cross-compiling to musl from a non-Linux host without a linker."""
    system = system or platform.system()
    if system == "Linux":
        return True

    if shutil.which(MUSL_LINKER):
        print(f"  ✓ {MUSL_LINKER} - found")
        return True

    print(f"  ! {MUSL_LINKER} - NOT FOUND (needed to link musl binaries on {system})")
    print(f"    Install: {MUSL_LINKER_HINT}")
    return False


def main() -> int:
    """Check all prerequisites and return exit code."""
    print("Checking prerequisites...")
    print()

    all_found = True

    for name, install_hint in REQUIRED_COMMANDS.items():
        if not check_command(name, install_hint):
            all_found = False

    # Target and linker are advisory only
    if shutil.which("rustup"):
        check_rust_target()
    check_cross_linker()

    print()

    if all_found:
        print("All prerequisites found!")
        return 0
    else:
        print("Some prerequisites are missing. Please install them and try again.")
        return 1


if __name__ == "__main__":
    sys.exit(main())
