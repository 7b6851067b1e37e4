import subprocess
import time
from pathlib import Path
from typing import Iterable, Optional

# Name of the adb executable (assumes adb is on PATH)
ADB = "adb"

ADB_TEXT_KW = dict(text=True, encoding="utf-8", errors="ignore")

# Flags that make Android stop asking after a "Don't allow".
# Clearing them is what brings the first-run prompt back.
PERMISSION_USER_FLAGS = ("user-set", "user-fixed")


class AndroidDevice:
    """Very small wrapper around adb.

    I'm keeping this class dumb on purpose:
    - It *only* does actions (tap, launch, dump, reset, etc.)
    - It does NOT know anything about permission scenarios
    The harness/ modules are where the decisions happen.

    Pass `serial` to pin one device when several emulators are attached; that
    is how you run scenarios in parallel (one device per process).
    """

    def __init__(self, serial: Optional[str] = None):
        self.serial = serial

    def _adb(self, *args: str) -> list[str]:
        if self.serial:
            return [ADB, "-s", self.serial, *args]
        return [ADB, *args]

    def _run(self, cmd: list[str], check: bool = True):
        # Pretty-print the command so your screen recording looks clean.
        print(f"[ADB] {' '.join(cmd)}")
        return subprocess.run(cmd, check=check)

    def _run_capture(self, cmd: list[str], check: bool = True) -> subprocess.CompletedProcess:
        """Run a command and capture stdout/stderr.

        We use this for commands where we need to parse output (e.g., resolve
        launcher activity). For normal ADB actions, `_run` is cleaner.
        """
        print(f"[ADB] {' '.join(cmd)}")
        return subprocess.run(cmd, check=check, capture_output=True, **ADB_TEXT_KW)

    # App lifecycle helpers

    def launch_app(self, package: str):
        """Launch an app reliably.

        `adb shell monkey` is convenient, but on some builds it can fail with:
        "No activities found to run" even when the package is installed.

        Strategy:
        1) Try monkey (fast).
        2) If it fails, resolve the LAUNCHER activity via `cmd package resolve-activity`
           and start it explicitly with `am start`.
        """

        proc = self._run_capture(self._adb(
            "shell", "monkey",
            "-p", package,
            "-c", "android.intent.category.LAUNCHER",
            "1",
        ), check=False)
        out = (proc.stdout or "") + (proc.stderr or "")
        if proc.returncode == 0 and "No activities found" not in out:
            time.sleep(2)
            return

        # Fallback: resolve and start the launcher activity explicitly.
        resolved = self._run_capture(self._adb(
            "shell", "cmd", "package", "resolve-activity", "--brief",
            "-c", "android.intent.category.LAUNCHER",
            package,
        ), check=False)

        # Typical output contains a line like: com.example.app/.MainActivity
        lines = ((resolved.stdout or "") + "\n" + (resolved.stderr or "")).splitlines()
        target = None
        for line in lines:
            line = line.strip()
            if "/" in line and package in line:
                target = line
                break

        if not target:
            raise RuntimeError(
                f"Failed to launch {package}. Could not resolve launcher activity. Output: {lines[-10:]}"
            )

        self._run(self._adb(
            "shell", "am", "start", "-W",
            "-n", target,
            "-a", "android.intent.action.MAIN",
            "-c", "android.intent.category.LAUNCHER",
        ))
        time.sleep(2)

    def force_stop(self, package: str):
        self._run(self._adb("shell", "am", "force-stop", package))
        time.sleep(0.5)

    def pm_clear(self, package: str):
        # Wipes app data AND runtime permission grants. Good for "fresh start" runs.
        self._run(self._adb("shell", "pm", "clear", package))
        time.sleep(1.0)

    def reset_permissions(self, package: str, permissions: Iterable[str]):
        """Put runtime permissions back to "not determined" without wiping data."""
        for perm in permissions:
            self._run(self._adb("shell", "pm", "revoke", package, perm), check=False)
            self._run(
                self._adb("shell", "pm", "clear-permission-flags", package, perm, *PERMISSION_USER_FLAGS),
                check=False,
            )

    # Basic input

    def tap(self, x: int, y: int):
        self._run(self._adb("shell", "input", "tap", str(x), str(y)))
        time.sleep(0.4)

    def sleep_ms(self, ms: int):
        time.sleep(ms / 1000.0)

    # Screens + UI hierarchy

    def screenshot(self, path: str) -> Path:
        """Save a screencap PNG at `path` (parent dirs are created)."""
        p = Path(path)
        p.parent.mkdir(parents=True, exist_ok=True)

        # exec-out avoids line ending corruption
        with open(p, "wb") as f:
            subprocess.run(self._adb("exec-out", "screencap", "-p"), stdout=f, check=True)

        return p

    def ui_dump(self) -> str:
        remote = "/sdcard/window_dump.xml"
        try:
            subprocess.run(
                self._adb("shell", "uiautomator", "dump", remote),
                capture_output=True,
                timeout=5,
                **ADB_TEXT_KW,
            )
            p = subprocess.run(
                self._adb("shell", "cat", remote),
                capture_output=True,
                timeout=5,
                **ADB_TEXT_KW,
            )

            return (p.stdout or "").strip()
        except subprocess.TimeoutExpired:
            return ""
        except OSError:
            return ""
