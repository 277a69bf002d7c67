"""
ADB 封装

基于 adb 可执行文件，提供引擎需要的基础操作：
- connect(addr)
- screencap(addr) -> PNG bytes
- swipe(addr, x1, y1, x2, y2, dur_ms)   点击即零位移滑动
- motion(addr, events)                  input motionevent DOWN/MOVE/UP 连续手势
- keyevent(addr, code)
- foreground_package(addr)
- start_app_monkey(addr, pkg)
- window_size(addr)
"""
from __future__ import annotations

import re
import subprocess
from typing import List, Optional, Sequence, Tuple

KEYCODES = {
    "back": 4,
    "home": 3,
    "recent": 187,
}

# mCurrentFocus=Window{... u0 com.pkg/com.pkg.MainActivity}
_FOCUS_RE = re.compile(r"mCurrentFocus=Window\{[^}]*?\s([\w.]+)/[\w.$]+\}")
_FOCUSED_APP_RE = re.compile(r"mFocusedApp=.*?\s([\w.]+)/[\w.$]+")
_SIZE_RE = re.compile(r"(\d+)x(\d+)")


class AdbError(RuntimeError):
    pass


class Adb:
    def __init__(self, adb_path: str = "adb") -> None:
        self.adb = adb_path

    def _run(self, args: List[str], timeout: float = 10.0) -> subprocess.CompletedProcess:
        try:
            cp = subprocess.run(
                [self.adb, *args],
                stdout=subprocess.PIPE,
                stderr=subprocess.PIPE,
                timeout=timeout,
            )
        except FileNotFoundError as e:
            raise AdbError(f"找不到 ADB 可执行文件: {self.adb}") from e
        except subprocess.TimeoutExpired as e:
            raise AdbError(f"ADB 命令超时: {' '.join(args)}") from e
        return cp

    def _check(self, cp: subprocess.CompletedProcess) -> None:
        if cp.returncode != 0:
            raise AdbError((cp.stderr or b"").decode(errors="ignore"))

    def connect(self, addr: str, timeout: float = 10.0) -> bool:
        cp = self._run(["connect", addr], timeout=timeout)
        out = (cp.stdout or b"").decode(errors="ignore").lower()
        return cp.returncode == 0 and ("connected" in out or "already" in out)

    def screencap(self, addr: str, timeout: float = 2.0) -> bytes:
        cp = self._run(["-s", addr, "exec-out", "screencap", "-p"], timeout=timeout)
        self._check(cp)
        return cp.stdout or b""

    def swipe(self, addr: str, x1: int, y1: int, x2: int, y2: int, dur_ms: int = 300, timeout: float = 10.0) -> None:
        cp = self._run(
            ["-s", addr, "shell", "input", "swipe", str(x1), str(y1), str(x2), str(y2), str(dur_ms)],
            timeout=timeout,
        )
        self._check(cp)

    def motion(self, addr: str, events: Sequence[Tuple[str, int, int, int]], timeout: float = 10.0) -> None:
        """在一次 shell 调用中依次注入 motionevent（DOWN / MOVE / UP）

        每个事件为 (action, x, y, delay_ms)，delay_ms 为注入该事件前的停顿。
        """
        if not events:
            return
        parts: List[str] = []
        for action, x, y, delay_ms in events:
            if delay_ms > 0:
                parts.append(f"sleep {delay_ms / 1000:g}")
            parts.append(f"input motionevent {action} {x} {y}")
        cmd = "; ".join(parts)
        total_ms = sum(e[3] for e in events)
        cp = self._run(["-s", addr, "shell", cmd], timeout=timeout + total_ms / 1000)
        self._check(cp)

    def keyevent(self, addr: str, code: int, timeout: float = 10.0) -> None:
        cp = self._run(["-s", addr, "shell", "input", "keyevent", str(code)], timeout=timeout)
        self._check(cp)

    def foreground_package(self, addr: str, timeout: float = 5.0) -> Optional[str]:
        cp = self._run(["-s", addr, "shell", "dumpsys", "window"], timeout=timeout)
        if cp.returncode != 0:
            return None
        text = (cp.stdout or b"").decode(errors="ignore")
        m = _FOCUS_RE.search(text) or _FOCUSED_APP_RE.search(text)
        return m.group(1) if m else None

    def start_app_monkey(self, addr: str, pkg: str, timeout: float = 10.0) -> None:
        cp = self._run([
            "-s", addr, "shell", "monkey",
            "-p", pkg,
            "-c", "android.intent.category.LAUNCHER",
            "1"
        ], timeout=timeout)
        out = (cp.stdout or b"").decode(errors="ignore").lower() + (cp.stderr or b"").decode(errors="ignore").lower()
        # monkey 返回码可能为 0 但未真正注入事件；检测不到 "events injected" 则尝试 am start
        if cp.returncode != 0 or ("events injected" not in out):
            cp2 = self._run([
                "-s", addr, "shell", "am", "start",
                "-a", "android.intent.action.MAIN",
                "-c", "android.intent.category.LAUNCHER",
                pkg
            ], timeout=timeout)
            self._check(cp2)

    def window_size(self, addr: str, timeout: float = 5.0) -> Optional[Tuple[int, int]]:
        cp = self._run(["-s", addr, "shell", "wm", "size"], timeout=timeout)
        if cp.returncode != 0:
            return None
        text = (cp.stdout or b"").decode(errors="ignore")
        # Override size 优先于 Physical size
        matches = _SIZE_RE.findall(text)
        if not matches:
            return None
        w, h = matches[-1]
        return int(w), int(h)
