"""
线性脚本解释器（旧格式 {"steps": [...]}）

从 START 步骤开始，沿 next 指针逐步执行，显式循环而非递归。
步骤类型：START / CLICK / WAIT / LOOP / LOOP_END / CONDITION / VARIABLE / TOAST / SYSTEM / STOP，
未知类型记录警告后继续。变量以字符串保存。
"""
from __future__ import annotations

import threading
from typing import Any, Callable, Dict, List, Optional

from ...core.clock import Clock
from ...core.logger import logger
from ..action.types import Stroke
from ..scene.loader import ScriptLoadError, parse_document

CLICK_HOLD_MS = 50
CLICK_SETTLE_MS = 500
TOAST_DELAY_MS = 1000
SYSTEM_DELAY_MS = 500
DEFAULT_MAX_STEPS = 10000

Step = Dict[str, Any]


def _to_int(value: Any, default: int = 0) -> int:
    try:
        return int(str(value).strip())
    except (TypeError, ValueError):
        return default


class LinearScriptRunner:
    def __init__(
        self,
        device,
        *,
        clock: Optional[Clock] = None,
        notifier: Optional[Callable[[str], None]] = None,
        max_steps: int = DEFAULT_MAX_STEPS,
    ) -> None:
        self.device = device
        self.clock = clock or Clock()
        self.max_steps = max_steps
        self.variables: Dict[str, str] = {}
        self._stop_event = threading.Event()
        self._thread: Optional[threading.Thread] = None
        self._log = logger.bind(module="LinearScriptRunner")
        self.notifier = notifier or (lambda msg: self._log.info("[提示] {}", msg))

    # ── 生命周期 ──

    def start(self, script: Any) -> bool:
        if self._thread is not None and self._thread.is_alive():
            self._log.warning("线性脚本已在运行，忽略重复启动")
            return False
        try:
            steps = self.load(script)
        except ScriptLoadError as e:
            self._log.error("脚本加载失败: {}", e)
            self.notifier(f"脚本执行失败: {e}")
            return False
        self._stop_event.clear()
        self._thread = threading.Thread(target=self.run, args=(steps,), name="LinearScriptRunner", daemon=True)
        self._thread.start()
        return True

    def stop(self) -> None:
        self._stop_event.set()
        self._log.info("脚本引擎停止")

    def join(self, timeout: Optional[float] = None) -> bool:
        if self._thread is None:
            return True
        self._thread.join(timeout=timeout)
        return not self._thread.is_alive()

    @staticmethod
    def load(script: Any) -> List[Step]:
        doc = parse_document(script) if isinstance(script, str) else script
        steps = doc.get("steps") if isinstance(doc, dict) else None
        if not isinstance(steps, list):
            raise ScriptLoadError("线性脚本缺少 steps")
        return [s for s in steps if isinstance(s, dict)]

    # ── 执行 ──

    def run(self, script: Any) -> int:
        """同步执行，返回执行的步骤数"""
        steps = script if isinstance(script, list) else self.load(script)
        by_id = {str(s.get("id")): s for s in steps}
        start = next((s for s in steps if s.get("type") == "START"), None)
        self.variables = {}
        self._log.info("总步骤数: {}", len(steps))
        if start is None:
            self._log.warning("找不到 START 步骤，不执行")
            return 0

        executed = 0
        step: Optional[Step] = start
        while step is not None and not self._stop_event.is_set():
            if executed >= self.max_steps:
                self._log.error("步骤数超过上限 {}，中止执行", self.max_steps)
                break
            executed += 1
            next_id = self._execute(step)
            step = by_id.get(str(next_id)) if next_id is not None else None

        self._log.info("脚本执行完毕 ({} 步)", executed)
        self.notifier("脚本执行完毕")
        return executed

    def _sleep(self, ms: float) -> bool:
        return self.clock.sleep(ms, self._stop_event)

    def _execute(self, step: Step) -> Optional[str]:
        """执行单步，返回下一步 id；None 表示结束"""
        step_type = str(step.get("type", "")).upper()
        step_id = str(step.get("id", ""))
        params = step.get("params") or {}
        branches = step.get("branches") or {}
        nxt = step.get("next")
        self._log.debug("执行步骤: {} ({})", step_id, step_type)

        if step_type == "START":
            return nxt
        if step_type == "CLICK":
            if params:
                self._click(float(params.get("x_percent", 0.5)), float(params.get("y_percent", 0.5)))
                self._sleep(CLICK_SETTLE_MS)
            return nxt
        if step_type == "WAIT":
            self._sleep(_to_int(params.get("duration"), 1000))
            return nxt
        if step_type == "LOOP":
            counter = f"loop_{step_id}_count"
            current = _to_int(self.variables.get(counter), 0)
            if current < _to_int(params.get("count"), 1):
                self.variables[counter] = str(current + 1)
                return nxt
            self.variables.pop(counter, None)
            return branches.get("done")
        if step_type == "LOOP_END":
            return nxt
        if step_type == "CONDITION":
            return nxt if self._condition(params) else branches.get("false")
        if step_type == "VARIABLE":
            self._variable(params)
            return nxt
        if step_type == "TOAST":
            self.notifier(str(params.get("message", "Toast")))
            self._sleep(TOAST_DELAY_MS)
            return nxt
        if step_type == "SYSTEM":
            command = str(params.get("command", "home")).lower()
            self.device.press_key(command)
            self._sleep(SYSTEM_DELAY_MS)
            return nxt
        if step_type == "STOP":
            self._log.info("脚本停止")
            return None

        self._log.warning("未知步骤类型: {}", step_type)
        return nxt

    def _click(self, x_percent: float, y_percent: float) -> None:
        screen_w, screen_h = self.device.screen_size()
        x = min(max(screen_w * x_percent, 0.0), screen_w - 1.0)
        y = min(max(screen_h * y_percent, 0.0), screen_h - 1.0)
        self.device.dispatch_gesture([Stroke(path=[(x, y)], duration_ms=CLICK_HOLD_MS)])
        self._log.debug("点击坐标: ({}, {})", int(x), int(y))

    def _condition(self, params: Dict[str, Any]) -> bool:
        cond_type = params.get("type", "prev_status")
        if cond_type != "variable":
            return True
        actual = self.variables.get(str(params.get("var_key", "")), "0")
        op = params.get("var_op", "==")
        expected = str(params.get("var_val", ""))
        if op == "==":
            return actual == expected
        if op == "!=":
            return actual != expected
        if op in (">", "<"):
            try:
                left = int(actual)
            except ValueError:
                return False
            right = _to_int(expected, 0)
            return left > right if op == ">" else left < right
        return False

    def _variable(self, params: Dict[str, Any]) -> None:
        if not params:
            return
        key = str(params.get("key", ""))
        op = params.get("op", "set")
        value = str(params.get("value", "0"))
        if op == "set":
            self.variables[key] = value
        elif op == "add":
            self.variables[key] = str(_to_int(self.variables.get(key), 0) + _to_int(value, 0))
        elif op == "sub":
            self.variables[key] = str(_to_int(self.variables.get(key), 0) - _to_int(value, 0))
        self._log.debug("变量更新: {} = {}", key, self.variables.get(key))


__all__ = ["LinearScriptRunner"]
