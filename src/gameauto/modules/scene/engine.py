"""
SceneGraphEngine：场景图状态机

单个工作线程循环执行 step()：
1. 前台守卫：前台应用不是目标应用时重新拉起并跳过本轮
2. 截图：失败则退避
3. 过渡等待：预测跳转尚未被画面确认时，等待 / 周期性重试触发动作 / 超过上限放弃
4. 场景识别：全局场景 > 当前场景（锚点命中或宽限期内） > 邻居 / 根 / 上一场景 > 盲信无锚点场景
5. 决策：过滤禁用 / 调度 / 条件 / 触发，按优先级取第一个
6. 执行：动作 + 副作用 + 执行记录
7. 预测跳转：直接切换到目标场景，由第 3 步纠错

start()/stop() 是唯一的跨线程入口，由锁互斥；停止为协作式，循环顶部与分片休眠中都会检查。
"""
from __future__ import annotations

import threading
from typing import Any, Callable, Dict, List, Optional, Union

import numpy as np

from ...core.clock import Clock
from ...core.config import settings
from ...core.constants import ActionType, EngineState, SideEffectType, StepOutcome
from ...core.logger import logger
from ..action.system import ActionSystem
from .loader import ScriptLoadError, parse_script
from .models import Region, SceneNode, ScriptGraph, SideEffect
from .perception import PerceptionSystem
from .scheduling import ExecutionHistory, is_schedule_ready
from .types import EngineRuntimeState, EngineTuning

ScriptInput = Union[str, Dict[str, Any], ScriptGraph]


class SceneGraphEngine:
    def __init__(
        self,
        device,
        *,
        perception: Optional[PerceptionSystem] = None,
        actions: Optional[ActionSystem] = None,
        clock: Optional[Clock] = None,
        tuning: Optional[EngineTuning] = None,
        notifier: Optional[Callable[[str], None]] = None,
        status: Optional[Callable[[str], None]] = None,
    ) -> None:
        self.device = device
        self.clock = clock or Clock()
        self.tuning = tuning or EngineTuning.from_settings()
        self.perception = perception or PerceptionSystem()
        self._stop_event = threading.Event()
        self.actions = actions or ActionSystem(
            device, clock=self.clock, status=status, stop_event=self._stop_event
        )
        self._log = logger.bind(module="SceneGraphEngine")
        self.notifier = notifier or self._log_notice
        self._lock = threading.Lock()
        self._thread: Optional[threading.Thread] = None
        self._state = EngineState.IDLE
        self.graph: Optional[ScriptGraph] = None
        self.origin_app: Optional[str] = None
        self._runtime = EngineRuntimeState()
        self._history = ExecutionHistory()

    def _log_notice(self, message: str) -> None:
        self._log.warning("[通知] {}", message)

    # ── 状态 ──

    @property
    def state(self) -> EngineState:
        return self._state

    @property
    def is_running(self) -> bool:
        return self._state == EngineState.RUNNING

    @property
    def runtime(self) -> EngineRuntimeState:
        return self._runtime

    @property
    def history(self) -> ExecutionHistory:
        return self._history

    @property
    def variables(self) -> Dict[str, int]:
        return self._runtime.variables

    @property
    def current_scene(self) -> Optional[SceneNode]:
        if self.graph is None:
            return None
        return self.graph.node(self._runtime.current_scene_id)

    # ── 生命周期 ──

    def load(self, script: ScriptInput, origin_app: Optional[str] = None) -> ScriptGraph:
        """解析脚本并初始化运行期状态（不启动线程）

        Raises:
            ScriptLoadError: 脚本无法解析或没有根场景
        """
        graph = script if isinstance(script, ScriptGraph) else parse_script(script)
        root = graph.root_node
        if root is None:
            raise ScriptLoadError("脚本没有根场景")
        self.graph = graph
        self._runtime = EngineRuntimeState(
            current_scene_id=root.id,
            variables=dict(graph.variables),
        )
        self._history = ExecutionHistory()
        self.origin_app = origin_app or graph.package_name or settings.pkg_name or self._foreground()
        self._log.info(
            "脚本 [{}] 就绪: 根场景 {}，目标应用 {}",
            graph.name, root.display_name, self.origin_app or "-",
        )
        return graph

    def start(self, script: ScriptInput, origin_app: Optional[str] = None) -> bool:
        with self._lock:
            if self._state == EngineState.RUNNING:
                self._log.warning("引擎已在运行，忽略重复启动")
                return False
            if self._thread is not None and self._thread.is_alive():
                self._thread.join(timeout=self.tuning.worker_join_timeout_sec)
                if self._thread.is_alive():
                    self._log.error("上一个工作线程尚未退出，拒绝启动")
                    return False
            try:
                self.load(script, origin_app)
            except ScriptLoadError as e:
                self._log.error("脚本加载失败: {}", e)
                self._state = EngineState.IDLE
                self.notifier(f"脚本加载失败: {e}")
                return False

            self._stop_event.clear()
            self._state = EngineState.RUNNING
            self._thread = threading.Thread(target=self._run_loop, name="SceneGraphEngine", daemon=True)
            self._thread.start()
            return True

    def stop(self) -> None:
        with self._lock:
            if self._state != EngineState.RUNNING:
                return
            self._state = EngineState.STOPPING
            self._stop_event.set()
            self._log.info("正在停止引擎 ...")

    def join(self, timeout: Optional[float] = None) -> bool:
        """等待工作线程退出；返回线程是否已结束"""
        thread = self._thread
        if thread is None:
            return True
        thread.join(timeout=timeout)
        return not thread.is_alive()

    def _run_loop(self) -> None:
        self._log.info("引擎启动")
        try:
            if not self._sleep(self.tuning.warmup_ms):
                return
            root = self.graph.root_node
            self._runtime.current_scene_id = root.id
            self._log.info("初始场景: {}", root.display_name)
            while not self._stop_event.is_set():
                try:
                    self.step()
                except Exception as e:
                    self._log.exception("循环异常: {}", e)
                    self._sleep(self.tuning.error_backoff_ms)
        finally:
            self.perception.clear_cache()
            self._history.clear()
            self._runtime = EngineRuntimeState()
            self._state = EngineState.IDLE
            self._log.info("引擎已停止")

    def _sleep(self, ms: float) -> bool:
        return self.clock.sleep(ms, self._stop_event)

    def _foreground(self) -> Optional[str]:
        try:
            return self.device.foreground_app()
        except Exception as e:
            self._log.debug("获取前台应用失败: {}", e)
            return None

    # ── 单轮 ──

    def step(self) -> StepOutcome:
        if self.graph is None:
            raise RuntimeError("脚本未加载")
        rt = self._runtime

        # 1. 前台守卫
        if self.origin_app:
            foreground = self._foreground()
            if foreground is not None and foreground != self.origin_app:
                self._log.warning("前台应用偏离: {} (目标 {})，重新启动", foreground, self.origin_app)
                self.device.launch_app(self.origin_app)
                self._sleep(self.tuning.relaunch_backoff_ms)
                return StepOutcome.OFF_TARGET

        # 2. 截图
        try:
            screen = self.device.capture_screen()
        except Exception as e:
            self._log.warning("截图异常: {}", e)
            screen = None
        if screen is None:
            self._sleep(self.tuning.capture_backoff_ms)
            return StepOutcome.CAPTURE_FAILED

        # 3. 过渡等待
        if rt.transition_pending and self._await_transition(screen):
            return StepOutcome.WAITING_TRANSITION

        # 4. 场景识别
        scene = self._identify(screen)
        if scene is None:
            rt.lost_frame_count += 1
            if rt.lost_frame_count >= self.tuning.lost_frame_limit:
                root = self.graph.root_node
                self._log.warning("连续 {} 帧无法识别场景，重置到根场景 {}", rt.lost_frame_count, root.display_name)
                self._reset_to(root)
            self._sleep(self.tuning.loop_interval_ms)
            return StepOutcome.LOST
        rt.lost_frame_count = 0
        if scene.id != rt.current_scene_id:
            self._log.info("场景切换: {} -> {}", self._name_of(rt.current_scene_id), scene.display_name)
            rt.previous_scene_id = rt.current_scene_id
            rt.current_scene_id = scene.id

        # 5. 决策
        region = self._decide(screen, scene)
        if region is None:
            self._sleep(self.tuning.idle_interval_ms)
            return StepOutcome.IDLE

        # 6. 执行
        self._act(scene, region)

        # 7. 预测跳转
        target = region.target
        if target and target != scene.id:
            if self.graph.node(target) is None:
                self._log.warning("区域 [{}] 的跳转目标不存在: {}", region.display_name, target)
            else:
                rt.begin_transition(scene.id, target, region.id, self.clock.now_ms())
                self._log.info("预测跳转: {} -> {}", scene.display_name, self._name_of(target))

        self._sleep(self.tuning.loop_interval_ms)
        return StepOutcome.ACTED

    def _name_of(self, node_id: Optional[str]) -> str:
        node = self.graph.node(node_id) if self.graph else None
        return node.display_name if node else str(node_id)

    def _reset_to(self, node: SceneNode) -> None:
        rt = self._runtime
        rt.previous_scene_id = rt.current_scene_id
        rt.current_scene_id = node.id
        rt.lost_frame_count = 0
        rt.last_transition_time = None
        rt.end_transition()

    def _in_grace(self) -> bool:
        last = self._runtime.last_transition_time
        return last is not None and self.clock.now_ms() - last < self.tuning.transition_grace_ms

    def _active(self, screen: np.ndarray, node: SceneNode) -> bool:
        return self.perception.is_state_active(screen, node, self._runtime.variables, verbose=False)

    # ── 过渡等待 ──

    def _await_transition(self, screen: np.ndarray) -> bool:
        """返回 True 表示仍在等待，本轮到此结束"""
        rt = self._runtime
        target = self.graph.node(rt.current_scene_id)
        if target is None:
            rt.end_transition()
            return False
        if not target.anchors or self._active(screen, target):
            self._log.info("跳转确认: {}", target.display_name)
            rt.end_transition()
            return False

        rt.transition_stuck_count += 1
        checks = rt.transition_stuck_count
        if checks > self.tuning.stuck_max_checks:
            self._log.warning("跳转到 {} 等待超时 ({} 次检查)，放弃等待", target.display_name, checks - 1)
            rt.end_transition()
            rt.last_transition_time = None
            return False

        previous = self.graph.node(rt.previous_scene_id)
        if previous is not None and previous.anchors and self._active(screen, previous):
            self._log.warning("跳转卡住: 仍在 {} (第 {} 次检查)", previous.display_name, checks)
        else:
            self._log.debug("跳转过渡中: 等待 {} (第 {} 次检查)", target.display_name, checks)

        if checks % self.tuning.stuck_retry_every == 0:
            self._retry_last_action()

        rt.last_transition_time = self.clock.now_ms()
        self._sleep(self.tuning.transition_check_interval_ms)
        return True

    def _retry_last_action(self) -> None:
        last = self._runtime.last_transition_action
        if last is None:
            return
        scene_id, region_id = last
        scene = self.graph.node(scene_id)
        if scene is None:
            return
        for region in scene.regions:
            if region.id == region_id:
                self._log.warning("重试跳转动作: [{}] {}", scene.display_name, region.display_name)
                self.actions.perform_action(region.action, region, scene.resolution)
                return

    # ── 场景识别 ──

    def _identify(self, screen: np.ndarray) -> Optional[SceneNode]:
        graph = self.graph
        rt = self._runtime

        for node in graph.global_nodes:
            if self._active(screen, node):
                return node

        current = graph.node(rt.current_scene_id)
        if current is None:
            current = graph.root_node
            rt.current_scene_id = current.id
        if current.anchors and not current.is_global and self._active(screen, current):
            return current
        if self._in_grace():
            return current

        checked = {current.id}
        checked.update(n.id for n in graph.global_nodes)
        candidates: List[str] = current.neighbor_ids() + [graph.root_node.id]
        if rt.previous_scene_id:
            candidates.append(rt.previous_scene_id)
        for node_id in candidates:
            if node_id in checked:
                continue
            checked.add(node_id)
            node = graph.node(node_id)
            if node is not None and self._active(screen, node):
                return node

        if not current.anchors:
            return current
        if current.is_global:
            root = graph.root_node
            self._log.warning("全局场景 {} 已消失，回到根场景 {}", current.display_name, root.display_name)
            self._reset_to(root)
        return None

    # ── 决策 ──

    def _eligible(self, region: Region) -> bool:
        variables = self._runtime.variables
        if not region.enabled:
            return False
        if region.label:
            flag = variables.get(f"enable_{region.label}")
            if flag is not None and flag <= 0:
                return False
        if not is_schedule_ready(
            region.schedule,
            self._history.get(region.id),
            self.clock.now_ms(),
            self.clock.wall(),
        ):
            return False
        if region.condition is not None and variables.get(region.condition.variable, 0) <= 0:
            return False
        return True

    def _decide(self, screen: np.ndarray, scene: SceneNode) -> Optional[Region]:
        candidates = sorted(
            (r for r in scene.regions if self._eligible(r)),
            key=lambda r: r.priority,
        )
        for region in candidates:
            if self.perception.any_trigger_holds(
                screen, region.perception, self._runtime.variables, scene, scene.display_name
            ):
                return region
        return None

    # ── 执行 ──

    def _act(self, scene: SceneNode, region: Region) -> None:
        action = region.action
        if action.type == ActionType.CHECK_EXIT:
            self._log.info("[{}] 条件跳转: {}", scene.display_name, region.display_name)
        else:
            if region.wait_before > 0:
                self._sleep(region.wait_before)
            self.actions.perform_action(action, region, scene.resolution)
            if action.type == ActionType.WAIT:
                self._sleep(action.param_int("duration", 1000))
            elif action.type == ActionType.LAUNCH_APP:
                package = action.params.get("package") or self.origin_app
                if package:
                    self.device.launch_app(str(package))
                else:
                    self._log.warning("[{}] LAUNCH_APP 未指定应用", region.display_name)

        self._apply_side_effect(region.side_effect)
        self._history.record(region.id, self.clock.now_ms())

        if action.type != ActionType.CHECK_EXIT and region.wait_after > 0:
            self._sleep(region.wait_after)

    def _apply_side_effect(self, effect: Optional[SideEffect]) -> None:
        if effect is None:
            return
        variables = self._runtime.variables
        current = variables.get(effect.variable, 0)
        if effect.type == SideEffectType.DECREMENT:
            value = max(0, current - effect.value)
        elif effect.type == SideEffectType.INCREMENT:
            value = current + effect.value
        else:
            value = effect.value
        variables[effect.variable] = value
        self._log.info("变量 [{}]: {} -> {}", effect.variable, current, value)


__all__ = ["SceneGraphEngine"]
