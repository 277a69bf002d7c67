"""
感知系统：判断截图是否符合某个场景（或单个触发条件）的锚点特征

锚点识别方式：
- image: 多尺度模板匹配 + 位置校验（高分特赦 / 智能对齐 / 百分比容差）
- color: 矩形采样色与目标色的 RGB 欧氏距离
- text:  裁剪区域 OCR，包含目标文字（忽略大小写），OCR 有超时
- ai:    裁剪区域 JPEG 上传远程识别接口

锚点声明 variableName 且命中时，从识别出的文本中提取数字写入引擎变量。
"""
from __future__ import annotations

import re
from concurrent.futures import TimeoutError as FutureTimeoutError
from dataclasses import dataclass
from typing import Callable, Dict, Iterable, MutableMapping, Optional

import numpy as np

from ...core.config import settings
from ...core.constants import MatchType
from ...core.logger import logger
from ...core.thread_pool import run_with_timeout
from ..ai.client import AiCheckClient, interpret_ai_response
from ..vision.color_detect import check_rect_color
from ..vision.template import find_template
from ..vision.utils import crop_percent, decode_template_source, encode_jpeg_base64
from .layout import expected_scale, project_point
from .models import Anchor, SceneNode

TextReader = Callable[[np.ndarray], str]
TemplateLoader = Callable[[str], np.ndarray]

_NON_DIGIT = re.compile(r"[^0-9]")


@dataclass
class AnchorCheck:
    matched: bool
    value: Optional[str] = None


_MISS = AnchorCheck(matched=False)


def _default_text_reader(image: np.ndarray) -> str:
    from ..ocr.recognize import ocr_text

    return ocr_text(image)


class PerceptionSystem:
    def __init__(
        self,
        *,
        text_reader: Optional[TextReader] = None,
        ai_client: Optional[AiCheckClient] = None,
        template_loader: Optional[TemplateLoader] = None,
        match_threshold: Optional[float] = None,
        high_score: Optional[float] = None,
        position_tolerance: Optional[float] = None,
        color_tolerance: Optional[float] = None,
        ocr_timeout_sec: Optional[float] = None,
    ) -> None:
        self.text_reader = text_reader or _default_text_reader
        self.ai_client = ai_client
        self.template_loader = template_loader or decode_template_source
        self.match_threshold = settings.image_match_threshold if match_threshold is None else match_threshold
        self.high_score = settings.image_high_score if high_score is None else high_score
        self.position_tolerance = settings.position_tolerance if position_tolerance is None else position_tolerance
        self.color_tolerance = settings.color_tolerance if color_tolerance is None else color_tolerance
        self.ocr_timeout_sec = settings.ocr_timeout_sec if ocr_timeout_sec is None else ocr_timeout_sec
        # 解码后的模板缓存（按锚点 id）
        self._templates: Dict[str, np.ndarray] = {}
        self._log = logger.bind(module="PerceptionSystem")

    # ── 场景 / 触发条件 ──

    def is_state_active(
        self,
        screen: np.ndarray,
        node: SceneNode,
        variables: MutableMapping[str, int],
        scene_name: Optional[str] = None,
        *,
        verbose: bool = True,
    ) -> bool:
        """命中锚点数 >= required_matches 时场景激活；无锚点的场景无法被确认"""
        if not node.anchors:
            return False
        name = scene_name or node.display_name
        matched = 0
        for index, anchor in enumerate(node.anchors, start=1):
            if self.check_anchor(screen, anchor, variables, node, name, index=index, verbose=verbose):
                matched += 1
        return matched >= node.required_matches

    def any_trigger_holds(
        self,
        screen: np.ndarray,
        triggers: Iterable[Anchor],
        variables: MutableMapping[str, int],
        node: SceneNode,
        scene_name: Optional[str] = None,
    ) -> bool:
        """区域附加触发条件：任一命中即可；没有触发条件视为满足"""
        triggers = list(triggers)
        if not triggers:
            return True
        name = scene_name or node.display_name
        for index, trigger in enumerate(triggers, start=1):
            if self.check_anchor(screen, trigger, variables, node, name, index=index, verbose=False):
                return True
        return False

    def clear_cache(self) -> None:
        self._templates.clear()

    # ── 单个锚点 ──

    def check_anchor(
        self,
        screen: np.ndarray,
        anchor: Anchor,
        variables: MutableMapping[str, int],
        node: SceneNode,
        scene_name: str,
        *,
        index: int = 1,
        verbose: bool = True,
    ) -> bool:
        try:
            if anchor.match_type == MatchType.COLOR:
                result = self._check_color(screen, anchor, scene_name)
            elif anchor.match_type == MatchType.TEXT:
                result = self._check_text(screen, anchor, scene_name)
            elif anchor.match_type == MatchType.AI:
                result = self._check_ai(screen, anchor, scene_name)
            else:
                result = self._check_image(screen, anchor, node, scene_name, index, verbose)
        except Exception as e:
            self._log.error("[场景: {}][特征#{}] 锚点检查异常: {}", scene_name, index, e)
            return False

        if result.matched and anchor.variable_name and result.value is not None:
            self._store_variable(variables, anchor.variable_name, result.value)
        return result.matched

    def _store_variable(self, variables: MutableMapping[str, int], name: str, raw: str) -> None:
        digits = _NON_DIGIT.sub("", raw)
        if not digits:
            self._log.warning("无法解析提取的数值 '{}' 为整数，变量 [{}] 保持不变", raw, name)
            return
        variables[name] = int(digits)
        self._log.info("变量提取成功 [{}] = {} (原始值: {})", name, variables[name], raw)

    # ── image ──

    def _load_template(self, anchor: Anchor) -> Optional[np.ndarray]:
        if anchor.id and anchor.id in self._templates:
            return self._templates[anchor.id]
        try:
            template = self.template_loader(anchor.template)
        except Exception as e:
            self._log.error("模板解码失败 (anchor={}): {}", anchor.id or "?", e)
            return None
        if anchor.id:
            self._templates[anchor.id] = template
        return template

    def _check_image(
        self,
        screen: np.ndarray,
        anchor: Anchor,
        node: SceneNode,
        scene_name: str,
        index: int,
        verbose: bool,
    ) -> AnchorCheck:
        if not anchor.template:
            return _MISS
        template = self._load_template(anchor)
        if template is None:
            return _MISS

        screen_h, screen_w = screen.shape[:2]
        scale = expected_scale(screen_w, node.resolution)
        threshold = anchor.threshold if anchor.threshold is not None else self.match_threshold
        result = find_template(screen, template, threshold, scale)
        if result is None:
            return _MISS

        # 高分特赦：分数足够高时忽略位置检查
        if result.score >= self.high_score:
            if verbose:
                self._log.info(
                    "[场景: {}][特征#{}] 高分特赦 (Score: {:.4f} >= {}). 忽略位置检查.",
                    scene_name, index, result.score, self.high_score,
                )
            return AnchorCheck(matched=True)

        if not anchor.has_position:
            if verbose:
                self._log.debug("[场景: {}][特征#{}] 图片匹配 (无座标检查)", scene_name, index)
            return AnchorCheck(matched=True)

        tol = self.position_tolerance
        if node.resolution is not None:
            target_x, target_y = project_point(anchor.x, anchor.y, screen_w, screen_h, node.resolution)
            if abs(result.x - target_x) > screen_w * tol or abs(result.y - target_y) > screen_h * tol:
                self._log.warning(
                    "[场景: {}] (Smart)位置偏差: 预期({}, {}) 实际({}, {})",
                    scene_name, int(target_x), int(target_y), result.x, result.y,
                )
                return _MISS
            if verbose:
                self._log.debug("[场景: {}][特征#{}] (Smart)位置符合", scene_name, index)
            return AnchorCheck(matched=True)

        found_x = result.x / screen_w
        found_y = result.y / screen_h
        if abs(found_x - anchor.x / 100.0) > tol or abs(found_y - anchor.y / 100.0) > tol:
            self._log.warning(
                "[场景: {}] 图片位置偏差过大: 预期(%):({}, {}) 实际:({}, {}) 容许:{}%",
                scene_name, int(anchor.x), int(anchor.y), int(found_x * 100), int(found_y * 100), int(tol * 100),
            )
            return _MISS
        if verbose:
            self._log.debug(
                "[场景: {}][特征#{}] 图片匹配: 实际(%):({}, {})",
                scene_name, index, int(found_x * 100), int(found_y * 100),
            )
        return AnchorCheck(matched=True)

    # ── color ──

    def _check_color(self, screen: np.ndarray, anchor: Anchor, scene_name: str) -> AnchorCheck:
        if not anchor.target_color:
            return _MISS
        res = check_rect_color(
            screen,
            anchor.rect,
            anchor.target_color,
            tolerance=self.color_tolerance,
            mode=anchor.sample,
        )
        if res.ok:
            self._log.debug("[场景: {}] 颜色匹配成功: {} Dist:{:.1f}", scene_name, anchor.label, res.distance)
        return AnchorCheck(matched=res.ok)

    # ── text ──

    def _check_text(self, screen: np.ndarray, anchor: Anchor, scene_name: str) -> AnchorCheck:
        target = anchor.target_text
        # 无目标文字时仅在提取模式下有意义
        if not target and not anchor.variable_name:
            return _MISS
        region = crop_percent(screen, *anchor.rect)
        if region is None:
            return _MISS

        try:
            text = run_with_timeout(self.text_reader, region, timeout=self.ocr_timeout_sec)
        except FutureTimeoutError:
            self._log.warning("[场景: {}] OCR 超时 ({}s)，视为未命中", scene_name, self.ocr_timeout_sec)
            return _MISS
        text = (text or "").replace("\n", "").strip()

        if target:
            matched = target.lower() in text.lower()
            if matched:
                self._log.info("[场景: {}] OCR 匹配成功: '{}' 包含 '{}'", scene_name, text, target)
            else:
                self._log.debug("[场景: {}] OCR 匹配失败: 识别出 '{}', 预期包含 '{}'", scene_name, text, target)
        else:
            matched = bool(_NON_DIGIT.sub("", text))
        return AnchorCheck(matched=matched, value=text)

    # ── ai ──

    def _check_ai(self, screen: np.ndarray, anchor: Anchor, scene_name: str) -> AnchorCheck:
        if not anchor.target_prompt:
            return _MISS
        region = crop_percent(screen, *anchor.rect)
        if region is None:
            return _MISS
        if self.ai_client is None:
            self.ai_client = AiCheckClient()

        image_b64 = encode_jpeg_base64(region, quality=settings.ai_jpeg_quality)
        mode = "extract" if anchor.variable_name else None
        try:
            payload = self.ai_client.check(anchor.target_prompt, image_b64, mode=mode)
        except Exception as e:
            self._log.error("[场景: {}] AI 检查错误: {}", scene_name, e)
            return _MISS

        matched, reason = interpret_ai_response(payload)
        if reason:
            self._log.info("[场景: {}] AI 推理: {}", scene_name, reason)
        return AnchorCheck(matched=matched, value=reason)


__all__ = ["AnchorCheck", "PerceptionSystem"]
