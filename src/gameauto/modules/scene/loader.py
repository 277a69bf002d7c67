"""
脚本加载：读取来源（本地文件 / http(s) URL）、解析 JSON 或 YAML、识别格式、校验为模型
"""
from __future__ import annotations

import json
import os
from typing import Any, Dict, Union

import httpx
import yaml
from pydantic import ValidationError

from ...core.constants import ScriptFormat
from ...core.logger import logger
from .models import ScriptGraph

log = logger.bind(module="ScriptLoader")


class ScriptLoadError(ValueError):
    """脚本无法读取、解析或结构不合法"""


def load_script_source(source: str, *, timeout: float = 10.0) -> str:
    """读取脚本原文：http(s) 地址通过 httpx 下载，其余视为本地路径"""
    src = source.strip()
    if src.startswith("http://") or src.startswith("https://"):
        try:
            resp = httpx.get(src, timeout=timeout, follow_redirects=True)
            resp.raise_for_status()
        except httpx.HTTPError as e:
            raise ScriptLoadError(f"下载脚本失败: {src}: {e}") from e
        log.info("已下载脚本: {} ({} bytes)", src, len(resp.content))
        return resp.text
    if not os.path.isfile(src):
        raise ScriptLoadError(f"脚本文件不存在: {src}")
    with open(src, "r", encoding="utf-8") as f:
        return f.read()


def parse_document(text: str) -> Dict[str, Any]:
    """JSON 优先，失败再按 YAML 解析；顶层必须是对象"""
    if not text or not text.strip():
        raise ScriptLoadError("脚本内容为空")
    try:
        doc = json.loads(text)
    except json.JSONDecodeError:
        try:
            doc = yaml.safe_load(text)
        except yaml.YAMLError as e:
            raise ScriptLoadError(f"脚本解析失败: {e}") from e
    if not isinstance(doc, dict):
        raise ScriptLoadError("脚本顶层必须是对象")
    return doc


def detect_format(doc: Dict[str, Any]) -> ScriptFormat:
    if isinstance(doc.get("nodes"), list):
        return ScriptFormat.SCENE_GRAPH
    if isinstance(doc.get("steps"), list):
        return ScriptFormat.LINEAR
    raise ScriptLoadError("无法识别的脚本格式（缺少 nodes 或 steps）")


def parse_script(data: Union[str, Dict[str, Any]]) -> ScriptGraph:
    """解析场景图脚本

    Raises:
        ScriptLoadError: 解析失败、格式不符或节点为空
    """
    doc = parse_document(data) if isinstance(data, str) else data
    if detect_format(doc) != ScriptFormat.SCENE_GRAPH:
        raise ScriptLoadError("不是场景图脚本（缺少 nodes）")
    try:
        graph = ScriptGraph.model_validate(doc)
    except ValidationError as e:
        raise ScriptLoadError(f"脚本结构不合法: {e}") from e
    if not graph.nodes:
        raise ScriptLoadError("脚本没有任何场景")
    log.info(
        "场景图已加载: {} (场景 {} 个, 全局变量 {} 个)",
        graph.name, len(graph.nodes), len(graph.variables),
    )
    return graph


__all__ = [
    "ScriptLoadError",
    "load_script_source",
    "parse_document",
    "detect_format",
    "parse_script",
]
