"""
命令行入口

gameauto run SCRIPT [--adb-addr ADDR] [--adb-path PATH] [--package PKG]
"""
from __future__ import annotations

import argparse
import sys
from typing import List, Optional

from .core.config import settings
from .core.constants import ScriptFormat
from .core.logger import logger
from .core.thread_pool import shutdown_pools
from .modules.emu.adapter import AdapterConfig, AdbDevice
from .modules.scene.engine import SceneGraphEngine
from .modules.scene.loader import ScriptLoadError, detect_format, load_script_source, parse_document
from .modules.script.linear import LinearScriptRunner


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="gameauto", description="场景图游戏自动化")
    sub = parser.add_subparsers(dest="command", required=True)

    run = sub.add_parser("run", help="运行脚本（本地路径或 http(s) 地址）")
    run.add_argument("script", help="脚本来源")
    run.add_argument("--adb-addr", default=None, help=f"设备地址（默认 {settings.adb_addr}）")
    run.add_argument("--adb-path", default=None, help=f"adb 可执行文件（默认 {settings.adb_path}）")
    run.add_argument("--package", default=None, help="目标应用包名（默认取脚本 metadata）")
    return parser


def _run(args: argparse.Namespace) -> int:
    log = logger.bind(module="cli")
    try:
        doc = parse_document(load_script_source(args.script))
        fmt = detect_format(doc)
    except ScriptLoadError as e:
        log.error("脚本加载失败: {}", e)
        return 2

    cfg = AdapterConfig.from_settings()
    if args.adb_addr:
        cfg.adb_addr = args.adb_addr
    if args.adb_path:
        cfg.adb_path = args.adb_path
    if args.package:
        cfg.pkg_name = args.package
    device = AdbDevice(cfg)
    device.connect()

    if fmt == ScriptFormat.LINEAR:
        runner = LinearScriptRunner(device)
        if not runner.start(doc):
            return 1
    else:
        runner = SceneGraphEngine(device)
        if not runner.start(doc, origin_app=cfg.pkg_name or None):
            return 1

    log.info("运行中，按 Ctrl-C 停止")
    try:
        while not runner.join(timeout=0.5):
            pass
    except KeyboardInterrupt:
        log.info("收到中断，正在停止 ...")
        runner.stop()
        runner.join(timeout=settings.worker_join_timeout_sec * 5)
    finally:
        shutdown_pools()
    return 0


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    if args.command == "run":
        return _run(args)
    return 1


if __name__ == "__main__":
    sys.exit(main())
