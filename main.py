#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
ConoHa Exporter 主程序入口

功能：
- 启动 Flask HTTP 服务器
- 暴露 /metrics 端点供 Prometheus 抓取
- 暴露 /health 健康检查端点
"""

import argparse
import logging
import sys
from typing import List, Optional

from flask import Flask, jsonify
from prometheus_client import (
    CONTENT_TYPE_LATEST, CollectorRegistry, GCCollector, PlatformCollector, ProcessCollector
)

from cache.cache import MemoryCache
from collector import CollectorSettings, ConohaCollector, SnapshotExporter
from config.loader import ExporterConfig, load_exporter_config, print_exporter_config
from config.validator import validate_config
from provider.conoha import ConohaClient, ConohaError, TokenManager
from scheduler.scheduler import RefreshScheduler

# 配置日志
logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)
logger = logging.getLogger(__name__)

# 减少 Flask 日志
logging.getLogger('werkzeug').setLevel(logging.WARNING)

# 创建 Flask 应用
app = Flask(__name__)

# 全局对象（在 main 函数中初始化）
exporter: Optional[SnapshotExporter] = None
scheduler: Optional[RefreshScheduler] = None

INDEX_PAGE = """<!DOCTYPE html>
<html>
<head>
    <title>ConoHa Exporter</title>
</head>
<body>
    <h1>ConoHa Exporter</h1>
    <p><a href="/metrics">Metrics</a></p>
</body>
</html>
"""


@app.route('/')
def index():
    """首页（Prometheus 不访问这里）"""
    return INDEX_PAGE, 200, {'Content-Type': 'text/html; charset=utf-8'}


@app.route('/metrics')
def metrics():
    """
    Prometheus metrics 端点

    返回最近一次完成的快照
    格式：Prometheus text format
    """
    if exporter is None:
        return "# Exporter not initialized\n", 200, {'Content-Type': CONTENT_TYPE_LATEST}

    return exporter.render(), 200, {'Content-Type': CONTENT_TYPE_LATEST}


@app.route('/health')
def health():
    """
    健康检查端点

    返回 exporter 的健康状态和快照信息
    """
    status = {'status': 'healthy'}

    if exporter is not None:
        status['snapshot'] = exporter.get_summary()
        if status['snapshot']['generation'] == 0:
            status['status'] = 'starting'

    if scheduler is not None:
        status['scheduler'] = scheduler.get_status()

    return jsonify(status), 200


def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    """解析命令行参数（未指定的参数为 None，不覆盖配置文件和环境变量）"""
    parser = argparse.ArgumentParser(description='ConoHa Exporter')
    parser.add_argument('--config', default=None, help='YAML 配置文件路径')
    parser.add_argument('--port', type=int, default=None, help='HTTP 监听端口')
    parser.add_argument('--region', default=None, help='ConoHa 区域（默认 tyo1）')
    parser.add_argument('--tenant-id', dest='tenant_id', default=None, help='ConoHa 租户 ID')
    parser.add_argument('--username', default=None, help='ConoHa API 用户名')
    parser.add_argument('--password', default=None, help='ConoHa API 密码')
    parser.add_argument('--log-level', dest='log_level', default=None, help='日志级别')
    return parser.parse_args(argv)


def build_registry() -> CollectorRegistry:
    """创建 registry 并注册进程、平台、GC 指标（process_*, python_info, python_gc_*）"""
    registry = CollectorRegistry()
    ProcessCollector(registry=registry)
    PlatformCollector(registry=registry)
    GCCollector(registry=registry)
    return registry


def build_collector(config: ExporterConfig) -> ConohaCollector:
    """
    创建 API 客户端和收集器

    首次认证、endpoint 解析、初始资源清单获取失败都会抛出异常
    """
    token_manager = TokenManager(
        region=config.region,
        tenant_id=config.tenant_id,
        username=config.username,
        password=config.password,
        renewal_margin=config.renewal_margin,
        identity_url=config.identity_url,
        timeout=config.request_timeout
    )
    client = ConohaClient(token_manager, region=config.region, timeout=config.request_timeout)
    client.connect()

    settings = CollectorSettings(
        usage_offset=config.usage_offset,
        inventory_ttl=config.inventory_ttl,
        compute=config.collectors.compute,
        database=config.collectors.database,
        object_storage=config.collectors.object_storage,
        billing=config.collectors.billing
    )
    collector = ConohaCollector(client, settings=settings, inventory_cache=MemoryCache())
    collector.load_inventory()
    return collector


def main(argv: Optional[List[str]] = None):
    """
    主函数：启动 Flask 服务器

    功能：
    1. 加载并验证配置
    2. 认证并获取资源清单（失败则退出）
    3. 启动定时刷新
    4. 启动 HTTP 服务器
    """
    global exporter, scheduler

    logger.info("ConoHa exporter started.")
    args = parse_args(argv)

    # Phase 1: 加载配置
    try:
        config = load_exporter_config(
            config_path=args.config,
            overrides={
                'port': args.port,
                'region': args.region,
                'tenant_id': args.tenant_id,
                'username': args.username,
                'password': args.password,
                'log_level': args.log_level
            }
        )
    except FileNotFoundError as e:
        logger.error(f"配置文件不存在: {e}")
        sys.exit(1)
    except Exception as e:
        logger.error(f"加载配置失败: {e}")
        sys.exit(1)

    is_valid, message = validate_config(config)
    if not is_valid:
        logger.error(f"配置验证失败: {message}")
        sys.exit(1)

    logging.getLogger().setLevel(config.log_level.upper())
    print_exporter_config(config)

    # Phase 2: 认证并获取资源清单
    logger.info("=" * 60)
    logger.info("初始化 ConoHa API 客户端")
    logger.info("=" * 60)

    try:
        collector = build_collector(config)
    except ConohaError as e:
        logger.error(f"初始化失败: {e}")
        logger.error("请检查:")
        logger.error("  1. 租户 ID、用户名、密码是否正确")
        logger.error("  2. 区域是否正确")
        logger.error("  3. 网络连接是否正常")
        sys.exit(1)

    exporter = SnapshotExporter(collector, registry=build_registry())

    # Phase 3: 启动定时任务（第一次刷新立即执行）
    logger.info("=" * 60)
    logger.info("启动定时任务")
    logger.info("=" * 60)

    scheduler = RefreshScheduler(
        refresh_func=collector.refresh,
        interval=config.interval,
        on_success=exporter.record_success,
        on_error=exporter.record_failure
    )
    scheduler.start()

    # Phase 4: 启动 HTTP 服务器
    logger.info(f"Starting HTTP server on port {config.port}")
    print(f"\n{'=' * 60}")
    print(f"Exporter 已启动")
    print(f"访问 http://localhost:{config.port}/metrics 查看指标")
    print(f"访问 http://localhost:{config.port}/health 查看健康状态")
    print(f"{'=' * 60}\n")
    try:
        app.run(host='0.0.0.0', port=config.port, debug=False, threaded=True)
    finally:
        scheduler.stop()


if __name__ == '__main__':
    main()
