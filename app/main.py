"""
活动流数据 API 主应用文件。

本文件是FastAPI应用的入口点，负责：
1. 初始化日志
2. 创建FastAPI应用实例
3. 注册流数据路由
"""

from fastapi import FastAPI
from .logging_config import setup_logging

from .api.streams import router as streams_router

setup_logging()
app = FastAPI(title="活动流数据 API")

# 路由注册
app.include_router(streams_router, tags=["数据流"])
