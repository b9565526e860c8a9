"""
分块大小估算（Chunk-Size Estimator）

目标：全量分块返回时，每条消息编码后的体积接近固定字节目标（默认 50KB）。

估算方式：
1. 基线：按格式假设「每样本每通道」的平均字节数（compact 约 25B，verbose 约 120B），
   chunk_size = (目标字节 - 结构开销) / (通道数 * 每样本字节)，再夹到 [下限, 上限]；
2. 修正：若提供了已编码的样本数据（通常取全范围内体积最大的样本窗口），
   则用其在消息中的实际 JSON 体积重新计算每样本字节数，
   替换基线估算结果。
"""

import logging
import math
from typing import Any, List, Optional, Tuple, Union

import numpy as np
from pydantic import BaseModel

from ..config import STREAM_CHUNK_TARGET_KB
from .encoding import dumps
from .models import StreamFormat


logger = logging.getLogger(__name__)

BYTES_PER_POINT = {
    StreamFormat.COMPACT: 25,
    StreamFormat.VERBOSE: 120,
}
STRUCTURE_OVERHEAD = 500
MIN_CHUNK_SIZE = 50
MAX_CHUNK_SIZE = {
    StreamFormat.COMPACT: 2000,
    StreamFormat.VERBOSE: 1000,
}
# 经验修正：在全范围内等距取若干个样本窗口，每个窗口的样本点数
SAMPLE_POINTS = 100
SAMPLE_WINDOWS = 5


class ChunkRange(BaseModel):
    """一个数据分块：index 从 0 开始，覆盖 [start, end) 的样本"""
    index: int
    total: int
    start: int
    end  : int

    @property
    def label(self) -> str:
        """1 起始的闭区间，如 points 1-1000"""
        return f"{self.start + 1}-{self.end}"


def _clamp(chunk_size: float, fmt: StreamFormat) -> int:
    if not math.isfinite(chunk_size):
        raise ValueError(f"chunk size is not finite: {chunk_size}")
    return max(MIN_CHUNK_SIZE, min(MAX_CHUNK_SIZE[fmt], int(chunk_size)))


def calculate_optimal_chunk_size(
    total_points: int,
    num_channels: int,
    fmt: Union[str, StreamFormat] = StreamFormat.COMPACT,
    sample_data: Optional[Any] = None,
    target_kb: Optional[int] = None,
) -> int:
    """
    计算每条消息的样本数。

    参数：
        total_points: 总样本数
        num_channels: 当前输出的通道数
        fmt: compact / verbose
        sample_data: 可选，min(100, total_points) 个连续样本的已编码数据（所有通道）
        target_kb: 可选，每条消息的目标大小（KB），默认读取配置

    返回：
        落在 [MIN_CHUNK_SIZE, MAX_CHUNK_SIZE[fmt]] 内的正整数
    """
    fmt = StreamFormat(fmt)
    channels = max(1, num_channels)
    target_bytes = (target_kb or STREAM_CHUNK_TARGET_KB) * 1024
    budget = target_bytes - STRUCTURE_OVERHEAD

    chunk_size = _clamp(budget / (channels * BYTES_PER_POINT[fmt]), fmt)

    if sample_data is not None and total_points > 0:
        # 按消息中的实际形态（{"data": ...}，UTF-8 字节）计量
        sample_bytes = len(dumps({'data': sample_data}, fmt).encode('utf-8'))
        if sample_bytes > 0:
            bytes_per_point = sample_bytes / (min(SAMPLE_POINTS, total_points) * channels)
            chunk_size = _clamp(budget / (bytes_per_point * channels), fmt)

    logger.debug(f"[chunk] total={total_points} channels={channels} fmt={fmt.value} chunk_size={chunk_size}")
    return chunk_size


def plan_chunks(total_points: int, chunk_size: int) -> List[ChunkRange]:
    """按 chunk_size 切分 [0, total_points)，各分块首尾相接、不重叠。"""
    if chunk_size <= 0:
        raise ValueError(f"chunk size must be positive: {chunk_size}")
    total = math.ceil(total_points / chunk_size) if total_points > 0 else 0
    return [
        ChunkRange(index=i, total=total, start=i * chunk_size, end=min((i + 1) * chunk_size, total_points))
        for i in range(total)
    ]


def sample_windows(total_points: int) -> List[Tuple[int, int]]:
    """在 [0, total_points) 内等距取 SAMPLE_WINDOWS 个长度为 min(SAMPLE_POINTS, total_points) 的窗口，末窗口贴齐结尾。"""
    if total_points <= 0:
        return []
    width = min(SAMPLE_POINTS, total_points)
    starts = np.rint(np.linspace(0, total_points - width, SAMPLE_WINDOWS)).astype(int)
    return [(int(s), int(s) + width) for s in sorted(set(starts.tolist()))]
