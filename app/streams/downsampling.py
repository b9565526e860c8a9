"""
形状保持降采样（Shape-Preserving Downsampler）

功能：
- select_indices：为单个通道选出需要保留的样本下标；
- downsample_stream / downsample_channel：单通道降采样；
- downsample_channels：为一组通道选出同一套下标，降采样后各通道仍按索引对齐。

算法：
- 首尾样本必定保留；
- 在首尾之间均匀放置 N-2 个候选下标；
- 数值型流额外检查每个候选下标 ±3 个样本的邻域，若邻域最大/最小值与候选值的差
  超过候选值的 10%，把该峰/谷的下标一并保留，避免功率、心率尖峰被均匀步长跳过；
- 峰谷加入后若超出上限：峰谷优先（按偏离幅度排序），剩余名额从均匀候选中等间隔挑选；
- 位置（经纬度）与 moving 布尔流只做均匀采样。

长度不超过上限时原样返回，不做任何重新编码。
"""

import logging
from typing import Any, Dict, List, Sequence, Tuple

import numpy as np
from pydantic import BaseModel

from .models import BaseChannel


logger = logging.getLogger(__name__)

# 峰谷检查的邻域半宽与相对阈值（经验值，可调）
EXTREMA_WINDOW = 3
EXTREMA_THRESHOLD = 0.1


class ReductionOutcome(BaseModel):
    """一次请求内的降采样结果记录"""
    downsampled    : bool
    original_points: int
    points         : int


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def _uniform_indices(size: int, max_points: int) -> List[int]:
    if max_points < 2:
        return sorted({0, size - 1})
    # 步长 > 1，四舍五入后仍严格递增
    return np.rint(np.linspace(0, size - 1, max_points)).astype(int).tolist()


def _find_extrema(values: Sequence[Any], candidates: List[int]) -> Dict[int, float]:
    """在每个候选下标的邻域内寻找显著的峰/谷，返回 {下标: 相对偏离幅度}。"""
    size = len(values)
    found: Dict[int, float] = {}
    for idx in candidates[1:-1]:
        target = values[idx]
        if not _is_number(target):
            continue
        start = max(1, idx - EXTREMA_WINDOW)
        end = min(size - 2, idx + EXTREMA_WINDOW)

        max_idx = min_idx = idx
        for j in range(start, end + 1):
            v = values[j]
            if not _is_number(v):
                continue
            if v > values[max_idx]:
                max_idx = j
            if v < values[min_idx]:
                min_idx = j

        threshold = abs(target) * EXTREMA_THRESHOLD
        best = 0.0
        for j in (max_idx, min_idx):
            deviation = abs(values[j] - target)
            if j != idx and deviation > threshold:
                score = deviation / max(abs(target), 1.0)
                found[j] = max(found.get(j, 0.0), score)
                best = max(best, score)
        # 候选点本身就是邻域内的峰/谷
        if best and idx in (max_idx, min_idx):
            found[idx] = max(found.get(idx, 0.0), best)
    return found


def _merge_indices(size: int, max_points: int, uniform: List[int], extrema: Dict[int, float]) -> List[int]:
    first, last = 0, size - 1
    interior = [i for i in uniform if first < i < last]
    extra = {i: s for i, s in extrema.items() if first < i < last}

    selected = set(interior) | set(extra)
    budget = max_points - 2
    if len(selected) > budget:
        # 峰谷优先，剩余名额等间隔保留均匀候选
        keep = sorted(extra, key=lambda i: (-extra[i], i))[:budget]
        kept = set(keep)
        rest = [i for i in interior if i not in kept]
        slots = budget - len(keep)
        if slots > 0 and rest:
            picks = np.rint(np.linspace(0, len(rest) - 1, slots)).astype(int)
            kept.update(rest[p] for p in picks)
        selected = kept
    return [first] + sorted(selected) + [last]


def select_indices(channel: BaseChannel, max_points: int) -> List[int]:
    """单通道降采样下标（升序，长度不超过 max_points，首尾必含）。"""
    return _select_for_group([channel], channel.size, max_points)


def _select_for_group(channels: List[BaseChannel], size: int, max_points: int) -> List[int]:
    if size == 0:
        return []
    if size <= max_points:
        return list(range(size))
    uniform = _uniform_indices(size, max_points)
    if max_points < 2:
        return uniform

    extrema: Dict[int, float] = {}
    for channel in channels:
        if not channel.numeric:
            continue
        for idx, score in _find_extrema(channel.data, uniform).items():
            extrema[idx] = max(extrema.get(idx, 0.0), score)
    return _merge_indices(size, max_points, uniform, extrema)


def downsample_stream(channel: BaseChannel, max_points: int) -> List[Any]:
    """返回降采样后的样本数组；长度不超过上限时返回原数组本身。"""
    if channel.size <= max_points:
        return channel.data
    return [channel.data[i] for i in select_indices(channel, max_points)]


def downsample_channel(channel: BaseChannel, max_points: int) -> BaseChannel:
    if channel.size <= max_points:
        return channel
    return channel.with_data(downsample_stream(channel, max_points))


def downsample_channels(
    channels: List[BaseChannel],
    max_points: int,
) -> Tuple[List[BaseChannel], ReductionOutcome]:
    """
    对一组通道做降采样，同一长度的通道共享同一套下标。

    参数：
        channels: 已获取的通道列表（第一个通道作为参考通道）
        max_points: 样本数上限

    返回：
        (降采样后的通道列表, ReductionOutcome)
    """
    original_points = channels[0].size if channels else 0
    if not channels or original_points <= max_points:
        return channels, ReductionOutcome(downsampled=False, original_points=original_points, points=original_points)

    groups: Dict[int, List[BaseChannel]] = {}
    for channel in channels:
        groups.setdefault(channel.size, []).append(channel)
    shared = {size: _select_for_group(group, size, max_points) for size, group in groups.items()}

    reduced: List[BaseChannel] = []
    for channel in channels:
        if channel.size <= max_points:
            reduced.append(channel)
            continue
        indices = shared[channel.size]
        reduced.append(channel.with_data([channel.data[i] for i in indices]))

    points = reduced[0].size
    logger.info(f"[downsample] {original_points} -> {points} points (max_points={max_points}, channels={len(channels)})")
    return reduced, ReductionOutcome(downsampled=True, original_points=original_points, points=points)
