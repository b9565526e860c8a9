"""
多活动批量流数据（Bulk Streams）

功能：
- 并发拉取多个活动的流数据（ThreadPoolExecutor），单个活动失败不影响其它活动；
- 支持时间窗裁剪（last / first / middle / start+end，负数表示相对结尾）；
- 三种输出格式：compact（取整后的原始数组）、stats_only（只有统计）、sampled（每 N 个点取 1 个）。

输出格式约定（最小化 JSON，节省 token）：
    {"_": {"ok": 成功数, "fail": 失败数, "fmt": 格式, "types": [...], "tw": 时间窗摘要},
     "data": {"<活动ID>": {"_w": 时间窗信息, "<流类型>": {"s": 统计, "d": 数据, "n": 点数, "r": 采样率}}
                         | {"error": "..."}}}
"""

import logging
from bisect import bisect_left
from concurrent.futures import ThreadPoolExecutor
from typing import Any, Callable, Dict, List, Sequence, Tuple

from ..clients.strava_client import StravaApiError
from ..config import BULK_MAX_WORKERS
from .encoding import dumps, round_compact
from .models import BaseChannel, StreamKind, build_channels
from .schemas import BulkFormat, BulkStreamRequest, TimeWindow


logger = logging.getLogger(__name__)

# fetch(activity_id, kinds) -> Strava 原始流列表
StreamFetcher = Callable[[Any, List[StreamKind]], List[Dict[str, Any]]]


def resolve_time_window(tw: TimeWindow, total_duration: float) -> Tuple[float, float]:
    """把时间窗解析为 [start_sec, end_sec]，并夹到 [0, total_duration]。"""
    start_sec, end_sec = 0.0, float(total_duration)

    if tw.last is not None:
        start_sec = max(0.0, total_duration - tw.last)
        end_sec = total_duration
    elif tw.first is not None:
        start_sec = 0.0
        end_sec = min(total_duration, tw.first)
    elif tw.middle is not None:
        midpoint = total_duration / 2
        start_sec = max(0.0, midpoint - tw.middle / 2)
        end_sec = min(total_duration, midpoint + tw.middle / 2)
    else:
        if tw.start is not None:
            start_sec = total_duration + tw.start if tw.start < 0 else tw.start
        if tw.end is not None:
            end_sec = total_duration + tw.end if tw.end < 0 else tw.end

    start_sec = max(0.0, min(start_sec, total_duration))
    end_sec = max(start_sec, min(end_sec, total_duration))
    return start_sec, end_sec


def find_time_index(time_data: Sequence[float], target: float) -> int:
    """二分查找第一个 time >= target 的下标；超过最后一个样本时返回 len(time_data)。"""
    if not time_data:
        return 0
    if target <= time_data[0]:
        return 0
    if target >= time_data[-1]:
        return len(time_data)
    return bisect_left(time_data, target)


def summarize_activity(channels: List[BaseChannel], request: BulkStreamRequest) -> Dict[str, Any]:
    """把单个活动的通道转换为批量输出中的一项。"""
    time_channel = next((c for c in channels if c.kind == StreamKind.TIME), None)
    time_data = time_channel.data if time_channel is not None else []

    start_idx, end_idx = 0, None
    result: Dict[str, Any] = {}

    tw = request.time_window
    if tw is not None and time_data:
        total_duration = time_data[-1]
        start_sec, end_sec = resolve_time_window(tw, total_duration)
        start_idx = find_time_index(time_data, start_sec)
        end_idx = find_time_index(time_data, end_sec)
        # 至少保留一个样本
        if end_idx <= start_idx:
            end_idx = min(start_idx + 1, len(time_data))
        result['_w'] = {
            'total_sec' : total_duration,
            'window_sec': [round(start_sec), round(end_sec)],
            'window_pts': end_idx - start_idx,
        }

    for channel in channels:
        if channel.kind == StreamKind.TIME and tw is not None and StreamKind.TIME not in request.types:
            continue

        windowed = channel.with_data(channel.data[start_idx:end_idx]) if tw is not None else channel
        stats = None
        if request.include_statistics and windowed.numeric:
            stats = {k: v for k, v in windowed.compute_statistics().items() if k not in ('resolution', 'series_type')}

        key = channel.kind.value
        if request.format == BulkFormat.STATS_ONLY:
            result[key] = stats or {'total_points': windowed.size}
        elif request.format == BulkFormat.SAMPLED:
            sampled = windowed.data[::request.sample_rate]
            item = {'s': stats} if stats else {}
            item.update({'d': round_compact(windowed, sampled), 'n': windowed.size, 'r': request.sample_rate})
            result[key] = item
        else:
            item = {'s': stats} if stats else {}
            item.update({'d': round_compact(windowed), 'n': windowed.size})
            result[key] = item
    return result


def fetch_bulk_streams(fetch: StreamFetcher, request: BulkStreamRequest) -> Dict[str, Any]:
    """
    并发拉取并汇总多个活动的流数据。

    参数：
        fetch: 单活动拉取函数，失败时抛出异常
        request: 批量请求参数

    返回：
        批量响应字典；失败的活动以 {"error": ...} 标记，结果按请求顺序以活动 ID 为键
    """
    kinds = list(request.types)
    if request.time_window is not None and StreamKind.TIME not in kinds:
        kinds.append(StreamKind.TIME)

    workers = max(1, min(BULK_MAX_WORKERS, len(request.activity_ids)))
    output: Dict[str, Any] = {}
    with ThreadPoolExecutor(max_workers=workers, thread_name_prefix='bulk-streams') as executor:
        futures = [(activity_id, executor.submit(fetch, activity_id, kinds)) for activity_id in request.activity_ids]

        for activity_id, future in futures:
            key = str(activity_id)
            try:
                channels = build_channels(future.result())
                if not channels:
                    output[key] = {'error': 'no_data'}
                    continue
                output[key] = summarize_activity(channels, request)
            except StravaApiError as e:
                logger.warning(f"[bulk] activity {activity_id} failed: {e}")
                output[key] = {'error': f"{e.status_code}: {e.message}"}
            except Exception as e:
                # 单个活动的数据异常（格式错误、时间流含空值等）只标记该活动
                logger.warning(f"[bulk] activity {activity_id} failed: {e}")
                output[key] = {'error': f"unknown: {e}"}

    ok = sum(1 for v in output.values() if 'error' not in v)
    meta: Dict[str, Any] = {
        'ok'   : ok,
        'fail' : len(request.activity_ids) - ok,
        'fmt'  : request.format.value,
        'types': [k.value for k in request.types],
    }
    if request.time_window is not None:
        meta['tw'] = request.time_window.summary()

    logger.info(f"[bulk] fetched {len(request.activity_ids)} activities: ok={ok} fail={meta['fail']}")
    return {'_': meta, 'data': output}


def render_bulk_response(result: Dict[str, Any]) -> str:
    return dumps(result)
