"""
响应组装（Response Assembler）

把已获取的通道组装为一条分页响应，或一组全量分块消息。

处理流程（每次请求独立，无跨请求状态）：
    已获取 -> [降采样] -> 统计 -> {分页 | 分块} -> 编码 -> 输出

三种模式：
1. 分页（默认）：按 page / points_per_page 切片，输出 metadata + statistics + data 一条消息；
2. 全量分块（points_per_page = -1）：第一条消息只含 metadata + statistics，
   之后每条消息携带序号与样本区间（points a-b）及该区间的 data；
3. 降采样：指定 max_points 且超出时，在统计与分块之前对全部通道降采样，
   metadata 中记录 downsampled / original_points。
"""

import logging
import math
from typing import Any, Dict, List, Optional

from .chunking import calculate_optimal_chunk_size, plan_chunks, sample_windows
from .downsampling import ReductionOutcome, downsample_channels
from .encoding import dumps, encode_stream
from .models import DESCRIPTIONS, UNITS, BaseChannel, StreamFormat
from .schemas import StreamRequest, ToolResponse
from .statistics import compute_stream_statistics


logger = logging.getLogger(__name__)


class InvalidPageError(ValueError):
    def __init__(self, page: int, total_pages: int):
        super().__init__(f"页码 {page} 无效，请指定 1-{total_pages} 之间的页码（共 {total_pages} 页）")
        self.page = page
        self.total_pages = total_pages


def _encode_slice(channels: List[BaseChannel], start: int, end: int, fmt: StreamFormat) -> Dict[str, Any]:
    return {c.kind.value: encode_stream(c, c.data[start:end], fmt) for c in channels}


def _densest_sample(channels: List[BaseChannel], total_points: int, fmt: StreamFormat) -> Optional[Dict[str, Any]]:
    """取编码后体积最大的样本窗口，用于修正分块大小。"""
    samples = [_encode_slice(channels, start, end, fmt) for start, end in sample_windows(total_points)]
    if not samples:
        return None
    return max(samples, key=lambda s: len(dumps(s, fmt).encode('utf-8')))


def build_metadata(
    channels: List[BaseChannel],
    total_points: int,
    fmt: StreamFormat,
    outcome: Optional[ReductionOutcome] = None,
    **paging: Any,
) -> Dict[str, Any]:
    """构造 metadata；paging 为随模式变化的字段（页码或分块信息）。"""
    kinds = [c.kind for c in channels]
    metadata: Dict[str, Any] = {
        'available_types': [k.value for k in kinds],
        'total_points'   : total_points,
    }
    metadata.update(paging)
    metadata['format'] = fmt.value
    metadata['units'] = {k.value: UNITS[k] for k in kinds}
    metadata['stream_descriptions'] = {k.value: DESCRIPTIONS[k] for k in kinds}
    if outcome is not None and outcome.downsampled:
        metadata['downsampled'] = True
        metadata['original_points'] = outcome.original_points
    return metadata


def paginate(
    channels: List[BaseChannel],
    statistics: Dict[str, Any],
    page: int,
    points_per_page: int,
    fmt: StreamFormat = StreamFormat.COMPACT,
    outcome: Optional[ReductionOutcome] = None,
) -> ToolResponse:
    """返回单页响应；页码越界时抛 InvalidPageError。"""
    total_points = channels[0].size if channels else 0
    # 空数据集也保留 1 个空页，page=1 始终合法
    total_pages = max(1, math.ceil(total_points / points_per_page))
    if page < 1 or page > total_pages:
        raise InvalidPageError(page, total_pages)

    start = (page - 1) * points_per_page
    end = min(start + points_per_page, total_points)

    payload = {
        'metadata': build_metadata(
            channels, total_points, fmt, outcome,
            current_page=page,
            total_pages=total_pages,
            points_per_page=points_per_page,
            points_in_page=end - start,
        ),
        'statistics': statistics,
        'data': _encode_slice(channels, start, end, fmt),
    }
    return ToolResponse.of(dumps(payload, fmt))


def chunk(
    channels: List[BaseChannel],
    statistics: Dict[str, Any],
    fmt: StreamFormat = StreamFormat.COMPACT,
    outcome: Optional[ReductionOutcome] = None,
) -> ToolResponse:
    """全量分块：1 条 metadata/statistics 消息 + 每个分块 1 条 data 消息。"""
    total_points = channels[0].size if channels else 0
    sample = _densest_sample(channels, total_points, fmt)
    chunk_size = calculate_optimal_chunk_size(total_points, len(channels), fmt, sample_data=sample)
    ranges = plan_chunks(total_points, chunk_size)
    num_messages = len(ranges) + 1

    reference = channels[0] if channels else None
    metadata = build_metadata(
        channels, total_points, fmt, outcome,
        total_chunks=len(ranges),
        chunk_size=chunk_size,
        resolution=reference.resolution.value if reference is not None and reference.resolution else None,
        series_type=reference.series_type.value if reference is not None else None,
    )

    header = f"Activity Stream Data ({total_points} points)\n" \
             f"Will be sent in {num_messages} messages:\n" \
             f"1. Metadata and Statistics\n"
    if ranges:
        header += f"2-{num_messages}. Stream Data ({chunk_size} points per message)\n"
    texts = [header + f"\nMessage 1/{num_messages}:\n" + dumps({'metadata': metadata, 'statistics': statistics}, fmt)]

    for r in ranges:
        texts.append(
            f"Message {r.index + 2}/{num_messages} (points {r.label}):\n"
            + dumps({'data': _encode_slice(channels, r.start, r.end, fmt)}, fmt)
        )

    logger.info(f"[streams] chunked {total_points} points into {len(ranges)} chunks of {chunk_size}")
    return ToolResponse.of(*texts)


def assemble_stream_response(channels: List[BaseChannel], request: StreamRequest) -> ToolResponse:
    """
    把已获取的通道按请求参数组装为响应。

    参数：
        channels: 已获取的通道（同一请求内按索引对齐）
        request: 请求参数（格式、分页、降采样上限）

    返回：
        ToolResponse；页码越界时返回带 is_error 标记的错误消息
    """
    fmt = request.format
    outcome = None
    if request.max_points:
        channels, outcome = downsample_channels(channels, request.max_points)

    statistics = compute_stream_statistics(channels)

    if request.chunked:
        return chunk(channels, statistics, fmt, outcome)
    try:
        return paginate(channels, statistics, request.page, request.points_per_page, fmt, outcome)
    except InvalidPageError as e:
        logger.info(f"[streams] invalid page {e.page} (total_pages={e.total_pages})")
        return ToolResponse.error(str(e))
