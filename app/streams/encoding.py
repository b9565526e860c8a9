"""
双格式编码（Dual-Format Encoder）

功能：
- format_compact：原样输出样本数组（数值数组 / 经纬度对数组 / 布尔数组）；
- format_verbose：逐样本输出带换算值的结构（由各 Channel 子类的 encode_verbose_sample 决定）；
- encode_stream：按 StreamFormat 分发；
- round_compact：批量接口使用的取整紧凑数组；
- dumps：JSON 序列化，compact 使用最小分隔符，verbose 使用 2 空格缩进。

说明：格式只影响 data 部分，不影响统计结果。
"""

import json
from typing import Any, List, Optional, Union

from .models import BaseChannel, StreamFormat


def format_compact(channel: BaseChannel, data: Optional[List[Any]] = None) -> List[Any]:
    samples = channel.data if data is None else data
    return [list(v) if isinstance(v, tuple) else v for v in samples]


def format_verbose(channel: BaseChannel, data: Optional[List[Any]] = None) -> List[Any]:
    samples = channel.data if data is None else data
    return [channel.encode_verbose_sample(v) for v in samples]


def encode_stream(channel: BaseChannel, data: Optional[List[Any]] = None, fmt: Union[str, StreamFormat] = StreamFormat.COMPACT) -> List[Any]:
    if StreamFormat(fmt) == StreamFormat.VERBOSE:
        return format_verbose(channel, data)
    return format_compact(channel, data)


def round_compact(channel: BaseChannel, data: Optional[List[Any]] = None) -> List[Any]:
    samples = channel.data if data is None else data
    return [channel.round_compact_sample(v) for v in samples]


def dumps(payload: Any, fmt: Union[str, StreamFormat] = StreamFormat.COMPACT) -> str:
    if StreamFormat(fmt) == StreamFormat.VERBOSE:
        return json.dumps(payload, ensure_ascii=False, indent=2)
    return json.dumps(payload, ensure_ascii=False, separators=(',', ':'))
