"""
流数据统计（Statistics Calculator）

功能：
- valid_numbers：过滤掉 None / 非数值样本；
- numeric_summary：数值型流的 min / max / avg；
- compute_stream_statistics：对一组通道逐个调用其 compute_statistics，按类型名汇总。

说明：
- 统计只依赖样本本身，与输出格式（compact / verbose）无关；
- 空数组不会抛错：只返回计数，省略数值字段。
"""

from typing import Any, Dict, Iterable, List


# 平均值保留的小数位数，保证同一份数据多次计算结果一致
AVG_PRECISION = 1


def valid_numbers(data: Iterable[Any]) -> List[float]:
    return [v for v in data if isinstance(v, (int, float)) and not isinstance(v, bool)]


def kph(mps: float) -> float:
    """m/s -> km/h，保留 1 位小数。"""
    return round(mps * 3.6, 1)


def numeric_summary(data: Iterable[Any]) -> Dict[str, Any]:
    values = valid_numbers(data)
    if not values:
        return {}
    return {
        'min': min(values),
        'max': max(values),
        'avg': round(sum(values) / len(values), AVG_PRECISION),
    }


def compute_stream_statistics(channels) -> Dict[str, Dict[str, Any]]:
    """按通道类型汇总统计信息；结果在一次请求内只计算一次，之后不再修改。"""
    return {channel.kind.value: channel.compute_statistics() for channel in channels}
