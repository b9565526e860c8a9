"""
pytest配置文件，定义测试环境和共享的测试夹具（fixtures）。

主要功能：
1. 提供 Strava 原始流数据的辅助夹具
2. 提供不访问网络的假 Strava 客户端
3. 提供覆盖了服务依赖的 FastAPI 测试客户端
"""

import pytest
from fastapi.testclient import TestClient

from app.api.streams import get_stream_service
from app.clients.strava_client import StravaApiError
from app.main import app
from app.services.stream_service import StreamService


def raw_stream(stream_type, data, series_type='distance', resolution='high'):
    return {
        'type': stream_type,
        'data': data,
        'series_type': series_type,
        'original_size': len(data),
        'resolution': resolution,
    }


class FakeStravaClient:
    """按活动 ID 返回预置流数据；值为异常时抛出该异常"""

    def __init__(self, streams_by_id, calls=None, closed=None):
        self.streams_by_id = streams_by_id
        self.calls = calls if calls is not None else []
        self.closed = closed if closed is not None else []

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.closed.append(self)
        return None

    def get_activity_streams(self, activity_id, keys, resolution=None, series_type=None):
        self.calls.append({'activity_id': activity_id, 'keys': keys, 'resolution': resolution, 'series_type': series_type})
        result = self.streams_by_id.get(str(activity_id))
        if isinstance(result, Exception):
            raise result
        if result is None:
            raise StravaApiError(404, 'Record Not Found')
        return result


@pytest.fixture
def ride_streams():
    """一段 600 秒骑行的原始流数据"""
    n = 600
    return [
        raw_stream('time', list(range(n)), series_type='time'),
        raw_stream('distance', [round(i * 8.5, 1) for i in range(n)]),
        raw_stream('heartrate', [120 + (i % 40) for i in range(n)]),
        raw_stream('watts', [200 + (i % 7) * 10 for i in range(n)]),
        raw_stream('latlng', [[51.5 + i * 1e-5, -0.1 + i * 1e-5] for i in range(n)]),
    ]


@pytest.fixture
def fake_service(ride_streams):
    """使用假客户端的 StreamService，记录所有上游调用"""
    calls, closed = [], []
    streams_by_id = {
        '1': ride_streams,
        '2': [],
        '3': StravaApiError(403, 'Forbidden'),
    }
    service = StreamService(client_factory=lambda token: FakeStravaClient(streams_by_id, calls, closed))
    service.calls = calls
    service.closed = closed
    return service


@pytest.fixture
def client(fake_service):
    """提供FastAPI测试客户端"""
    app.dependency_overrides[get_stream_service] = lambda: fake_service
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()
