import json
import re

from app.streams.assembler import assemble_stream_response, build_metadata, paginate, InvalidPageError
from app.streams.models import StreamFormat, build_channel
from app.streams.schemas import StreamRequest


def _payload(text):
    """去掉消息头，解析 JSON 部分"""
    return json.loads(text[text.index('{'):])


def test_small_dataset_compact_and_verbose():
    channels = [build_channel('heart_rate', [120, 125, 130])]
    for fmt in ('compact', 'verbose'):
        resp = assemble_stream_response(channels, StreamRequest(format=fmt))
        assert resp.is_error is False
        assert len(resp.content) == 1
        payload = json.loads(resp.content[0].text)
        assert payload['data']['heart_rate'] == [120, 125, 130]
        assert payload['metadata']['format'] == fmt


def test_paginated_metadata():
    channels = [build_channel('time', list(range(250))), build_channel('watts', [200] * 250)]
    resp = assemble_stream_response(channels, StreamRequest(page=3, points_per_page=100))
    payload = json.loads(resp.content[0].text)
    meta = payload['metadata']
    assert meta['available_types'] == ['time', 'power']
    assert meta['total_points'] == 250
    assert meta['current_page'] == 3
    assert meta['total_pages'] == 3
    assert meta['points_in_page'] == 50
    assert meta['units'] == {'time': 'seconds', 'power': 'watts'}
    assert 'power' in meta['stream_descriptions']
    assert 'downsampled' not in meta
    assert payload['data']['time'][0] == 200
    assert payload['statistics']['power']['total_points'] == 250


def test_pagination_out_of_range():
    channels = [build_channel('heart_rate', [130] * 500)]
    resp = assemble_stream_response(channels, StreamRequest(page=6, points_per_page=100))
    assert resp.is_error is True
    assert '1-5' in resp.content[0].text

    resp = assemble_stream_response(channels, StreamRequest(page=0, points_per_page=100))
    assert resp.is_error is True


def test_paginate_raises_invalid_page():
    channels = [build_channel('heart_rate', [130] * 10)]
    try:
        paginate(channels, {}, 3, 5)
    except InvalidPageError as e:
        assert e.total_pages == 2
    else:
        raise AssertionError('InvalidPageError not raised')


def test_empty_channel_set_is_valid():
    resp = assemble_stream_response([build_channel('heart_rate', [])], StreamRequest())
    payload = json.loads(resp.content[0].text)
    assert resp.is_error is False
    assert payload['metadata']['total_points'] == 0
    assert payload['data']['heart_rate'] == []
    assert payload['statistics']['heart_rate'] == {'total_points': 0, 'resolution': None, 'series_type': 'distance'}


def test_chunked_coverage():
    channels = [build_channel('time', list(range(5000)), series_type='time', resolution='high')]
    resp = assemble_stream_response(channels, StreamRequest(points_per_page=-1))
    assert resp.is_error is False

    first = _payload(resp.content[0].text)
    meta = first['metadata']
    assert set(first) == {'metadata', 'statistics'}
    assert meta['total_chunks'] == len(resp.content) - 1
    assert meta['resolution'] == 'high'
    assert meta['series_type'] == 'time'

    covered = []
    for i, item in enumerate(resp.content[1:], start=2):
        header = item.text.split('\n', 1)[0]
        match = re.match(r'Message (\d+)/(\d+) \(points (\d+)-(\d+)\):', header)
        assert match is not None
        assert int(match.group(1)) == i
        assert int(match.group(2)) == len(resp.content)
        a, b = int(match.group(3)), int(match.group(4))
        data = _payload(item.text)['data']['time']
        assert len(data) == b - a + 1
        assert data[0] == a - 1
        covered.extend(range(a - 1, b))
    assert covered == list(range(5000))


def test_chunk_messages_stay_within_target():
    n = 20000
    channels = [
        build_channel('time', list(range(n)), series_type='time'),
        build_channel('heartrate', [100 + i % 80 for i in range(n)]),
        build_channel('watts', [150 + i % 300 for i in range(n)]),
        build_channel('cadence', [80 + i % 20 for i in range(n)]),
    ]
    for fmt in ('compact', 'verbose'):
        resp = assemble_stream_response(channels, StreamRequest(points_per_page=-1, format=fmt))
        sizes = [len(item.text.encode('utf-8')) for item in resp.content[1:]]
        assert len(sizes) > 1
        # 后段样本（大时间戳）体积最大，仍不应超过 50KB
        assert max(sizes) <= 50 * 1024


def test_chunked_empty_only_metadata():
    resp = assemble_stream_response([build_channel('time', [])], StreamRequest(points_per_page=-1))
    assert len(resp.content) == 1
    assert _payload(resp.content[0].text)['metadata']['total_chunks'] == 0


def test_downsampled_envelope():
    channels = [build_channel('heart_rate', list(range(120, 1120)))]
    resp = assemble_stream_response(channels, StreamRequest(max_points=100, points_per_page=1000))
    payload = json.loads(resp.content[0].text)
    meta = payload['metadata']
    assert meta['downsampled'] is True
    assert meta['original_points'] == 1000
    assert meta['total_points'] <= 100
    data = payload['data']['heart_rate']
    assert data[0] == 120 and data[-1] == 1119
    assert payload['statistics']['heart_rate']['total_points'] == meta['total_points']


def test_downsampled_chunked_compose():
    channels = [build_channel('time', list(range(10000))), build_channel('power', [250] * 10000)]
    resp = assemble_stream_response(channels, StreamRequest(max_points=3000, points_per_page=-1))
    meta = _payload(resp.content[0].text)['metadata']
    assert meta['downsampled'] is True
    assert meta['total_points'] <= 3000
    total = sum(len(_payload(m.text)['data']['time']) for m in resp.content[1:])
    assert total == meta['total_points']


def test_statistics_independent_of_format():
    channels = [
        build_channel('time', list(range(300))),
        build_channel('watts', [150 + (i % 13) * 20 for i in range(300)]),
        build_channel('velocity_smooth', [6.0 + (i % 4) / 4 for i in range(300)]),
    ]
    compact = json.loads(assemble_stream_response(channels, StreamRequest(format='compact')).content[0].text)
    verbose = json.loads(assemble_stream_response(channels, StreamRequest(format='verbose')).content[0].text)
    assert compact['statistics'] == verbose['statistics']

    chunked_c = _payload(assemble_stream_response(channels, StreamRequest(points_per_page=-1)).content[0].text)
    chunked_v = _payload(assemble_stream_response(channels, StreamRequest(points_per_page=-1, format='verbose')).content[0].text)
    assert chunked_c['statistics'] == chunked_v['statistics'] == compact['statistics']


def test_build_metadata_key_order():
    meta = build_metadata([build_channel('cadence', [80])], 1, StreamFormat.COMPACT, current_page=1, total_pages=1)
    assert list(meta)[:4] == ['available_types', 'total_points', 'current_page', 'total_pages']
    assert list(meta)[-3:] == ['format', 'units', 'stream_descriptions']
