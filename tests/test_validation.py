def test_layout_requires_container_width(client, photo_payload):
    resp = client.post('/api/layout/justified', json={'photos': photo_payload(3)})
    assert resp.status_code == 422


def test_layout_rejects_photo_without_id(client):
    resp = client.post('/api/layout/justified', json={
        'photos': [{'id': '', 'width': 100, 'height': 100}],
        'container_width': 800,
    })
    assert resp.status_code == 422


def test_layout_rejects_zero_photos_per_row(client, photo_payload):
    resp = client.post('/api/layout/justified', json={
        'photos': photo_payload(3),
        'container_width': 800,
        'options': {'minPhotosPerRow': 0},
    })
    assert resp.status_code == 422


def test_layout_rejects_negative_target_height(client, photo_payload):
    resp = client.post('/api/layout/justified', json={
        'photos': photo_payload(3),
        'container_width': 800,
        'options': {'target_row_height': -10},
    })
    assert resp.status_code == 422


def test_layout_rejects_too_many_photos(client, photo_payload, monkeypatch):
    import server

    monkeypatch.setattr(server.settings, 'max_photos_per_request', 3)
    resp = client.post('/api/layout/justified', json={
        'photos': photo_payload(4),
        'container_width': 800,
    })
    assert resp.status_code == 422
    assert 'Too many photos' in resp.text


def test_responsive_rejects_empty_breakpoint_list(client, photo_payload):
    resp = client.post('/api/layout/responsive', json={'photos': photo_payload(3), 'breakpoints': []})
    assert resp.status_code == 422


def test_rate_limit(client, monkeypatch):
    import server

    monkeypatch.setattr(server, 'RATE_LIMIT_REQUESTS', 2)
    assert client.get('/').status_code == 200
    assert client.get('/').status_code == 200

    resp = client.get('/')
    assert resp.status_code == 429
    assert 'Rate limit exceeded' in resp.json()['error']


def test_rate_limit_forgets_idle_clients(client, monkeypatch):
    import time

    import server

    monkeypatch.setattr(server, '_last_rate_limit_prune', 0.0)
    server.rate_limit_store['10.0.0.9'] = [time.time() - server.RATE_LIMIT_WINDOW - 5]

    assert client.get('/').status_code == 200
    assert '10.0.0.9' not in server.rate_limit_store
    assert 'testclient' in server.rate_limit_store
