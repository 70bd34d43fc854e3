async def test_health(client):
    response = await client.get('/health')

    assert response.status_code == 200
    assert response.json() == {'status': 'ok', 'service': 'collab-requests'}


async def test_sign_in_then_read_requests(client):
    response = await client.post('/api/session', json={'user_id': 'u1', 'access_token': 'tok'})
    assert response.status_code == 200
    assert response.json()['ok'] is True

    response = await client.get('/api/requests')

    assert response.status_code == 200
    data = response.json()
    assert data['state']['user_id'] == 'u1'
    assert data['state']['pending_count'] == 3
    assert data['aggregates']['pending_count'] == 3
    assert data['aggregates']['awaiting_project_ids'] == ['p5']
    assert data['error'] is None
    assert data['loading'] is False


async def test_numeric_user_id_is_accepted(client, engine):
    await client.delete('/api/session')

    response = await client.post('/api/session', json={'user_id': 7})

    assert response.json()['ok'] is True
    assert engine.user_id == '7'


async def test_tab_view(client):
    await client.post('/api/requests/refresh')

    response = await client.get('/api/requests/tabs/received')

    assert response.status_code == 200
    data = response.json()
    assert data['title'] == 'Received'
    assert data['badge'] == 3
    assert {item['kind'] for item in data['pending']} == {'join-request', 'invitation'}


async def test_unknown_tab(client):
    response = await client.get('/api/requests/tabs/archive')

    assert response.status_code == 404
    assert response.json()['detail'] == 'Unknown tab'


async def test_respond_to_invitation(client):
    await client.post('/api/requests/refresh')

    response = await client.post('/api/requests/invitations/i1/respond', json={'decision': 'ACCEPT'})

    data = response.json()
    assert response.status_code == 200
    assert data['ok'] is True
    assert data['refreshed'] is True
    assert data['item']['kind'] == 'invitation'
    assert data['item']['status'] == 'ACCEPTED'


async def test_respond_to_join_request(client):
    await client.post('/api/requests/refresh')

    response = await client.post('/api/requests/join-requests/r2/respond', json={'decision': 'REJECT'})

    assert response.json()['item']['status'] == 'REJECTED'
    state = (await client.get('/api/requests')).json()['state']
    assert state['pending_count'] == 2


async def test_submit_and_cancel_join_request(client):
    await client.post('/api/requests/refresh')

    response = await client.post('/api/requests/join-requests', json={'project_id': 'p6', 'message': 'Hi'})
    request_id = response.json()['item']['id']
    response = await client.post(f'/api/requests/join-requests/{request_id}/cancel')

    assert response.json()['item']['status'] == 'CANCELED'


async def test_failures_come_back_as_values(client):
    await client.post('/api/requests/refresh')

    response = await client.post('/api/requests/join-requests/r1/cancel')

    assert response.status_code == 200
    data = response.json()
    assert data['ok'] is False
    assert data['error_kind'] == 'PreconditionError'
    assert 'not one of your sent requests' in data['error']


async def test_invalid_decision_is_rejected(client):
    response = await client.post('/api/requests/invitations/i1/respond', json={'decision': 'MAYBE'})

    assert response.status_code == 422


async def test_refresh_failure_is_reported(client, backend):
    backend.fail('projects.list_mine')

    response = await client.post('/api/requests/refresh')

    data = response.json()
    assert data['ok'] is False
    assert data['error_kind'] == 'AggregationError'
    assert 'projects.list_mine' in (await client.get('/api/requests')).json()['error']


async def test_sign_out_clears_state(client, engine):
    await client.post('/api/requests/refresh')

    response = await client.delete('/api/session')

    assert response.json() == {'status': 'signed_out'}
    assert engine.user_id is None
    data = (await client.get('/api/requests')).json()
    assert data['state']['received_invitations'] == []
    assert data['state']['pending_count'] == 0
