def _names(received):
    return [pkt['name'] for pkt in received]


def test_socket_connect_and_subscribe(sio_client):
    # Ensure we are connected to /ws
    if not sio_client.is_connected('/ws'):
        sio_client.connect(namespace='/ws')
    assert sio_client.is_connected('/ws')
    sio_client.get_received('/ws')

    sio_client.emit('join_session', {}, namespace='/ws')
    received = sio_client.get_received('/ws')
    names = _names(received)
    assert 'joined' in names
    state = next(pkt for pkt in received if pkt['name'] == 'state_update')
    assert state['args'][0]['active'] is False


def test_http_actions_broadcast_to_subscribers(sio_client, client, registry):
    sio_client.emit('join_session', {}, namespace='/ws')
    sio_client.get_received('/ws')  # flush

    client.post('/api/games/start', json={'kind': 'tag', 'player_id': 'A'})
    received = sio_client.get_received('/ws')
    events = [pkt['args'][0]['text'] for pkt in received if pkt['name'] == 'game_event']
    assert any('Game started by <@A>' in text for text in events)
    assert 'state_update' in _names(received)


def test_chat_message_ticks_scores(sio_client, client, registry):
    client.post('/api/games/start', json={'kind': 'tag', 'player_id': 'A'})
    client.post('/api/games/join', json={'player_id': 'B'})
    sio_client.emit('join_session', {}, namespace='/ws')
    sio_client.get_received('/ws')  # flush

    sio_client.emit('chat_message', {'user': 'B', 'text': 'hi'}, namespace='/ws')
    received = sio_client.get_received('/ws')
    updates = [pkt['args'][0] for pkt in received if pkt['name'] == 'state_update']
    assert updates and updates[-1]['scores'] == {'A': 0, 'B': 1}

    sio_client.emit('chat_message', {'user': 'B', 'subtype': 'message_changed'}, namespace='/ws')
    assert 'state_update' not in _names(sio_client.get_received('/ws'))
    assert registry.snapshot()['scores'] == {'A': 0, 'B': 1}


def test_ping(sio_client):
    sio_client.emit('ping', {'n': 1}, namespace='/ws')
    received = sio_client.get_received('/ws')
    assert any(pkt['name'] == 'pong' and pkt['args'][0] == {'n': 1} for pkt in received)


def test_host_leaving_announces_new_host(sio_client, client, registry):
    client.post('/api/games/start', json={'kind': 'tag', 'player_id': 'A'})
    client.post('/api/games/join', json={'player_id': 'B'})
    sio_client.emit('join_session', {}, namespace='/ws')
    sio_client.get_received('/ws')  # flush

    client.post('/api/games/leave', json={'player_id': 'A'})
    received = sio_client.get_received('/ws')
    events = [pkt['args'][0]['text'] for pkt in received if pkt['name'] == 'game_event']
    assert events == ['<@A> has left the game. The new host is <@B>.']
