def test_register_login_and_me(client):
    res = client.post('/register', json={'username': 'ada', 'password': 'pw'})
    assert res.status_code == 201
    assert res.get_json()['user']['username'] == 'ada'

    assert client.post('/logout').status_code == 200
    assert client.get('/me').status_code == 401

    res = client.post('/login', json={'username': 'ada', 'password': 'wrong'})
    assert res.status_code == 401
    res = client.post('/login', json={'username': 'ada', 'password': 'pw'})
    assert res.status_code == 200
    assert client.get('/me').get_json()['user']['username'] == 'ada'


def test_duplicate_username_rejected(client):
    assert client.post('/register', json={'username': 'bo', 'password': 'pw'}).status_code == 201
    res = client.post('/register', json={'username': 'bo', 'password': 'other'})
    assert res.status_code == 400


def test_rooms_require_login(client):
    assert client.post('/api/rooms', json={'name': 'x'}).status_code == 401
    assert client.get('/api/rooms').status_code == 401


def test_create_room_starts_with_fresh_focus_timer(make_user):
    http, user = make_user('cleo')
    res = http.post('/api/rooms', json={'name': 'Library'})
    assert res.status_code == 201
    room = res.get_json()
    assert room['name'] == 'Library'
    assert room['host_id'] == user['id']
    assert [m['user_id'] for m in room['members']] == [user['id']]
    assert room['timer_state'] == {
        'mode': 'focus',
        'time_remaining': 1500,
        'is_running': False,
        'started_at': None,
        'paused_at': None,
        'cycle_count': 0,
    }
    assert room['timer_settings'] == {
        'focus_duration': 1500,
        'short_break_duration': 300,
        'long_break_duration': 900,
    }


def test_create_room_with_custom_durations(make_user):
    http, _ = make_user('dev')
    room = http.post('/api/rooms', json={'name': 'Long haul', 'focus_duration': 3000, 'long_break_duration': 1800}).get_json()
    assert room['timer_state']['time_remaining'] == 3000
    assert room['timer_settings']['long_break_duration'] == 1800
    assert room['timer_settings']['short_break_duration'] == 300


def test_create_room_rejects_bad_durations(make_user):
    http, _ = make_user('eve')
    for bad in (0, -10, 'ten', 1.5, True, 10 ** 9):
        res = http.post('/api/rooms', json={'name': 'x', 'focus_duration': bad})
        assert res.status_code == 400


def test_join_list_and_get(make_user):
    host_http, _ = make_user('fay')
    guest_http, guest = make_user('gus')
    room = host_http.post('/api/rooms', json={'name': 'Cafe'}).get_json()

    res = guest_http.post(f"/api/rooms/{room['id']}/join")
    assert res.status_code == 200
    assert guest['id'] in [m['user_id'] for m in res.get_json()['members']]
    # Joining twice is harmless
    res = guest_http.post(f"/api/rooms/{room['id']}/join")
    assert res.get_json()['member_count'] == 2

    listed = guest_http.get('/api/rooms').get_json()
    assert [r['id'] for r in listed] == [room['id']]
    assert listed[0]['member_count'] == 2
    assert 'members' not in listed[0]

    assert guest_http.get(f"/api/rooms/{room['id']}").status_code == 200
    assert guest_http.get('/api/rooms/424242').status_code == 404
    assert guest_http.post('/api/rooms/424242/join').status_code == 404


def test_leave_room(make_user):
    host_http, _ = make_user('hal')
    guest_http, guest = make_user('ivy')
    room = host_http.post('/api/rooms', json={'name': 'Quiet'}).get_json()
    guest_http.post(f"/api/rooms/{room['id']}/join")

    assert host_http.post(f"/api/rooms/{room['id']}/leave").status_code == 400
    assert guest_http.post(f"/api/rooms/{room['id']}/leave").status_code == 200
    assert guest_http.post(f"/api/rooms/{room['id']}/leave").status_code == 400
    members = host_http.get(f"/api/rooms/{room['id']}").get_json()['members']
    assert guest['id'] not in [m['user_id'] for m in members]


def test_settings_are_host_only(make_user):
    host_http, _ = make_user('jay')
    guest_http, _ = make_user('kim')
    room = host_http.post('/api/rooms', json={'name': 'Lab'}).get_json()
    guest_http.post(f"/api/rooms/{room['id']}/join")

    res = guest_http.patch(f"/api/rooms/{room['id']}/settings", json={'focus_duration': 60})
    assert res.status_code == 403

    res = host_http.patch(f"/api/rooms/{room['id']}/settings", json={'short_break_duration': 420})
    assert res.status_code == 200
    assert res.get_json()['timer_settings']['short_break_duration'] == 420
    # Changing settings never rewrites the running interval
    assert res.get_json()['timer_state']['time_remaining'] == 1500

    res = host_http.patch(f"/api/rooms/{room['id']}/settings", json={'short_break_duration': None})
    assert res.get_json()['timer_settings']['short_break_duration'] == 300

    res = host_http.patch(f"/api/rooms/{room['id']}/settings", json={'short_break_duration': 'long'})
    assert res.status_code == 400


def test_delete_room_is_host_only(make_user):
    host_http, _ = make_user('lou')
    guest_http, _ = make_user('max')
    room = host_http.post('/api/rooms', json={'name': 'Studio'}).get_json()
    guest_http.post(f"/api/rooms/{room['id']}/join")

    assert guest_http.delete(f"/api/rooms/{room['id']}").status_code == 403
    assert host_http.delete(f"/api/rooms/{room['id']}").status_code == 200
    assert host_http.get(f"/api/rooms/{room['id']}").status_code == 404
