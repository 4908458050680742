from fastapi.testclient import TestClient

from kiosk.main import app

client = TestClient(app)


def _create(headers, **body):
    r = client.post('/api/promotions', json=body, headers=headers)
    assert r.status_code == 201, r.text
    return r.json()


def test_create_returns_201_with_location_and_alert(alice):
    r = client.post('/api/promotions', json={'id': None, 'name': 'Summer', 'discount': 10}, headers=alice['headers'])
    assert r.status_code == 201
    body = r.json()
    assert isinstance(body['id'], int)
    assert body['name'] == 'Summer'
    assert body['discount'] == 10
    assert body['user_id'] == alice['id']
    assert body['user_login'] == 'alice'
    assert r.headers['Location'] == f"/api/promotions/{body['id']}"
    assert r.headers['X-kioskApp-alert'] == 'kioskApp.promotion.created'
    assert r.headers['X-kioskApp-params'] == str(body['id'])

    fetched = client.get(r.headers['Location'], headers=alice['headers'])
    assert fetched.status_code == 200
    assert fetched.json() == body


def test_create_with_id_is_rejected_without_persisting(alice, admin):
    r = client.post('/api/promotions', json={'id': 5, 'name': 'Summer', 'discount': 10}, headers=alice['headers'])
    assert r.status_code == 400
    assert r.headers['X-kioskApp-error'] == 'error.idexists'
    assert r.headers['X-kioskApp-params'] == 'promotion'
    listing = client.get('/api/promotions', headers=admin['headers'])
    assert listing.headers['X-Total-Count'] == '0'


def test_invalid_body_is_400_with_failure_alert(alice):
    r = client.post('/api/promotions', json={'discount': 10}, headers=alice['headers'])
    assert r.status_code == 400
    assert r.headers['X-kioskApp-error'] == 'error.validation'
    assert r.headers['X-kioskApp-params'] == 'promotion'
    r2 = client.post('/api/promotions', json={'name': 'Too much', 'discount': 150}, headers=alice['headers'])
    assert r2.status_code == 400


def test_update_without_id_behaves_like_create(alice):
    r = client.put('/api/promotions', json={'name': 'Winter', 'discount': 5}, headers=alice['headers'])
    assert r.status_code == 201
    body = r.json()
    assert r.headers['Location'] == f"/api/promotions/{body['id']}"
    assert r.headers['X-kioskApp-alert'] == 'kioskApp.promotion.created'
    assert body['name'] == 'Winter'


def test_update_replaces_the_whole_promotion(alice):
    created = _create(alice['headers'], name='Spring', discount=15, description='flowers')
    r = client.put('/api/promotions', json={'id': created['id'], 'name': 'Spring sale', 'discount': 20},
                   headers=alice['headers'])
    assert r.status_code == 200
    assert r.headers['X-kioskApp-alert'] == 'kioskApp.promotion.updated'
    assert r.headers['X-kioskApp-params'] == str(created['id'])
    fetched = client.get(f"/api/promotions/{created['id']}", headers=alice['headers']).json()
    assert fetched['name'] == 'Spring sale'
    assert fetched['discount'] == 20
    assert fetched['description'] is None


def test_update_of_unknown_id_is_rejected(alice):
    r = client.put('/api/promotions', json={'id': 999, 'name': 'Ghost'}, headers=alice['headers'])
    assert r.status_code == 400
    assert r.headers['X-kioskApp-error'] == 'error.idnotfound'


def test_get_unknown_id_is_404_with_empty_body(alice):
    r = client.get('/api/promotions/999', headers=alice['headers'])
    assert r.status_code == 404
    assert r.content == b''


def test_delete_is_unconditional(alice, admin):
    created = _create(alice['headers'], name='Autumn', discount=30)
    r = client.delete(f"/api/promotions/{created['id']}", headers=alice['headers'])
    assert r.status_code == 200
    assert r.headers['X-kioskApp-alert'] == 'kioskApp.promotion.deleted'
    assert r.headers['X-kioskApp-params'] == str(created['id'])
    assert client.get(f"/api/promotions/{created['id']}", headers=alice['headers']).status_code == 404

    missing = client.delete('/api/promotions/12345', headers=alice['headers'])
    assert missing.status_code == 200
    assert missing.headers['X-kioskApp-params'] == '12345'
    assert client.get('/api/promotions', headers=admin['headers']).headers['X-Total-Count'] == '0'


def test_listing_is_scoped_to_owner_unless_admin(alice, bob, admin):
    _create(alice['headers'], name='A1')
    _create(alice['headers'], name='A2')
    _create(bob['headers'], name='B1')

    mine = client.get('/api/promotions', headers=alice['headers'])
    assert mine.status_code == 200
    assert mine.headers['X-Total-Count'] == '2'
    assert {p['user_id'] for p in mine.json()} == {alice['id']}

    theirs = client.get('/api/promotions', headers=bob['headers'])
    assert [p['name'] for p in theirs.json()] == ['B1']

    everything = client.get('/api/promotions', headers=admin['headers'])
    assert everything.headers['X-Total-Count'] == '3'
    assert {p['name'] for p in everything.json()} == {'A1', 'A2', 'B1'}


def test_listing_pagination_headers(alice):
    for i in range(5):
        _create(alice['headers'], name=f'P{i}')
    r = client.get('/api/promotions', params={'page': 1, 'size': 2}, headers=alice['headers'])
    assert r.status_code == 200
    assert len(r.json()) == 2
    assert r.headers['X-Total-Count'] == '5'
    link = r.headers['Link']
    assert '</api/promotions?page=2&size=2>; rel="next"' in link
    assert '</api/promotions?page=0&size=2>; rel="prev"' in link
    assert '</api/promotions?page=2&size=2>; rel="last"' in link
    assert '</api/promotions?page=0&size=2>; rel="first"' in link


def test_listing_sort(alice):
    for name in ('b', 'c', 'a'):
        _create(alice['headers'], name=name)
    r = client.get('/api/promotions', params={'sort': 'name,desc'}, headers=alice['headers'])
    assert [p['name'] for p in r.json()] == ['c', 'b', 'a']
    r2 = client.get('/api/promotions', params={'sort': 'name'}, headers=alice['headers'])
    assert [p['name'] for p in r2.json()] == ['a', 'b', 'c']


def test_listing_rejects_bad_sort(alice):
    r = client.get('/api/promotions', params={'sort': 'password,asc'}, headers=alice['headers'])
    assert r.status_code == 400
    assert r.headers['X-kioskApp-error'] == 'error.badsort'
    r2 = client.get('/api/promotions', params={'sort': 'name,sideways'}, headers=alice['headers'])
    assert r2.status_code == 400
    assert r2.headers['X-kioskApp-error'] == 'error.badsort'
    assert r2.headers['X-kioskApp-params'] == 'promotion'


def test_listing_rejects_bad_page_params(alice):
    r = client.get('/api/promotions', params={'page': -1}, headers=alice['headers'])
    assert r.status_code == 400
    assert r.headers['X-kioskApp-error'] == 'error.validation'


def test_unknown_owner_is_rejected_without_persisting(alice, admin):
    r = client.post('/api/promotions', json={'name': 'Ghost', 'user_id': 9999}, headers=alice['headers'])
    assert r.status_code == 400
    assert r.headers['X-kioskApp-error'] == 'error.usernotfound'
    assert r.headers['X-kioskApp-params'] == 'promotion'
    assert client.get('/api/promotions', headers=admin['headers']).headers['X-Total-Count'] == '0'

    created = _create(alice['headers'], name='Real')
    moved = client.put('/api/promotions', json={'id': created['id'], 'name': 'Real', 'user_id': 9999},
                       headers=alice['headers'])
    assert moved.status_code == 400
    assert client.get(f"/api/promotions/{created['id']}", headers=alice['headers']).json()['user_id'] == alice['id']


def test_owner_can_be_another_existing_user(alice, bob):
    r = client.post('/api/promotions', json={'name': 'For Bob', 'user_id': bob['id']}, headers=alice['headers'])
    assert r.status_code == 201
    assert r.json()['user_login'] == 'bob'
