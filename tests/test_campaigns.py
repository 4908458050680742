from fastapi.testclient import TestClient

from kiosk.main import app

client = TestClient(app)


def _promotion(headers) -> int:
    r = client.post('/api/promotions', json={'name': 'Summer', 'discount': 10}, headers=headers)
    return r.json()['id']


def test_promotion_campaign_lifecycle(alice):
    promotion_id = _promotion(alice['headers'])
    r = client.post('/api/campaigns', json={'type': 'PROMOTION', 'date': '2026-06-01', 'promotion_id': promotion_id},
                    headers=alice['headers'])
    assert r.status_code == 201
    body = r.json()
    assert body['date'] == '2026-06-01'
    assert r.headers['Location'] == f"/api/campaigns/{body['id']}"
    assert r.headers['X-kioskApp-alert'] == 'kioskApp.campaign.created'

    updated = client.put('/api/campaigns', json={'id': body['id'], 'type': 'CUSTOM', 'date': '2026-06-02',
                                                 'card_type': 'GOLD', 'custom_text': 'Welcome back'},
                         headers=alice['headers'])
    assert updated.status_code == 200
    assert updated.headers['X-kioskApp-alert'] == 'kioskApp.campaign.updated'
    fetched = client.get(f"/api/campaigns/{body['id']}", headers=alice['headers']).json()
    assert fetched['type'] == 'CUSTOM'
    assert fetched['promotion_id'] is None

    deleted = client.delete(f"/api/campaigns/{body['id']}", headers=alice['headers'])
    assert deleted.status_code == 200
    assert client.get(f"/api/campaigns/{body['id']}", headers=alice['headers']).status_code == 404


def test_custom_campaign_requires_text_and_card_type(alice):
    r = client.post('/api/campaigns', json={'type': 'CUSTOM', 'date': '2026-06-01', 'card_type': 'GOLD'},
                    headers=alice['headers'])
    assert r.status_code == 400
    assert r.headers['X-kioskApp-error'] == 'error.validation'
    assert r.headers['X-kioskApp-params'] == 'campaign'


def test_promotion_campaign_requires_existing_promotion(alice):
    missing_ref = client.post('/api/campaigns', json={'type': 'PROMOTION', 'date': '2026-06-01'},
                              headers=alice['headers'])
    assert missing_ref.status_code == 400
    unknown = client.post('/api/campaigns', json={'type': 'PROMOTION', 'date': '2026-06-01', 'promotion_id': 404},
                          headers=alice['headers'])
    assert unknown.status_code == 400
    assert unknown.headers['X-kioskApp-error'] == 'error.promotionnotfound'


def test_campaign_listing_is_scoped(alice, bob, admin):
    for headers in (alice['headers'], bob['headers']):
        client.post('/api/campaigns', json={'type': 'CUSTOM', 'date': '2026-07-01', 'card_type': 'GOLD',
                                            'custom_text': 'hi'}, headers=headers)
    assert client.get('/api/campaigns', headers=alice['headers']).headers['X-Total-Count'] == '1'
    everything = client.get('/api/campaigns', params={'sort': 'id,desc'}, headers=admin['headers'])
    assert everything.headers['X-Total-Count'] == '2'
    ids = [c['id'] for c in everything.json()]
    assert ids == sorted(ids, reverse=True)


def test_campaign_with_unknown_owner_is_rejected(alice):
    r = client.post('/api/campaigns', json={'type': 'CUSTOM', 'date': '2026-07-01', 'card_type': 'GOLD',
                                            'custom_text': 'hi', 'user_id': 9999}, headers=alice['headers'])
    assert r.status_code == 400
    assert r.headers['X-kioskApp-error'] == 'error.usernotfound'
    assert r.headers['X-kioskApp-params'] == 'campaign'


def test_promotion_used_by_a_campaign_cannot_be_deleted(alice):
    promotion_id = _promotion(alice['headers'])
    campaign = client.post('/api/campaigns', json={'type': 'PROMOTION', 'date': '2026-06-01',
                                                   'promotion_id': promotion_id}, headers=alice['headers']).json()

    r = client.delete(f'/api/promotions/{promotion_id}', headers=alice['headers'])
    assert r.status_code == 400
    assert r.headers['X-kioskApp-error'] == 'error.promotioninuse'
    assert r.headers['X-kioskApp-params'] == 'promotion'
    assert client.get(f'/api/promotions/{promotion_id}', headers=alice['headers']).status_code == 200

    # the campaign still saves against its promotion
    again = client.put('/api/campaigns', json={**campaign, 'date': '2026-06-03'}, headers=alice['headers'])
    assert again.status_code == 200

    client.delete(f"/api/campaigns/{campaign['id']}", headers=alice['headers'])
    freed = client.delete(f'/api/promotions/{promotion_id}', headers=alice['headers'])
    assert freed.status_code == 200
    assert client.get(f'/api/promotions/{promotion_id}', headers=alice['headers']).status_code == 404
