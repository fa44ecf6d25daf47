from fastapi.testclient import TestClient
from gasy_hub.main import app

with TestClient(app) as client:
    print('ROOT:')
    print(client.get('/').json())

    print('\nHEALTH:')
    print(client.get('/api/health').json())

    print('\nDB HEALTH:')
    try:
        resp = client.get('/api/health/db')
        print(resp.status_code)
        try:
            print(resp.json())
        except Exception:
            print(resp.text)
    except Exception as e:
        print('DB call raised exception:', e)

    print('\nSYSTEM STATS:')
    print(client.get('/api/stats/system').json())

    print('\nLATEST ALERTS:')
    resp = client.get('/api/alerts', params={'limit': 5})
    print(resp.status_code)
    for alert in resp.json().get('alerts', []):
        print(f"  [{alert['status']}] {alert['reason']} @ {alert['location']} ({alert['confirmedCount']}/{alert['rejectedCount']})")
