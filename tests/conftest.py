import os
import sys
import tempfile
from pathlib import Path

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

os.environ.setdefault('DATABASE_URL', 'sqlite:///:memory:')
os.environ.setdefault('APP_ENV', 'test')
os.environ.setdefault('SECRET_KEY', 'test-secret-key')
os.environ.setdefault('LOG_LEVEL', 'WARNING')
os.environ.setdefault('PASSWORD_HASH_ITERATIONS', '1000')
os.environ.setdefault('SEED_DEMO_DATA', 'true')
os.environ.setdefault('RESERVATION_SWEEPER_ENABLED', 'false')
os.environ.setdefault('KIOSK_STEP_TIME_SCALE', '0.001')
os.environ.setdefault('USE_MOCK_API', 'true')
os.environ.setdefault('AUTH_STORE_PATH', str(Path(tempfile.gettempdir()) / 'swapstation-test-auth.json'))

import pytest
from fastapi.testclient import TestClient

from swapstation.database import SessionLocal, engine
from swapstation.models import Base
from swapstation.seeds import seed_demo_data, seed_reference_data

ADMIN_ID = 'babc8bf4-222a-4c79-b5d2-a847b6a94296'
DRIVER_ID = 'c9cd9cf5-333b-5d8a-c6e3-b958c7b95397'
DRIVER_EMAIL = 'user@example.com'
DRIVER_PASSWORD = 'user1234'
ADMIN_EMAIL = 'admin@example.com'
ADMIN_PASSWORD = 'admin1234'
TWO_SLOT_VEHICLE = 'vehicle-001'
ONE_SLOT_VEHICLE = 'vehicle-002'


@pytest.fixture(autouse=True)
def fresh_database():
    Base.metadata.drop_all(bind=engine)
    Base.metadata.create_all(bind=engine)
    db = SessionLocal()
    try:
        seed_reference_data(db)
        seed_demo_data(db)
    finally:
        db.close()
    yield


@pytest.fixture
def db():
    session = SessionLocal()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def client():
    from swapstation.main import app

    with TestClient(app) as test_client:
        yield test_client


def login(client, email, password):
    response = client.post('/api/auth/login', json={'email': email, 'password': password})
    assert response.status_code == 200, response.text
    return {'Authorization': f"Bearer {response.json()['payload']['token']}"}


@pytest.fixture
def driver_headers(client):
    return login(client, DRIVER_EMAIL, DRIVER_PASSWORD)


@pytest.fixture
def admin_headers(client):
    return login(client, ADMIN_EMAIL, ADMIN_PASSWORD)
