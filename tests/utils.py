"""Request helpers shared by the API tests."""

from app.services.geocoder import GeoPoint

NEW_YORK = GeoPoint(40.7506, -73.9972, "New York, NY 10001")

# [longitude, latitude]
MANHATTAN = [-73.9857, 40.7484]
BROOKLYN = [-73.9442, 40.6782]
LOS_ANGELES = [-118.2437, 34.0522]


def register(client, name="Reader", email="reader@example.com", password="secret123", role="user") -> dict:
    """Register a user and return the created user document."""
    response = client.post(
        "/api/users/register",
        json={"name": name, "email": email, "password": password, "role": role},
    )
    assert response.status_code == 201, response.text
    return response.json()["data"]


def login(client, email="reader@example.com", password="secret123") -> str:
    response = client.post("/api/users/login", json={"email": email, "password": password})
    assert response.status_code == 200, response.text
    return response.json()["token"]


def auth_headers(token: str) -> dict[str, str]:
    return {"Authorization": f"Bearer {token}"}


def register_and_login(client, name: str, email: str, role: str = "user") -> dict:
    """Registered user document plus ``token`` and ready-made ``headers``."""
    data = register(client, name=name, email=email, role=role)
    token = login(client, email=email)
    return {**data, "token": token, "headers": auth_headers(token)}


def reading_payload(meter_number="M-1001", reading=1523.5, coordinates=None, **extra) -> dict:
    payload = {
        "meter_number": meter_number,
        "reading": reading,
        "unit": "kWh",
        "location": {
            "type": "Point",
            "coordinates": coordinates or MANHATTAN,
            "address": "350 5th Ave, New York, NY",
        },
    }
    payload.update(extra)
    return payload
