from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

SQLALCHEMY_DATABASE_URL = "sqlite:///./test.db"
engine = create_engine(
    SQLALCHEMY_DATABASE_URL, connect_args={"check_same_thread": False}
)
TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

PASSWORD = "Str0ng!Passw0rd"
ADMIN_EMAIL = "admin@example.com"


class FakeRedis:
    """Dict-backed stand-in for the handful of Redis calls the rate limiter makes."""

    def __init__(self):
        self.data = {}

    def get(self, key):
        return self.data.get(key)

    def setex(self, key, ttl, value):
        self.data[key] = str(value)
        return True

    def incr(self, key):
        self.data[key] = str(int(self.data.get(key, 0)) + 1)
        return int(self.data[key])


def auth_headers(token):
    return {"Authorization": f"Bearer {token}"}


def login(client, email, password=PASSWORD):
    response = client.post("/api/v1/auth/login", json={"email": email, "password": password})
    assert response.status_code == 200, response.text
    return response.json()


def register_patient(client, email, full_name="Pat Patient"):
    response = client.post(
        "/api/v1/auth/register",
        json={"email": email, "password": PASSWORD, "full_name": full_name},
    )
    assert response.status_code == 200, response.text
    tokens = login(client, email)
    return {"id": response.json()["id"], "headers": auth_headers(tokens["access_token"])}


def doctor_payload(department_id, email="house@example.com", **overrides):
    payload = {
        "email": email,
        "password": PASSWORD,
        "fullName": "Gregory House",
        "departmentId": department_id,
        "specialization": "Cardiologist",
        "qualification": "MBBS, MD",
        "experienceYears": 12,
    }
    payload.update(overrides)
    return payload


def provision_doctor(client, admin_headers, department_id, email="house@example.com", full_name="Gregory House"):
    response = client.post(
        "/api/v1/functions/create-doctor",
        json=doctor_payload(department_id, email=email, fullName=full_name),
        headers=admin_headers,
    )
    assert response.status_code == 200, response.text
    tokens = login(client, email)
    doctors = client.get("/api/v1/doctors", headers=admin_headers).json()
    doctor = next(d for d in doctors if d["user"]["email"] == email)
    return {
        "id": doctor["id"],
        "user_id": response.json()["user"]["id"],
        "headers": auth_headers(tokens["access_token"]),
    }


def book(client, patient_headers, doctor_id, date="2025-01-01", time="09:00", notes=None):
    body = {"doctor_id": doctor_id, "appointment_date": date, "appointment_time": time}
    if notes is not None:
        body["notes"] = notes
    return client.post("/api/v1/appointments", json=body, headers=patient_headers)
